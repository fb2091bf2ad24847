"""Tests for the Infomax training loop and learning rules.


Copyright 2023 Mattia Orlandi

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

https://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import warnings

import numpy as np
import pytest
import torch
from numpy.testing import assert_allclose

from infomaxkit import ica, preprocessing
from infomaxkit.ica import _infomax
from infomaxkit.utils import generate_toy_data


def _seeded(seed=42):
    return torch.Generator().manual_seed(seed)


@pytest.fixture
def white_data():
    x, _, _ = generate_toy_data(n_samples=2000, seed=0)
    x_c, _ = preprocessing.center_signal(x)
    return preprocessing.SqrtmWhitening().whiten_training(x_c)


def test_default_heuristics():
    assert ica.default_lrate(2) == pytest.approx(0.01 / np.log(4))
    assert ica.default_block_size(257) == int(np.ceil(5 * np.log(257)))
    assert ica.default_block_size(10) == 3  # 0.3 * n_samples is smaller


def test_initial_state():
    state = ica.TrainingState.initial(3, lrate=0.1)
    assert torch.equal(state.weights, torch.eye(3, dtype=torch.float64))
    assert torch.equal(state.bias, torch.zeros(3, dtype=torch.float64))
    assert state.signs.tolist() == [-1.0, 1.0, 1.0]
    assert state.step == 0 and state.ext_blocks == 1 and state.sign_count == 0


def test_extended_rule():
    prng = _seeded(0)
    w = torch.randn(3, 3, generator=prng, dtype=torch.float64)
    u = torch.randn(10, 3, generator=prng, dtype=torch.float64)
    signs = torch.tensor([-1.0, 1.0, 1.0], dtype=torch.float64)
    rule = ica.ExtendedRule()

    y = rule.nonlinearity(u)
    assert_allclose(y.numpy(), np.tanh(u.numpy()))

    expected = w @ (10 * torch.eye(3, dtype=torch.float64) - (u.T @ y) @ torch.diag(signs) - u.T @ u)
    assert_allclose(rule.weight_update(w, u, y, signs).numpy(), expected.numpy())
    assert_allclose(rule.bias_update(y).numpy(), -2 * y.sum(dim=0).numpy())
    assert rule.adapts_signs


def test_standard_rule():
    prng = _seeded(0)
    w = torch.randn(2, 2, generator=prng, dtype=torch.float64)
    u = torch.randn(8, 2, generator=prng, dtype=torch.float64)
    rule = ica.StandardRule()

    y = rule.nonlinearity(u)
    assert_allclose(y.numpy(), 1 / (1 + np.exp(-u.numpy())))

    expected = w @ (8 * torch.eye(2, dtype=torch.float64) + u.T @ (1 - 2 * y))
    assert_allclose(rule.weight_update(w, u, y, None).numpy(), expected.numpy())
    assert_allclose(rule.bias_update(y).numpy(), (1 - 2 * y).sum(dim=0).numpy())
    assert not rule.adapts_signs


def test_excess_kurtosis():
    prng = np.random.default_rng(0)
    a = np.stack(
        [
            prng.standard_normal(200_000),
            prng.uniform(-1, 1, 200_000),
            prng.laplace(size=200_000),
        ],
        axis=1,
    )
    kurt = ica.excess_kurtosis(torch.from_numpy(a)).numpy()
    assert_allclose(kurt[:2], [0.0, -1.2], atol=0.05)
    assert_allclose(kurt[2], 3.0, atol=0.5)


def test_pinv_zero_tolerance():
    a = torch.tensor([[2.0, 1.0], [1.0, 3.0]], dtype=torch.float64)
    assert_allclose(ica.pinv(a).numpy(), np.linalg.inv(a.numpy()), atol=1e-12)

    # Exactly zero singular values are left out
    singular = torch.diag(torch.tensor([2.0, 0.0], dtype=torch.float64))
    assert_allclose(ica.pinv(singular).numpy(), np.diag([0.5, 0.0]))

    # Tiny but positive singular values are inverted, unlike with the default tolerance
    tiny = torch.diag(torch.tensor([1.0, 1e-17], dtype=torch.float64))
    assert_allclose(ica.pinv(tiny).numpy(), np.diag([1.0, 1e17]))
    assert torch.linalg.pinv(tiny)[1, 1].item() == 0.0


def test_determinism(white_data):
    """The same seed yields identical weights and iteration counts."""
    res1 = ica.infomax(white_data, max_iter=30, prng=_seeded(), verbose=False)
    res2 = ica.infomax(white_data, max_iter=30, prng=_seeded(), verbose=False)
    assert torch.equal(res1.weights, res2.weights)
    assert res1.n_iter == res2.n_iter
    assert res1.changes == res2.changes

    res3 = ica.infomax(white_data, max_iter=30, prng=_seeded(7), verbose=False)
    assert not torch.equal(res1.weights, res3.weights)


def test_tolerance_convergence(white_data):
    res = ica.infomax(white_data, tol=1e10, prng=_seeded(), verbose=False)
    assert res.stop_reason == "tolerance"
    assert res.converged
    assert res.n_iter == 3


def test_small_angle_stop(white_data):
    res = ica.infomax(white_data, n_small_angle=0, prng=_seeded(), verbose=False)
    assert res.stop_reason == "small_angle"
    assert res.converged
    assert res.n_iter == 1


def test_max_iter_warns(white_data):
    with pytest.warns(ica.ConvergenceWarning):
        res = ica.infomax(
            white_data, max_iter=2, n_small_angle=None, prng=_seeded(), verbose=False
        )
    assert res.stop_reason == "max_iter"
    assert not res.converged
    assert res.n_iter == 2


def test_blowup_recovery(white_data):
    """A huge learning rate triggers restarts, but training still ends with finite weights."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ica.ConvergenceWarning)
        res = ica.infomax(white_data, lrate=5.0, max_iter=50, prng=_seeded(), verbose=False)
    assert res.n_restarts >= 1
    assert res.lrate < 5.0 * 0.9
    assert torch.isfinite(res.weights).all()
    assert res.n_iter > 0


def test_convergence_trend(white_data):
    """Absent a blow-up, the weight change trends downward."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ica.ConvergenceWarning)
        res = ica.infomax(white_data, max_iter=100, prng=_seeded(), verbose=False)
    assert len(res.changes) >= 10
    assert np.mean(res.changes[-5:]) < np.mean(res.changes[:5])


@pytest.mark.parametrize("extended", [True, False])
def test_single_block_two_components(extended):
    """A block as large as the signal and two components run to completion."""
    prng = np.random.default_rng(3)
    x = torch.from_numpy(prng.laplace(size=(200, 2)) @ np.array([[1.0, 0.5], [0.3, 1.0]]))
    x_w = preprocessing.PCAWhitening().whiten_training(x - x.mean(dim=0))
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ica.ConvergenceWarning)
        res = ica.infomax(
            x_w, block_size=200, max_iter=20, extended=extended, prng=_seeded(), verbose=False
        )
    assert res.weights.size() == (2, 2)
    assert torch.isfinite(res.weights).all()
    assert res.n_iter > 0


def test_kurtosis_subsampling(white_data):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ica.ConvergenceWarning)
        res = ica.infomax(white_data, kurt_size=300, max_iter=10, prng=_seeded(), verbose=False)
    assert torch.isfinite(res.weights).all()


@pytest.fixture
def kurt_data():
    """Super-Gaussian (Laplacian) and sub-Gaussian (uniform) columns."""
    prng = np.random.default_rng(5)
    return torch.from_numpy(
        np.stack([prng.laplace(size=5000), prng.uniform(-1, 1, 5000)], axis=1)
    )


def test_update_signs_momentum_and_bias(kurt_data):
    """The kurtosis estimate is blended with the previous one before thresholding."""
    state = ica.TrainingState.initial(2, lrate=0.1)
    kurt = ica.excess_kurtosis(kurt_data)

    # The previous estimate puts the blend just below zero for every component
    state.old_kurt = -0.02 - kurt
    _infomax._update_signs(kurt_data, state, kurt_size=10_000, prng=_seeded())

    assert_allclose(state.old_kurt.numpy(), np.full(2, -0.01), atol=1e-12)
    assert state.signs.tolist() == [1.0, 1.0]
    assert torch.equal(state.old_signs, state.signs)


def test_update_signs_follow_kurtosis(kurt_data):
    state = ica.TrainingState.initial(2, lrate=0.1)
    _infomax._update_signs(kurt_data, state, kurt_size=10_000, prng=_seeded())

    kurt = ica.excess_kurtosis(kurt_data)
    assert_allclose(state.old_kurt.numpy(), 0.5 * kurt.numpy())
    assert state.signs.tolist() == [1.0, -1.0]
    assert state.sign_count == 0


def test_update_signs_doubles_ext_blocks(kurt_data):
    """After 25 unchanged sign estimates the kurtosis is estimated half as often."""
    state = ica.TrainingState.initial(2, lrate=0.1)
    prng = _seeded()

    ext_blocks = []
    for _ in range(60):
        _infomax._update_signs(kurt_data, state, kurt_size=10_000, prng=prng)
        ext_blocks.append(state.ext_blocks)

    assert ext_blocks[0] == 1
    assert ext_blocks[24] == 1
    assert ext_blocks[25] == 2
    assert ext_blocks[50] == 4
    assert state.sign_count == 9


def test_update_signs_flip_resets_count(kurt_data):
    state = ica.TrainingState.initial(2, lrate=0.1)
    prng = _seeded()
    for _ in range(10):
        _infomax._update_signs(kurt_data, state, kurt_size=10_000, prng=prng)
    assert state.sign_count == 9

    # A previous estimate of opposite sign flips the signs
    kurt = ica.excess_kurtosis(kurt_data)
    state.old_kurt = -3 * kurt
    _infomax._update_signs(kurt_data, state, kurt_size=10_000, prng=prng)

    assert state.signs.tolist() == [-1.0, 1.0]
    assert state.sign_count == 0
    assert state.ext_blocks == 1


def test_restart_reinitializes_state(white_data, monkeypatch):
    """Every restart starts from a fresh state with a lower learning rate."""
    created = []
    initial = ica.TrainingState.initial

    def recording_initial(*args, **kwargs):
        state = initial(*args, **kwargs)
        created.append(
            (state.lrate, state.ext_blocks, state.block_no, state.step, state.signs.tolist())
        )
        return state

    monkeypatch.setattr(_infomax.TrainingState, "initial", recording_initial)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ica.ConvergenceWarning)
        res = ica.infomax(white_data, lrate=5.0, max_iter=50, prng=_seeded(), verbose=False)

    assert res.n_restarts >= 1
    assert len(created) == res.n_restarts + 1
    for i, (lrate, ext_blocks, block_no, step, signs) in enumerate(created):
        assert lrate <= 5.0 * 0.9**i * (1 + 1e-12)
        assert (ext_blocks, block_no, step) == (1, 1, 0)
        assert signs == [-1.0, 1.0, 1.0]
    # The weight-change history only covers the last run
    assert len(res.changes) == res.n_iter


def test_large_change_damps_lrate(monkeypatch):
    """A weight change above 1e9 without a blow-up multiplies the learning rate by 0.8."""

    class ConstantStepRule(ica.StandardRule):
        def weight_update(self, weights, u, y, signs):
            return torch.full_like(weights, 4e4)

    monkeypatch.setattr(_infomax, "StandardRule", ConstantStepRule)
    x = torch.randn(100, 2, generator=_seeded(), dtype=torch.float64)
    with pytest.warns(ica.ConvergenceWarning):
        res = ica.infomax(
            x,
            block_size=100,
            lrate=1.0,
            max_iter=2,
            extended=False,
            n_small_angle=None,
            prng=_seeded(),
            verbose=False,
        )

    assert res.n_restarts == 0
    assert res.changes[0] == pytest.approx(4 * 4e4**2)
    assert res.lrate == pytest.approx(0.8**2)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"block_size": 5000},
        {"block_size": 0},
        {"lrate": -1.0},
        {"tol": 0.0},
        {"max_iter": 0},
        {"anneal_step": 1.5},
    ],
)
def test_invalid_parameters(white_data, kwargs):
    with pytest.raises(AssertionError):
        ica.infomax(white_data, verbose=False, **kwargs)


def test_single_component():
    with pytest.raises(AssertionError):
        ica.infomax(torch.randn(100, 1, dtype=torch.float64), verbose=False)


def test_infomax_ica_inference_matches_training():
    x, _, _ = generate_toy_data(n_samples=1500, seed=1)
    x = x - x.mean(axis=0)
    model = ica.InfomaxICA(whiten_alg="ZCA", max_iter=50, seed=0, verbose=False)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ica.ConvergenceWarning)
        ics_train = model.decompose_training(x)
    ics_inf = model.decompose_inference(x)

    assert ics_train.size() == (1500, 3)
    assert_allclose(ics_inf.numpy(), ics_train.numpy(), atol=1e-10)
    assert model.result is not None
    assert torch.equal(model.sep_mtx, model.result.weights.T)


def test_infomax_ica_invalid_whitening():
    with pytest.raises(AssertionError):
        ica.InfomaxICA(whiten_alg="cholesky")
