"""Tests for the assembly of the decomposition and the end-to-end Infomax pipeline.


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
import pandas as pd
import pytest
import torch
from numpy.testing import assert_allclose

from infomaxkit import InfomaxBSS, run_infomax
from infomaxkit.decomposition import assemble_decomposition, component_names, vaf
from infomaxkit.ica import ConvergenceWarning
from infomaxkit.utils import generate_sinusoidal_mixture, generate_toy_data, match_sources

pytestmark = pytest.mark.filterwarnings("ignore::UserWarning")


@pytest.fixture
def toy_data():
    return generate_toy_data(n_samples=3000, seed=0)


def _run_quiet(x, **kwargs):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        return run_infomax(x, verbose=False, **kwargs)


def test_component_names():
    assert component_names(3) == ["Comp001", "Comp002", "Comp003"]


def test_assemble_decomposition():
    """The assembled matrices are sorted by VAF and invert each other."""
    prng = torch.Generator().manual_seed(0)
    weights = torch.randn(3, 3, generator=prng, dtype=torch.float64)
    white_mtx = torch.randn(3, 3, generator=prng, dtype=torch.float64)

    mixing, unmixing, comp_vaf = assemble_decomposition(weights, white_mtx)

    assert torch.all(comp_vaf[:-1] >= comp_vaf[1:])
    assert comp_vaf.sum().item() == pytest.approx(1.0)
    assert_allclose(vaf(mixing).numpy(), comp_vaf.numpy())
    assert_allclose((unmixing.T @ mixing).numpy(), np.eye(3), atol=1e-10)

    # Up to the column order, the mixing matrix inverts the unmixing one
    expected = torch.linalg.inv(weights.T @ white_mtx)
    order = [int(torch.argmin(((expected - mixing[:, [j]]) ** 2).sum(dim=0))) for j in range(3)]
    assert sorted(order) == [0, 1, 2]
    assert_allclose(mixing.numpy(), expected[:, order].numpy(), atol=1e-10)


def test_assemble_decomposition_pca():
    prng = torch.Generator().manual_seed(1)
    weights = torch.randn(2, 2, generator=prng, dtype=torch.float64)
    white_mtx = torch.randn(2, 2, generator=prng, dtype=torch.float64)
    pca_rot, _ = torch.linalg.qr(torch.randn(4, 2, generator=prng, dtype=torch.float64))

    mixing, unmixing, _ = assemble_decomposition(weights, white_mtx, pca_rot)

    assert mixing.size() == (4, 2)
    assert unmixing.size() == (4, 2)
    assert_allclose((unmixing.T @ mixing).numpy(), np.eye(2), atol=1e-10)


@pytest.mark.parametrize("whiten", ["sqrtm", "ZCA", "ZCA-cor", "PCA", "PCA-cor", "none"])
def test_round_trip_and_vaf(toy_data, whiten):
    x, _, _ = toy_data
    res = _run_quiet(x, whiten=whiten, max_iter=60, seed=0)

    assert_allclose((res.unmixing_mtx.T @ res.mixing_mtx).numpy(), np.eye(3), atol=1e-8)
    assert torch.all(res.vaf[:-1] >= res.vaf[1:])
    assert res.vaf.sum().item() == pytest.approx(1.0)
    assert list(res.sources.columns) == ["Comp001", "Comp002", "Comp003"]

    # Sources are the centered data projected through the unmixing matrix
    x_c = x - x.mean(axis=0)
    assert_allclose(res.sources.to_numpy(), x_c @ res.unmixing_mtx.numpy(), atol=1e-8)


def test_sinusoid_separation():
    """Two sinusoids mixed by a known matrix are recovered."""
    x, s, _ = generate_sinusoidal_mixture(freqs=(5.0, 10.0), fs=256.0, duration=4.0)
    res = _run_quiet(x, whiten="PCA", extended=True, seed=42)

    _, corr = match_sources(res.sources, s)
    assert np.all(corr > 0.95)


def test_mixed_kurtosis_separation(toy_data):
    """Extended Infomax recovers both sub- and super-Gaussian sources."""
    x, s, _ = toy_data
    res = _run_quiet(x, seed=0)

    est_idx, corr = match_sources(res.sources, s)
    assert sorted(est_idx.tolist()) == [0, 1, 2]
    assert np.all(corr > 0.9)


def test_standard_infomax_super_gaussian():
    prng = np.random.default_rng(2)
    s = prng.laplace(size=(3000, 2))
    x = s @ np.array([[1.0, 0.6], [0.4, 1.0]]).T
    res = _run_quiet(x, extended=False, seed=0)

    _, corr = match_sources(res.sources, s)
    assert np.all(corr > 0.9)


def test_determinism(toy_data):
    x, _, _ = toy_data
    res1 = _run_quiet(x, max_iter=30, seed=123)
    res2 = _run_quiet(x, max_iter=30, seed=123)

    assert torch.equal(res1.mixing_mtx, res2.mixing_mtx)
    assert torch.equal(res1.unmixing_mtx, res2.unmixing_mtx)
    assert res1.n_iter == res2.n_iter
    pd.testing.assert_frame_equal(res1.sources, res2.sources)


def test_pca_reduction(toy_data):
    """With PCA reduction, the matrices live in the original feature space."""
    x, _, _ = toy_data
    x = np.concatenate([x, x @ np.array([[0.5], [0.2], [0.3]])], axis=1)  # rank-deficient

    res = _run_quiet(x, pca=3, seed=0)

    assert res.mixing_mtx.size() == (4, 3)
    assert res.unmixing_mtx.size() == (4, 3)
    assert res.sources.shape == (3000, 3)
    assert_allclose((res.unmixing_mtx.T @ res.mixing_mtx).numpy(), np.eye(3), atol=1e-8)


def test_pca_reduction_fraction():
    x, _, _ = generate_toy_data(n_samples=2000, seed=3)
    x = np.concatenate([x, 1e-3 * np.random.default_rng(0).standard_normal((2000, 1))], axis=1)

    # The first principal component explains about 90% of the variance
    res = _run_quiet(x, pca=0.9, seed=0)
    assert res.sources.shape[1] == 2
    assert res.mixing_mtx.size() == (4, 2)


def test_rank_deficient():
    x, _, _ = generate_toy_data(n_samples=500, seed=0)
    x = np.concatenate([x, x[:, [0]] + x[:, [1]]], axis=1)
    with pytest.raises(ValueError, match="not full rank"):
        run_infomax(x, verbose=False)


@pytest.mark.parametrize("pca", [0, 1])
def test_invalid_pca(toy_data, pca):
    x, _, _ = toy_data
    with pytest.raises(AssertionError):
        run_infomax(x, pca=pca, verbose=False)


def test_invalid_whitening(toy_data):
    x, _, _ = toy_data
    with pytest.raises(AssertionError):
        run_infomax(x, whiten="pca", verbose=False)


def test_no_centering(toy_data):
    x, _, _ = toy_data
    x = x + 5.0
    res = _run_quiet(x, centre=False, max_iter=20, seed=0)

    assert_allclose(res.mean_vec.numpy(), 0.0)
    assert_allclose(res.sources.to_numpy(), x @ res.unmixing_mtx.numpy(), atol=1e-8)


def test_bss_transform_matches_fit():
    x, _ = generate_sinusoidal_mixture(duration=2.0)[:2]
    model = InfomaxBSS(whiten="ZCA", max_iter=50, seed=0, verbose=False)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        sources = model.fit_transform(x)

    # The index of the input DataFrame is preserved
    pd.testing.assert_index_equal(sources.index, x.index)
    pd.testing.assert_frame_equal(model.transform(x), sources)
    assert model.n_comp == 2
    assert model.result.n_iter > 0


def test_verbose_logging(toy_data, caplog):
    x, _, _ = toy_data
    with caplog.at_level("INFO"):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            run_infomax(x, max_iter=3, seed=0, verbose=True)
    assert "Removing column means..." in caplog.text
    assert "Step: 1, lrate:" in caplog.text
    assert "ICA running time" in caplog.text
