"""Function and class implementing the (extended) Infomax algorithm
(https://doi.org/10.1162/neco.1995.7.6.1129, https://doi.org/10.1162/089976699300016719).


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

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field
from functools import partial

import torch

from .._base import Signal, signal_to_tensor
from ..preprocessing import (
    PCAWhitening,
    SqrtmWhitening,
    WhiteningModel,
    ZCAWhitening,
)
from ._abc_ica import ICA
from ._learning_rules import ExtendedRule, LearningRule, StandardRule
from ._utils import ConvergenceWarning, excess_kurtosis

WHITEN_ALGS = ("sqrtm", "ZCA", "ZCA-cor", "PCA", "PCA-cor", "none")

# Divergence
MAX_WEIGHT = 1e8
BLOWUP_LIMIT = 1e9
BLOWUP_FAC = 0.8
RESTART_FAC = 0.9
MIN_LRATE = 1e-10

# Extended Infomax
EXT_MOMENTUM = 0.5
SIGNS_BIAS = 0.02
SIGNCOUNT_THRESHOLD = 25
SIGNCOUNT_STEP = 2


def default_lrate(n_comp: int) -> float:
    """Heuristic initial learning rate, i.e., ``0.01 / ln(n_comp^2)``."""
    return 0.01 / math.log(n_comp**2)


def default_block_size(n_samp: int) -> int:
    """Heuristic block size from EEGLAB, i.e., ``ceil(min(5 ln(n_samp), 0.3 n_samp))``."""
    return int(math.ceil(min(5 * math.log(n_samp), 0.3 * n_samp)))


@dataclass
class TrainingState:
    """Loop-carried state of the Infomax training, re-created from scratch on every restart.

    Attributes
    ----------
    lrate : float
        Current learning rate.
    weights : Tensor
        Current weights with shape (n_components, n_components).
    bias : Tensor
        Current bias with shape (n_components,).
    signs : Tensor
        Current sign vector with shape (n_components,).
    old_weights : Tensor
        Weights at the end of the previous epoch.
    old_delta : Tensor
        Reference weight change for the computation of the angle.
    old_change : float
        Squared norm of the reference weight change.
    old_kurt : Tensor
        Previous kurtosis estimate (for momentum).
    old_signs : Tensor
        Previous sign vector.
    sign_count : int
        Number of consecutive kurtosis estimations leaving the signs unchanged.
    ext_blocks : int
        Number of blocks between two kurtosis estimations.
    block_no : int
        Index of the current block.
    count_small_angle : int
        Number of consecutive epochs with an angle below the annealing threshold.
    step : int
        Number of completed epochs.
    """

    lrate: float
    weights: torch.Tensor
    bias: torch.Tensor
    signs: torch.Tensor
    old_weights: torch.Tensor
    old_delta: torch.Tensor
    old_kurt: torch.Tensor
    old_signs: torch.Tensor
    old_change: float = 0.0
    sign_count: int = 0
    ext_blocks: int = 1
    block_no: int = 1
    count_small_angle: int = 0
    step: int = 0

    @classmethod
    def initial(
        cls,
        n_comp: int,
        lrate: float,
        dtype: torch.dtype = torch.float64,
        device: torch.device | None = None,
    ) -> TrainingState:
        """Create the state at the start of training: identity weights, zero bias and
        the first component forced to negative polarity."""
        weights = torch.eye(n_comp, dtype=dtype, device=device)
        signs = torch.ones(n_comp, dtype=dtype, device=device)
        signs[0] = -1
        return cls(
            lrate=lrate,
            weights=weights,
            bias=torch.zeros(n_comp, dtype=dtype, device=device),
            signs=signs,
            old_weights=weights.clone(),
            old_delta=torch.zeros(n_comp * n_comp, dtype=dtype, device=device),
            old_kurt=torch.zeros(n_comp, dtype=dtype, device=device),
            old_signs=torch.zeros(n_comp, dtype=dtype, device=device),
        )


@dataclass(frozen=True)
class InfomaxResult:
    """Outcome of the Infomax training.

    Attributes
    ----------
    weights : Tensor
        Learned weights with shape (n_components, n_components), applied as ``x_white @ weights``.
    n_iter : int
        Number of completed epochs since the last restart.
    stop_reason : str
        Why training stopped: "tolerance" (the weight change fell below the tolerance),
        "small_angle" (too many consecutive epochs without annealing) or "max_iter".
    n_restarts : int
        Number of restarts caused by weights blowing up.
    lrate : float
        Final learning rate.
    changes : list of float
        Squared norm of the weight change for every epoch since the last restart.
    """

    weights: torch.Tensor
    n_iter: int
    stop_reason: str
    n_restarts: int
    lrate: float
    changes: list[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        """bool: Whether training stopped before exhausting the maximum n. of iterations."""
        return self.stop_reason != "max_iter"


def _update_signs(
    x: torch.Tensor,
    state: TrainingState,
    kurt_size: int,
    prng: torch.Generator,
) -> None:
    """Re-estimate the sign vector from the kurtosis of the current activations."""
    n_samp = x.size(0)
    if kurt_size < n_samp:
        idx = torch.randperm(n_samp, generator=prng)[:kurt_size].to(x.device)
        act = x[idx] @ state.weights
    else:
        act = x @ state.weights

    kurt = excess_kurtosis(act)
    kurt = EXT_MOMENTUM * state.old_kurt + (1.0 - EXT_MOMENTUM) * kurt
    state.old_kurt = kurt

    state.signs = torch.sign(kurt + SIGNS_BIAS)
    if torch.equal(state.signs, state.old_signs):
        state.sign_count += 1
    else:
        state.sign_count = 0
    state.old_signs = state.signs

    if state.sign_count >= SIGNCOUNT_THRESHOLD:
        state.ext_blocks *= SIGNCOUNT_STEP
        state.sign_count = 0
        logging.debug(f"Signs are stable, kurtosis estimated every {state.ext_blocks} blocks.")


def infomax(
    x: torch.Tensor,
    block_size: int | None = None,
    lrate: float | None = None,
    max_iter: int = 200,
    anneal_deg: float = 60.0,
    anneal_step: float = 0.98,
    tol: float = 1e-7,
    extended: bool = True,
    kurt_size: int = 6000,
    n_small_angle: int | None = 20,
    prng: torch.Generator | None = None,
    verbose: bool = True,
) -> InfomaxResult:
    """Learn the Infomax weights on whitened data by mini-batch stochastic gradient ascent.

    Parameters
    ----------
    x : Tensor
        Whitened signal with shape (n_samples, n_components).
    block_size : int or None, default=None
        Number of samples in each mini-batch; if None, it is set to ``ceil(min(5 ln(n_samples), 0.3 n_samples))``.
    lrate : float or None, default=None
        Initial learning rate; if None, it is set to ``0.01 / ln(n_components^2)``.
    max_iter : int, default=200
        Maximum n. of epochs.
    anneal_deg : float, default=60.0
        Angle (in degrees) between successive weight changes above which the learning rate is annealed.
    anneal_step : float, default=0.98
        Factor by which the learning rate is multiplied when annealed.
    tol : float, default=1e-7
        Threshold on the squared norm of the weight change for convergence.
    extended : bool, default=True
        Whether to use extended Infomax (tanh nonlinearity with adaptive signs) or the
        original Infomax (logistic nonlinearity).
    kurt_size : int, default=6000
        Number of samples used for kurtosis estimation (extended Infomax only).
    n_small_angle : int or None, default=20
        Maximum n. of consecutive epochs with an angle below the annealing threshold;
        if None, this stopping rule is disabled.
    prng : Generator or None, default=None
        PRNG used for shuffling and kurtosis subsampling; if None, a randomly seeded one is created.
    verbose : bool, default=True
        Whether to log the progress of every epoch.

    Returns
    -------
    InfomaxResult
        Learned weights together with the n. of epochs and the reason training stopped.

    Raises
    ------
    ValueError
        If repeated blow-ups drive the learning rate below 1e-10. A single blow-up only
        restarts training; this guard stops an otherwise endless series of restarts.

    Warns
    -----
    ConvergenceWarning
        The maximum n. of iterations was reached.
    """
    n_samp, n_comp = x.size()
    assert n_comp >= 2, "At least two components are required."
    if block_size is None:
        block_size = default_block_size(n_samp)
    if lrate is None:
        lrate = default_lrate(n_comp)
    assert 0 < block_size <= n_samp, "The block size must be positive and at most equal to the n. of samples."
    assert lrate > 0, "The learning rate must be positive."
    assert tol > 0, "The tolerance must be positive."
    assert max_iter > 0, "The maximum n. of iterations must be positive."
    assert 0 < anneal_step < 1, "The annealing step must be in (0, 1)."

    if prng is None:
        prng = torch.Generator()
        prng.seed()

    rule: LearningRule = ExtendedRule() if extended else StandardRule()
    kurt_size = min(kurt_size, n_samp)
    last_t = (n_samp // block_size) * block_size

    if verbose:
        logging.info(f"Computing {'extended ' if extended else ''}Infomax ICA.")

    state = TrainingState.initial(n_comp, lrate, x.dtype, x.device)
    stop_iter = max_iter
    stop_reason = "max_iter"
    n_restarts = 0
    changes: list[float] = []
    while state.step < stop_iter:
        # Shuffle samples at each epoch
        perm = torch.randperm(n_samp, generator=prng).to(x.device)

        blowup = False
        for t in range(0, last_t, block_size):
            u = x[perm[t : t + block_size]] @ state.weights + state.bias
            y = rule.nonlinearity(u)

            state.weights = state.weights + state.lrate * rule.weight_update(
                state.weights, u, y, state.signs
            )
            state.bias = state.bias + state.lrate * rule.bias_update(y)

            # NaN never compares greater than the limit
            if (
                not torch.isfinite(state.weights).all()
                or state.weights.abs().max().item() > MAX_WEIGHT
            ):
                blowup = True
                break

            if (
                rule.adapts_signs
                and state.ext_blocks > 0
                and state.block_no % state.ext_blocks == 0
            ):
                _update_signs(x, state, kurt_size, prng)
            state.block_no += 1

        if blowup:
            # Restart from scratch with a lower learning rate
            n_restarts += 1
            lrate = state.lrate * RESTART_FAC
            if lrate < MIN_LRATE:
                raise ValueError(
                    "Infomax weights keep blowing up: the unmixing matrix might not be invertible."
                )
            logging.warning(f"Weights blown up, lowering lrate to {lrate:g} and restarting.")
            state = TrainingState.initial(n_comp, lrate, x.dtype, x.device)
            stop_iter = max_iter
            changes = []
            continue

        delta = (state.weights - state.old_weights).flatten()
        change = (delta @ delta).item()
        changes.append(change)
        state.step += 1

        angle_delta = 0.0
        if state.step > 2:
            denom = math.sqrt(change * state.old_change)
            if denom > 0:
                cos = (delta @ state.old_delta).item() / denom
                angle_delta = math.degrees(math.acos(min(max(cos, -1.0), 1.0)))
        state.old_weights = state.weights.clone()

        if verbose:
            logging.info(
                f"Step: {state.step}, lrate: {state.lrate:5f}, wchange: {change:8.8f}, angledelta: {angle_delta:4.1f}"
            )

        # Anneal learning rate
        if angle_delta > anneal_deg:
            state.lrate *= anneal_step
            state.old_delta = delta
            state.old_change = change
            state.count_small_angle = 0
        else:
            if state.step == 1:
                state.old_delta = delta
                state.old_change = change
            if n_small_angle is not None:
                state.count_small_angle += 1
                if state.count_small_angle > n_small_angle:
                    stop_iter = state.step
                    stop_reason = "small_angle"

        # Apply stopping rule
        if state.step > 2 and change < tol:
            stop_reason = "tolerance"
            break
        elif change > BLOWUP_LIMIT:
            state.lrate *= BLOWUP_FAC

    if stop_reason == "max_iter":
        warnings.warn("Infomax didn't converge.", ConvergenceWarning)
    elif verbose:
        logging.info(f"Infomax stopped after {state.step} iterations ({stop_reason}).")

    return InfomaxResult(
        weights=state.weights,
        n_iter=state.step,
        stop_reason=stop_reason,
        n_restarts=n_restarts,
        lrate=state.lrate,
        changes=changes,
    )


class InfomaxICA(ICA):
    """Class implementing (extended) Infomax ICA.

    Parameters
    ----------
    whiten_alg : {"sqrtm", "ZCA", "ZCA-cor", "PCA", "PCA-cor", "none"}, default="sqrtm"
        Whitening algorithm.
    extended : bool, default=True
        Whether to use extended Infomax.
    lrate : float or None, default=None
        Initial learning rate; if None, it is set to ``0.01 / ln(n_components^2)``.
    block_size : int or None, default=None
        Number of samples in each mini-batch; if None, it is set to ``ceil(min(5 ln(n_samples), 0.3 n_samples))``.
    max_iter : int, default=200
        Maximum n. of epochs.
    anneal_deg : float, default=60.0
        Angle (in degrees) above which the learning rate is annealed.
    anneal_step : float, default=0.98
        Factor by which the learning rate is multiplied when annealed.
    tol : float, default=1e-7
        Threshold for convergence.
    kurt_size : int, default=6000
        Number of samples used for kurtosis estimation.
    n_small_angle : int or None, default=20
        Maximum n. of consecutive epochs with small angle.
    device : device or str or None, default=None
        Torch device.
    seed : int or None, default=None
        Seed for the internal PRNG.
    verbose : bool, default=True
        Whether to log the progress of every epoch.

    Attributes
    ----------
    _train_kw : dict
        Keyword arguments forwarded to the training function.
    _device : device or None
        Torch device.
    _prng : Generator
        Internal PRNG.
    _sep_mtx : Tensor or None
        Separation matrix in whitened space.
    _result : InfomaxResult or None
        Outcome of the last training.
    """

    def __init__(
        self,
        whiten_alg: str = "sqrtm",
        extended: bool = True,
        lrate: float | None = None,
        block_size: int | None = None,
        max_iter: int = 200,
        anneal_deg: float = 60.0,
        anneal_step: float = 0.98,
        tol: float = 1e-7,
        kurt_size: int = 6000,
        n_small_angle: int | None = 20,
        device: torch.device | str | None = None,
        seed: int | None = None,
        verbose: bool = True,
    ) -> None:
        assert (
            whiten_alg in WHITEN_ALGS
        ), f"Whitening can be one of {', '.join(WHITEN_ALGS)}: the provided one was \"{whiten_alg}\"."
        assert lrate is None or lrate > 0, "The learning rate must be positive."
        assert tol > 0, "Convergence threshold must be positive."
        assert max_iter > 0, "The maximum n. of iterations must be positive."
        assert kurt_size > 0, "The kurtosis sample size must be positive."

        self._device = torch.device(device) if isinstance(device, str) else device

        # Whitening model
        whiten_dict = {
            "sqrtm": SqrtmWhitening,
            "ZCA": partial(ZCAWhitening, use_cor=False),
            "ZCA-cor": partial(ZCAWhitening, use_cor=True),
            "PCA": partial(PCAWhitening, use_cor=False),
            "PCA-cor": partial(PCAWhitening, use_cor=True),
            "none": lambda **_: None,
        }
        self._whiten_model: WhiteningModel | None = whiten_dict[whiten_alg](
            device=self._device
        )

        self._train_kw = {
            "block_size": block_size,
            "lrate": lrate,
            "max_iter": max_iter,
            "anneal_deg": anneal_deg,
            "anneal_step": anneal_step,
            "tol": tol,
            "extended": extended,
            "kurt_size": kurt_size,
            "n_small_angle": n_small_angle,
            "verbose": verbose,
        }

        self._prng = torch.Generator()
        if seed is not None:
            self._prng.manual_seed(seed)
        else:
            self._prng.seed()

        self._sep_mtx: torch.Tensor = None  # type: ignore
        self._result: InfomaxResult | None = None

    @property
    def sep_mtx(self) -> torch.Tensor:
        """Tensor: Property for getting the estimated separation matrix (in whitened space)."""
        return self._sep_mtx

    @property
    def whiten_model(self) -> WhiteningModel | None:
        """WhiteningModel or None: Property for getting the whitening model."""
        return self._whiten_model

    @property
    def result(self) -> InfomaxResult | None:
        """InfomaxResult or None: Property for getting the outcome of the last training."""
        return self._result

    def decompose_training(self, x: Signal) -> torch.Tensor:
        """Train the ICA model to decompose the given signal into independent components (ICs).

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        Tensor
            Estimated ICs with shape (n_samples, n_components).

        Warns
        -----
        ConvergenceWarning
            The algorithm didn't converge.
        """
        # Convert input to Tensor
        x_tensor = signal_to_tensor(x, self._device)

        # Whitening
        if self._whiten_model is not None:
            x_tensor = self._whiten_model.whiten_training(x_tensor)

        self._result = infomax(x_tensor, prng=self._prng, **self._train_kw)
        self._sep_mtx = self._result.weights.T

        return x_tensor @ self._sep_mtx.T

    def decompose_inference(self, x: Signal) -> torch.Tensor:
        """Decompose the given signal into independent components (ICs) using the frozen ICA model.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        Tensor
            Estimated ICs with shape (n_samples, n_components).
        """
        assert self._sep_mtx is not None, "Fit the model first."

        # Convert input to Tensor
        x_tensor = signal_to_tensor(x, self._device)

        # Decompose signal
        if self._whiten_model is not None:
            ics = self._whiten_model.whiten_inference(x_tensor) @ self._sep_mtx.T
        else:
            ics = x_tensor @ self._sep_mtx.T

        return ics
