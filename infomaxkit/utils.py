"""This module contains utility functions for simulating mixtures and evaluating separation.


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

import numpy as np
import pandas as pd
from scipy import signal
from scipy.optimize import linear_sum_assignment

from ._base import Signal, signal_to_array


def generate_sinusoidal_mixture(
    freqs: tuple[float, ...] = (5.0, 10.0),
    fs: float = 256.0,
    duration: float = 1.0,
    mixing_mtx: np.ndarray | None = None,
) -> tuple[pd.DataFrame, pd.DataFrame, np.ndarray]:
    """Generate a linear mixture of sinusoids.

    Parameters
    ----------
    freqs : tuple of float, default=(5.0, 10.0)
        Frequencies of the sinusoidal sources.
    fs : float, default=256.0
        Sampling frequency.
    duration : float, default=1.0
        Duration of the signals (in seconds).
    mixing_mtx : ndarray or None, default=None
        Mixing matrix with shape (n_channels, n_sources); if None, it is set to
        ``[[1, 2], [3.4, 1.5]]`` for two sources and to a random well-conditioned matrix otherwise.

    Returns
    -------
    DataFrame
        Mixed signal with shape (n_samples, n_channels).
    DataFrame
        Sources with shape (n_samples, n_sources).
    ndarray
        Mixing matrix with shape (n_channels, n_sources).
    """
    t = np.arange(0, duration + 1 / fs / 2, 1 / fs)
    s = np.stack([np.sin(2 * np.pi * f * t) for f in freqs], axis=1)

    n_src = len(freqs)
    if mixing_mtx is None:
        if n_src == 2:
            mixing_mtx = np.array([[1.0, 2.0], [3.4, 1.5]])
        else:
            mixing_mtx = np.eye(n_src) + np.random.default_rng(0).uniform(
                0, 0.5, size=(n_src, n_src)
            )
    x = s @ mixing_mtx.T

    return (
        pd.DataFrame(x, index=t),
        pd.DataFrame(s, index=t, columns=[f"{f:g} Hz" for f in freqs]),
        mixing_mtx,
    )


def generate_toy_data(
    n_samples: int = 2000,
    noise_std: float | None = None,
    seed: int | None = None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Generate a mixture of a super-Gaussian (Laplacian) and two sub-Gaussian
    (square and sawtooth waves) sources.

    Parameters
    ----------
    n_samples : int, default=2000
        Number of samples.
    noise_std : float or None, default=None
        Standard deviation of the Gaussian noise added to the mixture.
    seed : int or None, default=None
        Seed for the PRNG.

    Returns
    -------
    ndarray
        Mixed signal with shape (n_samples, 3).
    ndarray
        Sources with shape (n_samples, 3).
    ndarray
        Mixing matrix with shape (3, 3).
    """
    prng = np.random.default_rng(seed)
    t = np.linspace(0, 8, n_samples)

    s = np.stack(
        [
            prng.laplace(size=n_samples),
            signal.square(2 * np.pi * 1.3 * t),
            signal.sawtooth(2 * np.pi * 0.7 * t),
        ],
        axis=1,
    )
    s /= s.std(axis=0)

    mixing_mtx = np.array([[1.0, 1.0, 1.0], [0.5, 2.0, 1.0], [1.5, 1.0, 2.0]])
    x = s @ mixing_mtx.T
    if noise_std is not None:
        x += noise_std * prng.standard_normal(size=x.shape)

    return x, s, mixing_mtx


def match_sources(est: Signal, ref: Signal) -> tuple[np.ndarray, np.ndarray]:
    """Match estimated sources to reference ones, resolving the order and sign ambiguity of ICA.

    Parameters
    ----------
    est : Signal
        Estimated sources with shape (n_samples, n_components).
    ref : Signal
        Reference sources with shape (n_samples, n_sources).

    Returns
    -------
    ndarray
        For each reference source, the index of the matching estimated source.
    ndarray
        For each reference source, the absolute correlation with the matching estimated source.
    """
    est_array = signal_to_array(est, allow_1d=True)
    ref_array = signal_to_array(ref, allow_1d=True)
    n_ref = ref_array.shape[1]

    # Cross-correlation block between reference and estimated sources
    corr = np.abs(np.corrcoef(ref_array.T, est_array.T)[:n_ref, n_ref:])
    ref_idx, est_idx = linear_sum_assignment(corr, maximize=True)

    order = np.argsort(ref_idx)
    return est_idx[order], corr[ref_idx, est_idx][order]
