"""Function and class implementing blind source separation by (extended) Infomax ICA,
from raw multichannel data to sources sorted by variance accounted for.


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
import time
from dataclasses import dataclass

import pandas as pd
import torch

from .. import preprocessing
from .._base import Signal, signal_to_tensor
from ..ica import WHITEN_ALGS, InfomaxICA, InfomaxResult, default_block_size
from ._assembly import assemble_decomposition, component_names


@dataclass(frozen=True)
class InfomaxDecomposition:
    """Result of the Infomax decomposition.

    Attributes
    ----------
    mixing_mtx : Tensor
        Mixing matrix with shape (n_channels, n_components).
    unmixing_mtx : Tensor
        Unmixing matrix with shape (n_channels, n_components).
    sources : DataFrame
        Source estimates with shape (n_samples, n_components), with columns "Comp001", "Comp002", ...
    n_iter : int
        Number of completed iterations.
    converged : bool
        Whether training stopped before exhausting the maximum n. of iterations.
    vaf : Tensor
        Variance accounted for by each component, in descending order.
    white_mtx : Tensor
        Whitening matrix.
    mean_vec : Tensor
        Mean vector removed from the data (zero if centering was disabled).
    """

    mixing_mtx: torch.Tensor
    unmixing_mtx: torch.Tensor
    sources: pd.DataFrame
    n_iter: int
    converged: bool
    vaf: torch.Tensor
    white_mtx: torch.Tensor
    mean_vec: torch.Tensor


def run_infomax(
    x: Signal,
    centre: bool = True,
    pca: int | float | None = None,
    anneal: float = 0.98,
    anneal_deg: float = 60.0,
    tol: float = 1e-7,
    lrate: float | None = None,
    block_size: int | None = None,
    kurt_size: int = 6000,
    max_iter: int = 200,
    extended: bool = True,
    whiten: str = "sqrtm",
    seed: int | None = None,
    verbose: bool = True,
    device: torch.device | str | None = None,
) -> InfomaxDecomposition:
    """Run (extended) Infomax ICA on a matrix of data.

    Parameters
    ----------
    x : Signal
        A signal with shape (n_samples, n_channels).
    centre : bool, default=True
        Whether to remove the mean of each channel before the decomposition.
    pca : int or float or None, default=None
        PCA reduction: either the fraction of variance to retain (in (0, 1)) or the number of
        principal components; if None, no reduction is performed.
    anneal : float, default=0.98
        Factor by which the learning rate is reduced when annealed.
    anneal_deg : float, default=60.0
        Angle (in degrees) above which the learning rate is annealed.
    tol : float, default=1e-7
        Threshold for convergence.
    lrate : float or None, default=None
        Initial learning rate; if None, it is set to ``0.01 / ln(n_components^2)``.
    block_size : int or None, default=None
        Number of samples in each mini-batch; if None, it is set to ``ceil(min(5 ln(n_samples), 0.3 n_samples))``.
    kurt_size : int, default=6000
        Number of samples used for kurtosis estimation (capped to the n. of samples).
    max_iter : int, default=200
        Maximum n. of iterations.
    extended : bool, default=True
        Whether to use extended Infomax.
    whiten : {"sqrtm", "ZCA", "ZCA-cor", "PCA", "PCA-cor", "none"}, default="sqrtm"
        Whitening algorithm.
    seed : int or None, default=None
        Seed for the internal PRNG.
    verbose : bool, default=True
        Whether to log the progress of the algorithm.
    device : device or str or None, default=None
        Torch device.

    Returns
    -------
    InfomaxDecomposition
        Mixing matrix, unmixing matrix, source estimates and n. of iterations.

    Raises
    ------
    ValueError
        If PCA reduction is not requested and the matrix is not full rank.

    Warns
    -----
    ConvergenceWarning
        The algorithm didn't converge.
    """
    bss_model = InfomaxBSS(
        centre=centre,
        pca=pca,
        anneal=anneal,
        anneal_deg=anneal_deg,
        tol=tol,
        lrate=lrate,
        block_size=block_size,
        kurt_size=kurt_size,
        max_iter=max_iter,
        extended=extended,
        whiten=whiten,
        seed=seed,
        verbose=verbose,
        device=device,
    )
    sources = bss_model.fit_transform(x)

    return InfomaxDecomposition(
        mixing_mtx=bss_model.mixing_mtx,
        unmixing_mtx=bss_model.unmixing_mtx,
        sources=sources,
        n_iter=bss_model.result.n_iter,
        converged=bss_model.result.converged,
        vaf=bss_model.vaf,
        white_mtx=bss_model.white_mtx,
        mean_vec=bss_model.mean_vec,
    )


class InfomaxBSS:
    """Decompose multichannel signals into independent sources via (extended) Infomax ICA.

    Parameters
    ----------
    centre : bool, default=True
        Whether to remove the mean of each channel before the decomposition.
    pca : int or float or None, default=None
        PCA reduction: either the fraction of variance to retain (in (0, 1)) or the number of
        principal components; if None, no reduction is performed.
    anneal : float, default=0.98
        Factor by which the learning rate is reduced when annealed.
    anneal_deg : float, default=60.0
        Angle (in degrees) above which the learning rate is annealed.
    tol : float, default=1e-7
        Threshold for convergence.
    lrate : float or None, default=None
        Initial learning rate.
    block_size : int or None, default=None
        Number of samples in each mini-batch.
    kurt_size : int, default=6000
        Number of samples used for kurtosis estimation.
    max_iter : int, default=200
        Maximum n. of iterations.
    extended : bool, default=True
        Whether to use extended Infomax.
    whiten : {"sqrtm", "ZCA", "ZCA-cor", "PCA", "PCA-cor", "none"}, default="sqrtm"
        Whitening algorithm.
    seed : int or None, default=None
        Seed for the internal PRNG.
    verbose : bool, default=True
        Whether to log the progress of the algorithm.
    device : device or str or None, default=None
        Torch device.

    Attributes
    ----------
    _centre : bool
        Whether to remove the mean of each channel.
    _ica_kw : dict
        Keyword arguments forwarded to the ICA model.
    _device : device or None
        Torch device.
    _pca_model : PCAReduction or None
        PCA model.
    _ica_model : InfomaxICA or None
        ICA model.
    """

    def __init__(
        self,
        centre: bool = True,
        pca: int | float | None = None,
        anneal: float = 0.98,
        anneal_deg: float = 60.0,
        tol: float = 1e-7,
        lrate: float | None = None,
        block_size: int | None = None,
        kurt_size: int = 6000,
        max_iter: int = 200,
        extended: bool = True,
        whiten: str = "sqrtm",
        seed: int | None = None,
        verbose: bool = True,
        device: torch.device | str | None = None,
    ) -> None:
        assert (
            whiten in WHITEN_ALGS
        ), f"Whitening can be one of {', '.join(WHITEN_ALGS)}: the provided one was \"{whiten}\"."
        assert pca is None or (
            pca != 0 and pca != 1
        ), "Number of PCA components cannot be 0 or 1."

        self._centre = centre
        self._device = torch.device(device) if isinstance(device, str) else device
        self._verbose = verbose
        self._block_size = block_size

        self._pca_model = (
            preprocessing.PCAReduction(pca, device=self._device or "cpu")
            if pca is not None
            else None
        )
        self._ica_kw = {
            "whiten_alg": whiten,
            "extended": extended,
            "lrate": lrate,
            "max_iter": max_iter,
            "anneal_deg": anneal_deg,
            "anneal_step": anneal,
            "tol": tol,
            "kurt_size": kurt_size,
            "device": self._device,
            "seed": seed,
            "verbose": verbose,
        }
        self._ica_model: InfomaxICA | None = None

        self._mean_vec: torch.Tensor | None = None
        self._white_mtx: torch.Tensor | None = None
        self._mixing_mtx: torch.Tensor | None = None
        self._unmixing_mtx: torch.Tensor | None = None
        self._vaf: torch.Tensor | None = None

    @property
    def mean_vec(self) -> torch.Tensor | None:
        """Tensor or None: Property for getting the estimated mean vector."""
        return self._mean_vec

    @property
    def white_mtx(self) -> torch.Tensor | None:
        """Tensor or None: Property for getting the estimated whitening matrix."""
        return self._white_mtx

    @property
    def mixing_mtx(self) -> torch.Tensor | None:
        """Tensor or None: Property for getting the estimated mixing matrix."""
        return self._mixing_mtx

    @property
    def unmixing_mtx(self) -> torch.Tensor | None:
        """Tensor or None: Property for getting the estimated unmixing matrix."""
        return self._unmixing_mtx

    @property
    def vaf(self) -> torch.Tensor | None:
        """Tensor or None: Property for getting the variance accounted for by each component."""
        return self._vaf

    @property
    def result(self) -> InfomaxResult | None:
        """InfomaxResult or None: Property for getting the outcome of the Infomax training."""
        return self._ica_model.result if self._ica_model is not None else None

    @property
    def n_comp(self) -> int:
        """int: Property for getting the number of components."""
        return self._mixing_mtx.size(1) if self._mixing_mtx is not None else -1

    def fit(self, x: Signal) -> InfomaxBSS:
        """Fit the decomposition model on the given data.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        InfomaxBSS
            The fitted instance of the decomposition model.
        """
        self._fit_transform(x)
        return self

    def fit_transform(self, x: Signal) -> pd.DataFrame:
        """Fit the decomposition model on the given data and compute the estimated sources.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        DataFrame
            A DataFrame with shape (n_samples, n_components) containing the sources, sorted by VAF.
        """
        return self._fit_transform(x)

    def transform(self, x: Signal) -> pd.DataFrame:
        """Compute the estimated sources using the fitted decomposition model.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        DataFrame
            A DataFrame with shape (n_samples, n_components) containing the sources, sorted by VAF.
        """
        assert (
            self._mean_vec is not None and self._unmixing_mtx is not None
        ), "Mean vector or unmixing matrix are null, fit the model first."

        x_tensor = signal_to_tensor(x, self._device)
        sources = (x_tensor - self._mean_vec) @ self._unmixing_mtx

        return self._to_frame(sources, x)

    def _to_frame(self, sources: torch.Tensor, x: Signal) -> pd.DataFrame:
        """Pack the sources in a DataFrame, preserving the index of the input if available."""
        return pd.DataFrame(
            data=sources.cpu().numpy(),
            index=x.index if isinstance(x, (pd.DataFrame, pd.Series)) else None,
            columns=component_names(sources.size(1)),
        )

    def _fit_transform(self, x: Signal) -> pd.DataFrame:
        """Helper method for fit and fit_transform."""
        x_tensor = signal_to_tensor(x, self._device)
        n_samp, n_ch = x_tensor.size()

        if self._pca_model is None:
            rank = int(torch.linalg.matrix_rank(x_tensor).item())
            if rank < n_ch:
                raise ValueError(f"Matrix is not full rank ({rank} < {n_ch}).")

        block_size = (
            self._block_size
            if self._block_size is not None
            else default_block_size(n_samp)
        )

        # 1. Centering
        if self._centre:
            if self._verbose:
                logging.info("Removing column means...")
            x_tensor, self._mean_vec = preprocessing.center_signal(x_tensor, self._device)
        else:
            self._mean_vec = torch.zeros(n_ch, dtype=x_tensor.dtype, device=self._device)

        # 2. PCA reduction
        if self._pca_model is not None:
            x_red = self._pca_model.reduce_training(x_tensor)
            pca_rot = self._pca_model.rotation
        else:
            if self._verbose:
                logging.info("No reduction in dimensions by PCA.")
            x_red = x_tensor
            pca_rot = None

        # 3. Whitening + ICA
        start = time.time()
        self._ica_model = InfomaxICA(block_size=block_size, **self._ica_kw)
        self._ica_model.decompose_training(x_red)
        if self._verbose:
            logging.info(f"ICA running time: {time.time() - start:.3f} s")

        n_comp = x_red.size(1)
        whiten_model = self._ica_model.whiten_model
        self._white_mtx = (
            whiten_model.white_mtx
            if whiten_model is not None
            else torch.eye(n_comp, dtype=x_red.dtype, device=self._device)
        )

        # 4. Mixing and unmixing matrices sorted by VAF
        self._mixing_mtx, self._unmixing_mtx, self._vaf = assemble_decomposition(
            self._ica_model.sep_mtx.T, self._white_mtx, pca_rot
        )

        sources = x_tensor @ self._unmixing_mtx

        return self._to_frame(sources, x)
