"""
Class implementing the PCA whitening algorithm.


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

import torch

from ._abc_whitening import WhiteningModel
from ._utils import eigendecomposition, fix_eigenvector_signs


class PCAWhitening(WhiteningModel):
    """
    Class implementing PCA whitening.

    The whitening matrix is ``diag(1 / sqrt(l)) @ U.T``, where ``U`` and ``l`` are the eigenvectors
    and eigenvalues of the covariance matrix; with ``use_cor=True`` the eigendecomposition is
    performed on the correlation matrix instead, and the result is scaled by the inverse standard deviations.

    Parameters
    ----------
    use_cor : bool, default=False
        Whether to decompose the correlation matrix rather than the covariance matrix ("PCA-cor").
    device : device or str, default="cpu"
        Torch device.

    Attributes
    ----------
    _use_cor : bool
        Whether to decompose the correlation matrix rather than the covariance matrix.
    _device : device
        Torch device.
    _eig_vecs : Tensor
        Eigenvectors, sorted by descending eigenvalue.
    _eig_vals : Tensor
        Eigenvalues, sorted in descending order.
    """

    def __init__(self, use_cor: bool = False, device: torch.device | str = "cpu") -> None:
        super().__init__(device)
        self._use_cor = use_cor

        self._eig_vecs: torch.Tensor = None  # type: ignore
        self._eig_vals: torch.Tensor = None  # type: ignore

    @property
    def eig_vecs(self) -> torch.Tensor:
        """Tensor: Property for getting the eigenvectors."""
        return self._eig_vecs

    @property
    def eig_vals(self) -> torch.Tensor:
        """Tensor: Property for getting the eigenvalues."""
        return self._eig_vals

    def _compute_white_mtx(self, cov_mtx: torch.Tensor) -> torch.Tensor:
        if self._use_cor:
            inv_std = torch.diag(1.0 / torch.sqrt(torch.diagonal(cov_mtx)))
            target_mtx = inv_std @ cov_mtx @ inv_std  # correlation matrix
        else:
            inv_std = torch.eye(cov_mtx.size(0), dtype=cov_mtx.dtype, device=cov_mtx.device)
            target_mtx = cov_mtx

        e, d = eigendecomposition(target_mtx)
        e = fix_eigenvector_signs(e)  # guarantee consistent sign
        self._eig_vecs, self._eig_vals = e, d

        logging.info(
            f"PCA whitening ({'correlation' if self._use_cor else 'covariance'}) of {cov_mtx.size(0)} channels."
        )
        d_mtx = torch.diag(1.0 / torch.sqrt(d))
        return d_mtx @ e.T @ inv_std
