"""
Class implementing the ZCA whitening algorithm.


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

import torch

from ._abc_whitening import WhiteningModel
from ._utils import eigendecomposition


class ZCAWhitening(WhiteningModel):
    """
    Class implementing ZCA whitening.

    The whitening matrix is the inverse square root of the covariance matrix; with ``use_cor=True``
    it is the inverse square root of the correlation matrix times the inverse standard deviations.

    Parameters
    ----------
    use_cor : bool, default=False
        Whether to use the correlation matrix rather than the covariance matrix ("ZCA-cor").
    device : device or str, default="cpu"
        Torch device.

    Attributes
    ----------
    _use_cor : bool
        Whether to use the correlation matrix rather than the covariance matrix.
    _device : device
        Torch device.
    """

    def __init__(self, use_cor: bool = False, device: torch.device | str = "cpu") -> None:
        super().__init__(device)
        self._use_cor = use_cor

    def _compute_white_mtx(self, cov_mtx: torch.Tensor) -> torch.Tensor:
        if self._use_cor:
            inv_std = torch.diag(1.0 / torch.sqrt(torch.diagonal(cov_mtx)))
            cor_mtx = inv_std @ cov_mtx @ inv_std
            e, d = eigendecomposition(cor_mtx)
            return e @ torch.diag(1.0 / torch.sqrt(d)) @ e.T @ inv_std

        e, d = eigendecomposition(cov_mtx)
        return e @ torch.diag(1.0 / torch.sqrt(d)) @ e.T
