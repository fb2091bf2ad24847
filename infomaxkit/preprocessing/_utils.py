"""Internal utility functions for preprocessing.


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

import warnings

import torch

from .._base import Signal, signal_to_tensor


def center_signal(
    x: Signal, device: torch.device | None = None
) -> tuple[torch.Tensor, torch.Tensor]:
    """Remove the mean of each channel from the given signal.

    Parameters
    ----------
    x : Signal
        A signal with shape (n_samples, n_channels).
    device : device or None, default=None
        Torch device.

    Returns
    -------
    Tensor
        Centered signal with shape (n_samples, n_channels).
    Tensor
        Mean vector with shape (n_channels,).
    """
    x_tensor = signal_to_tensor(x, device)
    mean_vec = x_tensor.mean(dim=0)
    x_tensor -= mean_vec

    return x_tensor, mean_vec


def covariance(x_tensor: torch.Tensor) -> torch.Tensor:
    """Compute the unbiased covariance matrix of a given Tensor.

    Parameters
    ----------
    x_tensor : Tensor
        Input Tensor with shape (n_samples, n_channels).

    Returns
    -------
    Tensor
        Covariance matrix with shape (n_channels, n_channels).
    """
    n_samp = x_tensor.size(0)
    x_c = x_tensor - x_tensor.mean(dim=0)
    return x_c.T @ x_c / (n_samp - 1)


def eigendecomposition(cov_mtx: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
    """Perform eigendecomposition of a given covariance matrix.

    Parameters
    ----------
    cov_mtx : Tensor
        Symmetric matrix with shape (n_channels, n_channels).

    Returns
    -------
    Tensor:
        2D Tensor of eigenvectors sorted by the corresponding eigenvalue in descending order.
    Tensor:
        1D Tensor of eigenvalues sorted in descending order.
    """
    d, e = torch.linalg.eigh(cov_mtx)

    # Improve numerical stability
    eps = torch.finfo(d.dtype).eps
    degenerate_idx = torch.lt(d, eps).nonzero()
    if degenerate_idx.numel() > 0:
        warnings.warn(f"Some eigenvalues are smaller than epsilon ({eps:.3e}).")
    d[degenerate_idx] = eps

    sort_idx = torch.argsort(d, descending=True)
    d, e = d[sort_idx], e[:, sort_idx]

    return e, d


def fix_eigenvector_signs(e: torch.Tensor) -> torch.Tensor:
    """Flip the eigenvectors so that the diagonal of the eigenvector matrix is non-negative."""
    signs = torch.sign(torch.diagonal(e))
    signs[signs == 0] = 1
    return e * signs
