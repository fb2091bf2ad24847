"""Function assembling the mixing and unmixing matrices of an ICA decomposition.


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

from ..ica import pinv


def component_names(n_comp: int) -> list[str]:
    """Labels of the components in rank order, i.e., "Comp001", "Comp002", and so on."""
    return [f"Comp{i + 1:03d}" for i in range(n_comp)]


def vaf(mixing_mtx: torch.Tensor) -> torch.Tensor:
    """Compute the variance accounted for by each component of a mixing matrix.

    Parameters
    ----------
    mixing_mtx : Tensor
        Mixing matrix with shape (n_channels, n_components).

    Returns
    -------
    Tensor
        Fraction of variance accounted for by each component, summing to 1.
    """
    comp_var = (mixing_mtx**2).sum(dim=0)
    return comp_var / comp_var.sum()


def assemble_decomposition(
    weights: torch.Tensor,
    white_mtx: torch.Tensor,
    pca_rot: torch.Tensor | None = None,
) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """Combine the learned weights with the whitening matrix to obtain the mixing and unmixing matrices
    in the original feature space, with components sorted by descending variance accounted for.

    Parameters
    ----------
    weights : Tensor
        Learned weights with shape (n_components, n_components), applied as ``x_w @ weights``.
    white_mtx : Tensor
        Whitening matrix with shape (n_components, n_components), applied as ``x_w = x @ white_mtx.T``.
    pca_rot : Tensor or None, default=None
        Principal axes with shape (n_channels, n_components), if PCA reduction was applied.

    Returns
    -------
    Tensor
        Mixing matrix with shape (n_channels, n_components).
    Tensor
        Unmixing matrix with shape (n_channels, n_components), such that ``sources = x @ unmixing``.
    Tensor
        Variance accounted for by each component, in descending order.
    """
    unmix_mtx = weights.T @ white_mtx
    mixing_mtx = pinv(unmix_mtx)

    if pca_rot is not None:
        mixing_mtx = pca_rot @ mixing_mtx

    # Sort components by VAF
    comp_vaf = vaf(mixing_mtx)
    vaf_order = torch.argsort(comp_vaf, descending=True)
    mixing_mtx = mixing_mtx[:, vaf_order]

    # The unmixing matrix must be derived again from the reordered mixing matrix
    unmixing_mtx = pinv(mixing_mtx).T

    return mixing_mtx, unmixing_mtx, comp_vaf[vaf_order]
