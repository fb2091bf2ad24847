"""
Class implementing dimensionality reduction by Principal Component Analysis.


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

from .._base import Signal, signal_to_tensor


class PCAReduction:
    """
    Class implementing PCA dimensionality reduction.

    Parameters
    ----------
    n_pcs : int or float
        Number of components to be selected:
        - if a float in (0, 1), it is the fraction of variance to be explained, and the number
        of components is one more than the number of components whose cumulative explained variance
        does not exceed it;
        - otherwise, it is the number of components (at least 2).
    device : device or str, default="cpu"
        Torch device.

    Attributes
    ----------
    _n_pcs_target : int or float
        Requested number of components or fraction of variance.
    _device : device
        Torch device.
    _n_pcs : int
        Number of retained components.
    _rotation : Tensor
        Principal axes with shape (n_channels, n_pcs).
    _explained_var : Tensor
        Cumulative fraction of variance explained by the principal components.
    """

    def __init__(self, n_pcs: int | float, device: torch.device | str = "cpu") -> None:
        assert n_pcs != 0 and n_pcs != 1, "Number of PCA components cannot be 0 or 1."
        assert (0 < n_pcs < 1) or (
            n_pcs > 1 and float(n_pcs).is_integer()
        ), "n_pcs must be either a fraction in (0, 1) or a whole number greater than 1."

        self._n_pcs_target = n_pcs
        self._device = torch.device(device) if isinstance(device, str) else device

        self._n_pcs: int = 0
        self._rotation: torch.Tensor = None  # type: ignore
        self._explained_var: torch.Tensor = None  # type: ignore

    @property
    def n_pcs(self) -> int:
        """int: Property for getting the number of retained principal components."""
        return self._n_pcs

    @property
    def rotation(self) -> torch.Tensor:
        """Tensor: Property for getting the principal axes with shape (n_channels, n_pcs)."""
        return self._rotation

    @property
    def explained_var(self) -> torch.Tensor:
        """Tensor: Property for getting the cumulative fraction of explained variance."""
        return self._explained_var

    def reduce_training(self, x: Signal) -> torch.Tensor:
        """
        Train the PCA model and project the given signal onto the retained principal axes.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        Tensor
            Reduced signal with shape (n_samples, n_pcs).

        Raises
        ------
        TypeError
            If the input is neither an array, a DataFrame nor a Tensor.
        ValueError
            If the input is not 2D.
        """
        x_tensor = signal_to_tensor(x, self._device)
        n_ch = x_tensor.size(1)

        # SVD of centered data:
        # - the right-singular vectors are the principal axes
        # - the squared singular values are proportional to the explained variance
        _, s, vt = torch.linalg.svd(x_tensor - x_tensor.mean(dim=0), full_matrices=False)
        rotation = vt.T
        signs = torch.sign(rotation[0])
        signs[signs == 0] = 1
        rotation *= signs  # guarantee consistent sign

        var = s**2
        self._explained_var = torch.cumsum(var, dim=0) / var.sum()

        # Select number of components to retain
        if self._n_pcs_target < 1:
            n_below = int(torch.sum(self._explained_var <= self._n_pcs_target).item())
            self._n_pcs = min(max(n_below + 1, 2), n_ch)
        else:
            self._n_pcs = int(self._n_pcs_target)
        assert (
            n_ch >= self._n_pcs
        ), f"Too few channels ({n_ch}) with respect to target components ({self._n_pcs})."

        logging.info(f"Reducing data to {self._n_pcs} dimensions using PCA.")
        self._rotation = rotation[:, : self._n_pcs]

        return x_tensor @ self._rotation

    def reduce_inference(self, x: Signal) -> torch.Tensor:
        """
        Project the given signal onto the principal axes of the frozen PCA model.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        Tensor
            Reduced signal with shape (n_samples, n_pcs).
        """
        assert self._rotation is not None, "Fit the model first."

        x_tensor = signal_to_tensor(x, self._device)
        return x_tensor @ self._rotation
