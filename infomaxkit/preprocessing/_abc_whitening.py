"""Interface for whitening algorithms.


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

from abc import ABC, abstractmethod

import torch

from .._base import Signal, signal_to_tensor
from ._utils import covariance


class WhiteningModel(ABC):
    """Interface for performing whitening.

    The whitening matrix is estimated from the covariance of the signal and applied as
    ``x_w = x @ white_mtx.T``; the signal is not centered by the model.
    """

    def __init__(self, device: torch.device | str = "cpu") -> None:
        self._device = torch.device(device) if isinstance(device, str) else device

        self._white_mtx: torch.Tensor = None  # type: ignore
        self._cov_mtx: torch.Tensor = None  # type: ignore

    @property
    def white_mtx(self) -> torch.Tensor:
        """Tensor: Property for getting the estimated whitening matrix."""
        return self._white_mtx

    @property
    def cov_mtx(self) -> torch.Tensor:
        """Tensor: Property for getting the covariance matrix."""
        return self._cov_mtx

    @abstractmethod
    def _compute_white_mtx(self, cov_mtx: torch.Tensor) -> torch.Tensor:
        """Compute the whitening matrix from the covariance matrix."""

    def whiten_training(self, x: Signal) -> torch.Tensor:
        """Train the whitening model to whiten the given signal.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        Tensor
            White signal with shape (n_samples, n_components).

        Raises
        ------
        TypeError
            If the input is neither an array, a DataFrame/Series nor a Tensor.
        ValueError
            If the input is not 2D.
        """
        x_tensor = signal_to_tensor(x, self._device)

        self._cov_mtx = covariance(x_tensor)
        self._white_mtx = self._compute_white_mtx(self._cov_mtx)

        return x_tensor @ self._white_mtx.T

    def whiten_inference(self, x: Signal) -> torch.Tensor:
        """Whiten the given signal using the frozen whitening model.

        Parameters
        ----------
        x : Signal
            A signal with shape (n_samples, n_channels).

        Returns
        -------
        Tensor
            White signal with shape (n_samples, n_components).

        Raises
        ------
        TypeError
            If the input is neither an array, a DataFrame/Series nor a Tensor.
        ValueError
            If the input is not 2D.
        """
        assert self._white_mtx is not None, "Fit the model first."

        x_tensor = signal_to_tensor(x, self._device)

        return x_tensor @ self._white_mtx.T
