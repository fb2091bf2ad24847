"""Learning rules for (extended) Infomax.


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


class LearningRule(ABC):
    """Interface for the natural-gradient learning rules of Infomax."""

    @property
    @abstractmethod
    def adapts_signs(self) -> bool:
        """bool: Property indicating whether the rule relies on the kurtosis-based sign vector."""

    @abstractmethod
    def nonlinearity(self, u: torch.Tensor) -> torch.Tensor:
        """Apply the component nonlinearity to the activations.

        Parameters
        ----------
        u : Tensor
            Activations with shape (block_size, n_components).

        Returns
        -------
        Tensor
            Nonlinear outputs with shape (block_size, n_components).
        """

    @abstractmethod
    def weight_update(
        self,
        weights: torch.Tensor,
        u: torch.Tensor,
        y: torch.Tensor,
        signs: torch.Tensor,
    ) -> torch.Tensor:
        """Compute the (unscaled) update of the weights matrix for one block.

        Parameters
        ----------
        weights : Tensor
            Current weights with shape (n_components, n_components).
        u : Tensor
            Activations with shape (block_size, n_components).
        y : Tensor
            Nonlinear outputs with shape (block_size, n_components).
        signs : Tensor
            Sign vector with shape (n_components,); ignored by the standard rule.

        Returns
        -------
        Tensor
            Weights update with shape (n_components, n_components).
        """

    @abstractmethod
    def bias_update(self, y: torch.Tensor) -> torch.Tensor:
        """Compute the (unscaled) update of the bias vector for one block.

        Parameters
        ----------
        y : Tensor
            Nonlinear outputs with shape (block_size, n_components).

        Returns
        -------
        Tensor
            Bias update with shape (n_components,).
        """


class ExtendedRule(LearningRule):
    """Extended Infomax rule (https://doi.org/10.1162/089976699300016719): tanh nonlinearity
    with per-component polarity given by the sign vector."""

    @property
    def adapts_signs(self) -> bool:
        return True

    def nonlinearity(self, u: torch.Tensor) -> torch.Tensor:
        return torch.tanh(u)

    def weight_update(
        self,
        weights: torch.Tensor,
        u: torch.Tensor,
        y: torch.Tensor,
        signs: torch.Tensor,
    ) -> torch.Tensor:
        block_size, n_comp = u.size()
        bi = block_size * torch.eye(n_comp, dtype=u.dtype, device=u.device)
        return weights @ (bi - signs[None, :] * (u.T @ y) - u.T @ u)

    def bias_update(self, y: torch.Tensor) -> torch.Tensor:
        return -2.0 * y.sum(dim=0)


class StandardRule(LearningRule):
    """Original Infomax rule (https://doi.org/10.1162/neco.1995.7.6.1129) with logistic nonlinearity."""

    @property
    def adapts_signs(self) -> bool:
        return False

    def nonlinearity(self, u: torch.Tensor) -> torch.Tensor:
        return torch.sigmoid(u)

    def weight_update(
        self,
        weights: torch.Tensor,
        u: torch.Tensor,
        y: torch.Tensor,
        signs: torch.Tensor,
    ) -> torch.Tensor:
        block_size, n_comp = u.size()
        bi = block_size * torch.eye(n_comp, dtype=u.dtype, device=u.device)
        return weights @ (bi + u.T @ (1.0 - 2.0 * y))

    def bias_update(self, y: torch.Tensor) -> torch.Tensor:
        return (1.0 - 2.0 * y).sum(dim=0)
