"""Internal utility functions for ICA.


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


def pinv(a: torch.Tensor) -> torch.Tensor:
    """Helper function to compute the Moore-Penrose pseudoinverse with zero tolerance.

    Every strictly positive singular value is inverted, hence near-singular matrices
    do not fail but may yield numerically unstable results.
    """
    return torch.linalg.pinv(a, atol=0.0, rtol=0.0)


def excess_kurtosis(a: torch.Tensor) -> torch.Tensor:
    """Helper function to compute the excess kurtosis of each column, i.e., ``E[a^4] / E[a^2]^2 - 3``."""
    a2 = a * a
    return (a2 * a2).mean(dim=0) / a2.mean(dim=0) ** 2 - 3.0


class ConvergenceWarning(Warning):
    """Warning related to an algorithm not converging."""
