"""
Class implementing sphering by the inverse square root of the covariance matrix.


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


class SqrtmWhitening(WhiteningModel):
    """
    Class implementing the sphering used by EEGLAB and MNE-Python, namely ``2 * inv(sqrtm(C))``.

    The sphered signal has covariance ``4 * I``.

    Parameters
    ----------
    device : device or str, default="cpu"
        Torch device.

    Attributes
    ----------
    _device : device
        Torch device.
    """

    def _compute_white_mtx(self, cov_mtx: torch.Tensor) -> torch.Tensor:
        e, d = eigendecomposition(cov_mtx)
        return 2.0 * e @ torch.diag(1.0 / torch.sqrt(d)) @ torch.linalg.pinv(e)
