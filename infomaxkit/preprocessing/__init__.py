"""Preprocessing of multichannel signals: centering, PCA reduction and whitening.


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

from ._abc_whitening import WhiteningModel
from ._pca_reduction import PCAReduction
from ._pca_whitening import PCAWhitening
from ._sqrtm_whitening import SqrtmWhitening
from ._utils import center_signal, covariance, eigendecomposition
from ._zca_whitening import ZCAWhitening

__all__ = [
    "WhiteningModel",
    "PCAReduction",
    "PCAWhitening",
    "SqrtmWhitening",
    "ZCAWhitening",
    "center_signal",
    "covariance",
    "eigendecomposition",
]
