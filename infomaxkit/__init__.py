"""A toolkit for blind source separation of multichannel signals by (extended) Infomax ICA.


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

from . import decomposition, ica, preprocessing, utils
from ._base import Signal, signal_to_array, signal_to_tensor
from .decomposition import InfomaxBSS, InfomaxDecomposition, run_infomax

__all__ = [
    "decomposition",
    "ica",
    "preprocessing",
    "utils",
    "Signal",
    "signal_to_array",
    "signal_to_tensor",
    "InfomaxBSS",
    "InfomaxDecomposition",
    "run_infomax",
]
