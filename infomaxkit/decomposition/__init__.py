"""Blind source separation of multichannel signals by Infomax ICA.


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

from ._assembly import assemble_decomposition, component_names, vaf
from ._infomax_bss import InfomaxBSS, InfomaxDecomposition, run_infomax

__all__ = [
    "assemble_decomposition",
    "component_names",
    "vaf",
    "InfomaxBSS",
    "InfomaxDecomposition",
    "run_infomax",
]
