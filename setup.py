"""Setup script.


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

from setuptools import setup

setup(
    name="infomaxkit",
    version="1.0.0",
    description="A toolkit for blind source separation of multichannel signals by Infomax ICA",
    author="Mattia Orlandi",
    author_email="mattia.orlandi@unibo.it",
    packages=[
        "infomaxkit",
        "infomaxkit.decomposition",
        "infomaxkit.ica",
        "infomaxkit.preprocessing",
        "infomaxkit.tests",
    ],
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "torch",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
