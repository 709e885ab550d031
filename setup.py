# This file is part of netapply. See LICENSE file for license information.

# Setuptools magic for netapply

import os
import sys

import setuptools

# Python-path here is a little unpredictable as setup.py could be run
# from a directory other than the root of the repo, so ensure we can find
# our utils
sys.path.insert(0, os.path.dirname(os.path.realpath(__file__)))
# isort: off
from setup_utils import get_version, read_requires  # noqa: E402

# isort: on
del sys.path[0]

requirements = read_requires()
test_requirements = read_requires("test-requirements.txt")

setuptools.setup(
    name="netapply",
    version=get_version(),
    description=(
        "Apply config-drive network configuration to Windows network"
        " adapters"
    ),
    packages=setuptools.find_packages(exclude=["tests.*", "tests"]),
    license="Dual-licensed under GPLv3 or Apache 2.0",
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={"test": test_requirements},
    entry_points={
        "console_scripts": [
            "netapply = netapply.cmd.main:main",
        ],
    },
)
