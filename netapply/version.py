# This file is part of netapply. See LICENSE file for license information.

__VERSION__ = "0.4.0"
_PACKAGED_VERSION = "@@PACKAGED_VERSION@@"

FEATURES = [
    # supports network config version 2 (netplan) ethernets
    "NETWORK_CONFIG_V2",
]


def version_string():
    """Extract a version string from netapply."""
    if not _PACKAGED_VERSION.startswith("@@"):
        return _PACKAGED_VERSION
    return __VERSION__
