# This file is part of netapply. See LICENSE file for license information.
"""Locate the network configuration document on an attached config drive."""

import logging
import os
from typing import List, Optional, Sequence

from netapply.exceptions import ConfigNotFoundError
from netapply.net.netops.windows import PowerShell

LOG = logging.getLogger(__name__)

VOLUME_QUERY = (
    "Get-Volume | Where-Object { $_.DriveLetter }"
    " | Select-Object @{n='DriveLetter';e={[string]$_.DriveLetter}},"
    " FileSystemLabel"
)


def find_config_drives(
    labels: Sequence[str], powershell: Optional[PowerShell] = None
) -> List[str]:
    """Return root paths of lettered volumes whose label is in labels.

    Drives are ordered by the position of their label in labels.
    """
    powershell = powershell or PowerShell()
    found = []
    for volume in powershell.run_json(VOLUME_QUERY):
        letter = (volume.get("DriveLetter") or "").strip()
        label = volume.get("FileSystemLabel") or ""
        if letter and label in labels:
            found.append((labels.index(label), "%s:\\" % letter))
    found.sort()
    return [root for _idx, root in found]


def find_network_config(
    labels: Sequence[str],
    filename: str,
    powershell: Optional[PowerShell] = None,
) -> str:
    """Return the path to filename on the first config drive holding it.

    @raises: ConfigNotFoundError when no config drive has the file.
    """
    drives = find_config_drives(labels, powershell)
    if not drives:
        LOG.debug("No volume labelled any of %s", ", ".join(labels))
    for root in drives:
        path = os.path.join(root, filename)
        if os.path.isfile(path):
            LOG.info("Found network configuration at %s", path)
            return path
        LOG.debug("Config drive %s has no %s", root, filename)
    raise ConfigNotFoundError(
        "No config drive labelled %s holds %s"
        % ("/".join(labels), filename)
    )
