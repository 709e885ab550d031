# This file is part of netapply. See LICENSE file for license information.

# Set and read for determining the settings file location
CFG_ENV_NAME = "NETAPPLY_CFG"

# Top-level section of the network configuration document
ETHERNETS_SECTION = "ethernets"

# What u get if no settings file is provided
CFG_BUILTIN = {
    "config_drive": {
        # Volume labels used by ConfigDrive and NoCloud seeds
        "labels": ["config-2", "CONFIG-2", "cidata", "CIDATA"],
        "filename": "network-config",
    },
    "log_level": "INFO",
    "log_file": None,
    "commands": {
        "netsh": "netsh.exe",
        "powershell": "powershell.exe",
        "timeout": 120,
    },
}

# Exit codes of the netapply command
EXIT_OK = 0
EXIT_CONFIG_NOT_FOUND = 1
EXIT_MISSING_SECTION = 2
EXIT_BAD_SETTINGS = 3
