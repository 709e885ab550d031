# This file is part of netapply. See LICENSE file for license information.

from enum import Enum


class ConfigErrorReason(Enum):
    CONFIG_NOT_FOUND = "config-not-found"
    MISSING_SECTION = "missing-section"

    def __str__(self):  # pylint: disable=invalid-str-returned
        return self.value


class NetapplyError(Exception):
    pass


class ConfigError(NetapplyError):
    """Fatal problem with the network configuration document."""

    def __init__(self, reason: ConfigErrorReason, msg: str):
        super().__init__(msg)
        self.reason = reason


class ConfigNotFoundError(ConfigError):
    def __init__(self, msg: str):
        super().__init__(ConfigErrorReason.CONFIG_NOT_FOUND, msg)


class MissingSectionError(ConfigError):
    def __init__(self, section: str):
        super().__init__(
            ConfigErrorReason.MISSING_SECTION,
            "Network configuration has no top-level '%s' mapping" % section,
        )
        self.section = section


class SettingsError(NetapplyError):
    pass
