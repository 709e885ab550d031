# This file is part of netapply. See LICENSE file for license information.
"""Schema validation of netapply settings."""

import logging
from typing import List, Optional

from jsonschema import Draft4Validator, FormatChecker

from netapply.exceptions import SettingsError

LOG = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SETTINGS_SCHEMA = {
    "$schema": "http://json-schema.org/draft-04/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "config_drive": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "labels": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "minItems": 1,
                },
                "filename": {"type": "string", "minLength": 1},
            },
        },
        "log_level": {
            "type": "string",
            "enum": _LOG_LEVELS + [lvl.lower() for lvl in _LOG_LEVELS],
        },
        "log_file": {"type": ["string", "null"]},
        "commands": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "netsh": {"type": "string", "minLength": 1},
                "powershell": {"type": "string", "minLength": 1},
                "timeout": {"type": "integer", "minimum": 1},
            },
        },
    },
}


def settings_errors(config: dict, schema: Optional[dict] = None) -> List[str]:
    """Return a sorted list of 'path: message' problems with config."""
    validator = Draft4Validator(
        schema or SETTINGS_SCHEMA, format_checker=FormatChecker()
    )
    errors = []
    for schema_error in sorted(
        validator.iter_errors(config), key=lambda e: list(e.path)
    ):
        path = ".".join([str(p) for p in schema_error.path])
        errors.append("%s: %s" % (path or "<root>", schema_error.message))
    return errors


def validate_settings(config: dict, strict: bool = True) -> bool:
    """Validate provided settings meet the schema definition.

    @param strict: Boolean, when True raise SettingsError instead of
       logging warnings.
    @raises: SettingsError when config does not validate and strict is set.
    """
    errors = settings_errors(config)
    if not errors:
        return True
    message = "Invalid settings:\n" + "\n".join(errors)
    if strict:
        raise SettingsError(message)
    LOG.warning(message)
    return False
