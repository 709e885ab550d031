# This file is part of netapply. See LICENSE file for license information.

import copy
import logging
import os
import sys
from typing import Dict, Mapping, Sequence, Union

import yaml

LOG = logging.getLogger(__name__)


def decode_binary(blob: Union[str, bytes], encoding="utf-8") -> str:
    # Converts a binary type into a text type using given encoding.
    return blob if isinstance(blob, str) else blob.decode(encoding=encoding)


def load_text_file(fname: Union[str, os.PathLike]) -> str:
    LOG.debug("Reading from %s", fname)
    with open(fname, "rb") as ifh:
        contents = ifh.read()
    LOG.debug("Read %s bytes from %s", len(contents), fname)
    # utf-8-sig drops the BOM that notepad.exe likes to write
    return decode_binary(contents, encoding="utf-8-sig")


def load_yaml(blob, default=None, allowed=(dict,)):
    loaded = default
    blob = decode_binary(blob)
    try:
        LOG.debug(
            "Attempting to load yaml from string "
            "of length %s with allowed root types %s",
            len(blob),
            allowed,
        )
        converted = yaml.safe_load(blob)
        if converted is None:
            LOG.debug("loaded blob returned None, returning default.")
            converted = default
        elif not isinstance(converted, allowed):
            raise TypeError(
                "Yaml load allows %s root types, but got %s instead"
                % (allowed, type(converted).__name__)
            )
        loaded = converted
    except (yaml.YAMLError, TypeError, ValueError) as e:
        msg = "Failed loading yaml blob"
        mark = getattr(e, "context_mark", None) or getattr(
            e, "problem_mark", None
        )
        if mark:
            msg += (
                '. Invalid format at line {line} column {col}: "{err}"'.format(
                    line=mark.line + 1, col=mark.column + 1, err=e
                )
            )
        else:
            msg += ". {err}".format(err=e)
        LOG.warning(msg)
    return loaded


def read_conf(fname) -> Dict:
    """Read a yaml config file and convert to dict.

    A missing file is an empty config.
    """
    try:
        config_file = load_text_file(fname)
    except FileNotFoundError:
        return {}
    return load_yaml(config_file, default={})


def mergemanydict(sources: Sequence[Mapping], reverse=False) -> dict:
    """Merge multiple dicts, the first source having the highest priority.

    Nested dicts are merged recursively; any other value present in an
    earlier source wins over the same key in a later one.

    mergemanydict([{"a": 1, "d": {"a": 3}}, {"a": 10, "d": {"b": 2}}])
    gives {"a": 1, "d": {"a": 3, "b": 2}}
    """
    if reverse:
        sources = list(reversed(sources))
    merged_cfg: dict = {}
    for cfg in sources:
        if cfg:
            merged_cfg = _merge_missing(merged_cfg, cfg)
    return merged_cfg


def _merge_missing(target: dict, source: Mapping) -> dict:
    for key, value in source.items():
        if key not in target:
            target[key] = copy.deepcopy(value)
        elif isinstance(target[key], dict) and isinstance(value, Mapping):
            target[key] = _merge_missing(target[key], value)
    return target


def error(msg, rc=1, fmt="Error:\n{}", sys_exit=False):
    r"""Print error to stderr and return or exit

    @param msg: message to print
    @param rc: return code (default: 1)
    @param fmt: format string for putting message in (default: 'Error:\n {}')
    @param sys_exit: exit when called (default: false)
    """
    print(fmt.format(msg), file=sys.stderr)
    if sys_exit:
        sys.exit(rc)
    return rc
