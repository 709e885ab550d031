# This file is part of netapply. See LICENSE file for license information.
"""Reader for the YAML subset used by network-config documents.

Only block mappings, block sequences (indented or not), plain or quoted
scalars and single-line flow sequences of scalars are understood.  Every
scalar stays a string; interpreting numbers is left to the consumer.
Lines that fit none of the supported forms are skipped.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional, Tuple, Union

import yaml

LOG = logging.getLogger(__name__)

# Sequence items seen under a mapping are parked under this key until the
# whole document is read.
LIST_MARKER = "\x00items"

_QUOTES = "\"'"
_KEY_SEPARATOR = re.compile(r":\s")
_COMMENT = re.compile(r"\s#")
_DOCUMENT_MARKERS = ("---", "...")

RawValue = Union[str, list, dict]


class NodeTypeError(TypeError):
    pass


class Node(ABC):
    """A value in the parsed tree: scalar, mapping or sequence."""

    kind = "node"

    def as_scalar(self) -> str:
        raise NodeTypeError("expected scalar, got %s" % self.kind)

    def as_mapping(self) -> "MappingNode":
        raise NodeTypeError("expected mapping, got %s" % self.kind)

    def as_sequence(self) -> "SequenceNode":
        raise NodeTypeError("expected sequence, got %s" % self.kind)

    @abstractmethod
    def to_python(self):
        """Return the plain str, dict or list this node stands for."""


class ScalarNode(Node):
    kind = "scalar"

    def __init__(self, value: str):
        self.value = value

    def as_scalar(self) -> str:
        return self.value

    def to_python(self) -> str:
        return self.value

    def __eq__(self, other):
        return isinstance(other, ScalarNode) and self.value == other.value

    def __repr__(self):
        return "ScalarNode(%r)" % self.value


class MappingNode(Node):
    kind = "mapping"

    def __init__(self, items: Optional[Dict[str, Node]] = None):
        self._items = dict(items or {})

    def as_mapping(self) -> "MappingNode":
        return self

    def get(self, key: str, default: Optional[Node] = None) -> Optional[Node]:
        return self._items.get(key, default)

    def keys(self):
        return self._items.keys()

    def items(self):
        return self._items.items()

    def to_python(self) -> dict:
        return {k: v.to_python() for k, v in self._items.items()}

    def __contains__(self, key):
        return key in self._items

    def __getitem__(self, key: str) -> Node:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self):
        return len(self._items)

    def __eq__(self, other):
        return isinstance(other, MappingNode) and self._items == other._items

    def __repr__(self):
        return "MappingNode(%r)" % self._items


class SequenceNode(Node):
    kind = "sequence"

    def __init__(self, items=None):
        self._items = tuple(items or ())

    def as_sequence(self) -> "SequenceNode":
        return self

    def to_python(self) -> list:
        return [v.to_python() for v in self._items]

    def __getitem__(self, index: int) -> Node:
        return self._items[index]

    def __iter__(self) -> Iterator[Node]:
        return iter(self._items)

    def __len__(self):
        return len(self._items)

    def __eq__(self, other):
        return isinstance(other, SequenceNode) and self._items == other._items

    def __repr__(self):
        return "SequenceNode(%r)" % (list(self._items),)


class _Frame:
    """An open mapping on the parse stack and the indent that opened it."""

    __slots__ = ("container", "indent", "opened_by_key")

    def __init__(self, container: dict, indent: int, opened_by_key: bool):
        self.container = container
        self.indent = indent
        self.opened_by_key = opened_by_key


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        inner = value[1:-1]
        if value[0] == "'":
            return inner.replace("''", "'")
        return inner.replace('\\"', '"').replace("\\\\", "\\")
    return value


def _strip_comment(value: str) -> str:
    if not value:
        return value
    if value[:1] in _QUOTES:
        end = value.find(value[0], 1)
        if end != -1 and value[end + 1 :].strip().startswith("#"):
            return value[: end + 1]
        return value
    if value.startswith("#"):
        return ""
    match = _COMMENT.search(value)
    if match:
        return value[: match.start()].rstrip()
    return value


def _scalar_or_flow(value: str) -> RawValue:
    if value == "{}":
        return {}
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1].strip()
        if not inner:
            return []
        return [_unquote(v.strip()) for v in inner.split(",")]
    return _unquote(value)


def _split_key_value(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Split 'key: value' on the first colon followed by whitespace.

    Returns (key, value) where value is None for a bare 'key:' and
    (None, None) when text is not a mapping entry at all.
    """
    if text[:1] in _QUOTES:
        end = text.find(text[0], 1)
        rest = text[end + 1 :] if end != -1 else ""
        if not rest.startswith(":") or rest[1:2] not in ("", " ", "\t"):
            return None, None
        value = _strip_comment(rest[1:].strip()) if rest[1:].strip() else ""
        return text[1:end], value or None

    match = _KEY_SEPARATOR.search(text)
    if match is None:
        # 'fd00::' is an address, 'eth0:' is a key
        if text.endswith(":") and ":" not in text[:-1]:
            key = text[:-1].strip()
            return (key, None) if key else (None, None)
        return None, None
    key = text[: match.start()].strip()
    if not key:
        return None, None
    value = _strip_comment(text[match.end() :].strip())
    return key, value or None


def _dedent(stack: List[_Frame], indent: int, is_item: bool):
    while stack[-1].indent >= indent:
        top = stack[-1]
        if (
            is_item
            and top.indent == indent
            and top.opened_by_key
            and not [k for k in top.container if k != LIST_MARKER]
        ):
            # '- item' at the same column as its 'key:'
            break
        stack.pop()


def _add_item(stack: List[_Frame], text: str, indent: int, key_col: int):
    parent = stack[-1].container
    items = parent.setdefault(LIST_MARKER, [])
    key, value = _split_key_value(text) if text else (None, None)
    if key is None:
        items.append(_scalar_or_flow(_strip_comment(text)) if text else "")
        return
    entry: dict = {}
    items.append(entry)
    stack.append(_Frame(entry, indent, False))
    if value is None:
        child: dict = {}
        entry[key] = child
        stack.append(_Frame(child, key_col, True))
    else:
        entry[key] = _scalar_or_flow(value)


def _add_entry(stack: List[_Frame], text: str, indent: int, lineno: int):
    parent = stack[-1].container
    key, value = _split_key_value(text)
    if key is None:
        LOG.debug("Skipping unrecognized line %s: %r", lineno, text)
        return
    if value is None:
        child: dict = {}
        parent[key] = child
        stack.append(_Frame(child, indent, True))
    else:
        parent[key] = _scalar_or_flow(value)


def _to_node(value: RawValue) -> Node:
    if isinstance(value, dict):
        items = value.get(LIST_MARKER)
        entries = {k: v for k, v in value.items() if k != LIST_MARKER}
        if items is not None:
            if not entries:
                return SequenceNode([_to_node(i) for i in items])
            LOG.debug(
                "Dropping %s sequence items mixed with keys %s",
                len(items),
                list(entries),
            )
        return MappingNode({k: _to_node(v) for k, v in entries.items()})
    if isinstance(value, list):
        return SequenceNode([_to_node(i) for i in value])
    return ScalarNode(value)


def parse(text: str) -> Node:
    """Parse text in the supported YAML subset into a Node tree.

    Never raises for malformed input: lines that cannot be understood are
    skipped and callers are expected to validate what they need.
    """
    root: dict = {}
    stack = [_Frame(root, -1, False)]
    for lineno, line in enumerate(text.split("\n"), 1):
        line = line.rstrip("\r")
        content = line.strip()
        if (
            not content
            or content.startswith("#")
            or content in _DOCUMENT_MARKERS
        ):
            continue
        indent = len(line) - len(line.lstrip())
        is_item = content == "-" or content[:2] in ("- ", "-\t")
        _dedent(stack, indent, is_item)
        if is_item:
            text = content[1:].lstrip()
            key_col = indent + len(content) - len(text)
            _add_item(stack, text, indent, key_col)
        else:
            _add_entry(stack, content, indent, lineno)
    return _to_node(root)


def dumps(node: Node, explicit_start=True, explicit_end=True) -> str:
    """Return node as nicely formatted yaml."""
    return yaml.dump(
        node.to_python(),
        line_break="\n",
        indent=4,
        width=4096,
        sort_keys=False,
        explicit_start=explicit_start,
        explicit_end=explicit_end,
        default_flow_style=False,
        Dumper=yaml.dumper.SafeDumper,
    )
