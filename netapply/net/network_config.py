# This file is part of netapply. See LICENSE file for license information.

import logging
from typing import Dict, Iterator, NamedTuple, Optional, Tuple

from netapply import settings
from netapply.exceptions import MissingSectionError
from netapply.net import IPV4_DEFAULT_ROUTE, IPV6_DEFAULT_ROUTE, parser
from netapply.net.parser import MappingNode, Node, NodeTypeError

LOG = logging.getLogger(__name__)

NETWORK_CONFIG_VERSION = "2"


class RouteSpec(NamedTuple):
    to: str
    via: Optional[str] = None
    metric: Optional[int] = None


class InterfaceSpec(NamedTuple):
    """Declared state of one logical interface from the ethernets section."""

    key: str
    match_mac: Optional[str] = None
    set_name: Optional[str] = None
    addresses: Tuple[str, ...] = ()
    routes: Tuple[RouteSpec, ...] = ()
    nameservers: Tuple[str, ...] = ()
    mtu: Optional[int] = None

    @property
    def rename_target(self) -> Optional[str]:
        """The set-name value, or None when blank or absent."""
        if self.set_name and self.set_name.strip():
            return self.set_name.strip()
        return None


class NetworkConfig:
    """Ordered mapping of interface key to InterfaceSpec."""

    def __init__(self, interfaces: Dict[str, InterfaceSpec]):
        self._interfaces = dict(interfaces)

    def __getitem__(self, key: str) -> InterfaceSpec:
        return self._interfaces[key]

    def __contains__(self, key):
        return key in self._interfaces

    def __iter__(self) -> Iterator[str]:
        return iter(self._interfaces)

    def __len__(self):
        return len(self._interfaces)

    def keys(self):
        return self._interfaces.keys()

    def items(self):
        return self._interfaces.items()

    def values(self):
        return self._interfaces.values()

    def __repr__(self):
        return "NetworkConfig(%r)" % list(self._interfaces)


def _is_null(node: Optional[Node]) -> bool:
    # 'key:' with nothing below it reads as an empty mapping
    return node is None or (isinstance(node, MappingNode) and not len(node))


def _warn_field(key: str, field: str, problem):
    LOG.warning("Ignoring '%s' of interface '%s': %s", field, key, problem)


def _get_scalar(cfg: MappingNode, key: str, field: str) -> Optional[str]:
    node = cfg.get(field)
    if _is_null(node):
        return None
    try:
        return node.as_scalar()
    except NodeTypeError as e:
        _warn_field(key, field, e)
        return None


def _get_int(cfg: MappingNode, key: str, field: str) -> Optional[int]:
    value = _get_scalar(cfg, key, field)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        _warn_field(key, field, "'%s' is not an integer" % value)
        return None


def _get_mapping(cfg: MappingNode, key: str, field: str) -> MappingNode:
    node = cfg.get(field)
    if _is_null(node):
        return MappingNode()
    try:
        return node.as_mapping()
    except NodeTypeError as e:
        _warn_field(key, field, e)
        return MappingNode()


def _get_scalars(cfg: MappingNode, key: str, field: str) -> Tuple[str, ...]:
    node = cfg.get(field)
    if _is_null(node):
        return ()
    try:
        values = [item.as_scalar().strip() for item in node.as_sequence()]
    except NodeTypeError as e:
        _warn_field(key, field, e)
        return ()
    return tuple(v for v in values if v)


def _get_routes(cfg: MappingNode, key: str) -> Tuple[RouteSpec, ...]:
    node = cfg.get("routes")
    if _is_null(node):
        return ()
    try:
        entries = node.as_sequence()
    except NodeTypeError as e:
        _warn_field(key, "routes", e)
        return ()

    routes = []
    for idx, entry in enumerate(entries):
        field = "routes[%s]" % idx
        try:
            route = entry.as_mapping()
        except NodeTypeError as e:
            _warn_field(key, field, e)
            continue
        to = _get_scalar(route, key, "to")
        if not to or not to.strip():
            _warn_field(key, field, "missing 'to'")
            continue
        via = _get_scalar(route, key, "via")
        routes.append(
            RouteSpec(
                to=to.strip(),
                via=via.strip() if via and via.strip() else None,
                metric=_get_int(route, key, "metric"),
            )
        )
    return tuple(routes)


def _gateway_routes(cfg: MappingNode, key: str) -> Tuple[RouteSpec, ...]:
    routes = []
    for field, default in (
        ("gateway4", IPV4_DEFAULT_ROUTE),
        ("gateway6", IPV6_DEFAULT_ROUTE),
    ):
        gateway = _get_scalar(cfg, key, field)
        if gateway and gateway.strip():
            LOG.warning(
                "Interface '%s': '%s' is deprecated, use a route to %s"
                " instead",
                key,
                field,
                default,
            )
            routes.append(RouteSpec(to=default, via=gateway.strip()))
    return tuple(routes)


def interface_from_node(key: str, node: Node) -> InterfaceSpec:
    """Build the InterfaceSpec for one ethernets entry.

    Every field is optional; a malformed field is logged and replaced by
    its default rather than failing the document.
    """
    try:
        cfg = node.as_mapping()
    except NodeTypeError as e:
        _warn_field(key, "<entry>", e)
        cfg = MappingNode()

    match = _get_mapping(cfg, key, "match")
    match_mac = _get_scalar(match, key, "macaddress")
    if not match_mac or not match_mac.strip():
        LOG.debug('Interface %s: missing "macaddress" match criterion', key)
        match_mac = None

    addresses = _get_scalars(cfg, key, "addresses")
    for address in addresses:
        if "/" not in address:
            LOG.warning(
                "Interface '%s': address '%s' has no prefix length",
                key,
                address,
            )

    nameservers = _get_mapping(cfg, key, "nameservers")
    return InterfaceSpec(
        key=key,
        match_mac=match_mac.strip() if match_mac else None,
        set_name=_get_scalar(cfg, key, "set-name"),
        addresses=addresses,
        routes=_get_routes(cfg, key) + _gateway_routes(cfg, key),
        nameservers=_get_scalars(nameservers, key, "addresses"),
        mtu=_get_int(cfg, key, "mtu"),
    )


def from_tree(tree: Node) -> NetworkConfig:
    """Build the NetworkConfig from a parsed document.

    @raises: MissingSectionError if there is no top-level ethernets mapping.
    """
    section = settings.ETHERNETS_SECTION
    try:
        root = tree.as_mapping()
    except NodeTypeError as e:
        raise MissingSectionError(section) from e

    if section not in root and isinstance(root.get("network"), MappingNode):
        LOG.debug("Reading network config below top-level 'network' key")
        root = root["network"].as_mapping()

    version = root.get("version")
    if version is not None:
        try:
            value = version.as_scalar()
        except NodeTypeError:
            value = version.kind
        if value.strip() != NETWORK_CONFIG_VERSION:
            LOG.warning(
                "Network config version %s is not supported, reading it as"
                " version %s",
                value,
                NETWORK_CONFIG_VERSION,
            )

    ethernets = root.get(section)
    if not isinstance(ethernets, MappingNode):
        raise MissingSectionError(section)

    interfaces = {}
    for key, node in ethernets.items():
        interfaces[key] = interface_from_node(key, node)
        LOG.debug("v2(ethernets) -> %s", interfaces[key])
    return NetworkConfig(interfaces)


def load(text: str) -> NetworkConfig:
    """Parse network-config text into a NetworkConfig."""
    return from_tree(parser.parse(text))
