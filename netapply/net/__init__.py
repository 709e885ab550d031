# This file is part of netapply. See LICENSE file for license information.

import ipaddress
import re
from typing import Optional, Tuple

IPV4_UNSPECIFIED = "0.0.0.0"
IPV4_DEFAULT_ROUTE = "0.0.0.0/0"
IPV6_DEFAULT_ROUTE = "::/0"

_MAC_SEPARATORS = re.compile(r"[-.:]")
_HEX_DIGITS = re.compile(r"^[0-9a-f]+$")


def normalize_mac(mac: Optional[str]) -> str:
    """Return mac in canonical form: lowercase, ':' separated.

    '-' and '.' are accepted as separators, so 'AA-BB-CC-DD-EE-FF' and
    'aabb.ccdd.eeff' both give 'aa:bb:cc:dd:ee:ff'.  A value whose separated
    groups are not byte pairs is regrouped two hex digits at a time as long
    as it is pure hex; anything else only gets the separator and case fix.
    """
    if not mac:
        return ""
    mac = mac.strip().lower()
    groups = _MAC_SEPARATORS.split(mac)
    if all(len(g) == 2 for g in groups):
        return ":".join(groups)
    digits = "".join(groups)
    if len(digits) % 2 == 0 and _HEX_DIGITS.match(digits):
        return ":".join(digits[i : i + 2] for i in range(0, len(digits), 2))
    return _MAC_SEPARATORS.sub(":", mac)


def is_ipv6_address(address: str) -> bool:
    """Address family test used for CIDRs, routes and nameservers."""
    return ":" in address


def is_unspecified_gateway(gateway: Optional[str]) -> bool:
    """True for a missing gateway or the protocol's unspecified address."""
    if not gateway:
        return True
    try:
        return ipaddress.ip_address(gateway).is_unspecified
    except ValueError:
        return gateway == IPV4_UNSPECIFIED


def split_cidr(cidr: str) -> Tuple[str, int]:
    """Split 'ip/prefix' into (ip, prefix).

    @raises: ValueError when the prefix length is missing or out of range
        for the address family.
    """
    address, sep, prefix = cidr.strip().partition("/")
    if not sep or not prefix.strip():
        raise ValueError("Missing prefix length in address '%s'" % cidr)
    try:
        prefixlen = int(prefix)
    except ValueError as e:
        raise ValueError(
            "Invalid prefix length in address '%s'" % cidr
        ) from e
    maxlen = 128 if is_ipv6_address(address) else 32
    if not 0 <= prefixlen <= maxlen:
        raise ValueError(
            "Prefix length %s out of range in address '%s'" % (prefix, cidr)
        )
    return address.strip(), prefixlen


def net_prefix_to_ipv4_mask(prefix) -> str:
    """Convert a network prefix to an ipv4 netmask.

        24 -> "255.255.255.0"
    Also supports input as a string."""
    return str(ipaddress.IPv4Network(f"0.0.0.0/{prefix}").netmask)
