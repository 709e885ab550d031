# This file is part of netapply. See LICENSE file for license information.

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from netapply.net import normalize_mac
from netapply.net.netops import Adapter
from netapply.net.network_config import InterfaceSpec, NetworkConfig
from netapply.net.results import RunReport

LOG = logging.getLogger(__name__)

# Keys resolved (and so renamed) ahead of all others, in this order.  eth1
# goes first so that renaming it cannot collide with the name eth0 still
# holds at that point.
PRIORITY_KEYS = ("eth1", "eth0")


class ResolvedAdapter:
    """An InterfaceSpec paired with the adapter it matched.

    name starts as the adapter's name in the inventory snapshot and is
    updated by the applier after a rename.
    """

    def __init__(self, spec: InterfaceSpec, adapter: Adapter):
        self.spec = spec
        self.adapter = adapter
        self.name = adapter.name

    @property
    def key(self) -> str:
        return self.spec.key

    @property
    def mac(self) -> str:
        return normalize_mac(self.adapter.mac)

    def __repr__(self):
        return "ResolvedAdapter(key=%r, adapter=%r, name=%r)" % (
            self.key,
            self.adapter,
            self.name,
        )


def resolution_order(keys: Iterable[str]) -> List[str]:
    """Order interface keys: eth1, eth0, then the rest as given."""

    def rank(key):
        if key in PRIORITY_KEYS:
            return PRIORITY_KEYS.index(key)
        return len(PRIORITY_KEYS)

    # sorted() is stable so unranked keys keep their document order
    return sorted(keys, key=rank)


def adapters_by_mac(adapters: Sequence[Adapter]) -> Dict[str, List[Adapter]]:
    by_mac: Dict[str, List[Adapter]] = {}
    for adapter in adapters:
        mac = normalize_mac(adapter.mac)
        if not mac:
            LOG.debug("Ignoring adapter %s without mac address", adapter.name)
            continue
        by_mac.setdefault(mac, []).append(adapter)
    return by_mac


def resolve(
    config: NetworkConfig,
    adapters: Sequence[Adapter],
    report: Optional[RunReport] = None,
) -> List[ResolvedAdapter]:
    """Match each InterfaceSpec to a live adapter by mac address.

    The returned list is in resolution order, which is the order the
    entries must be applied in.  Specs without a mac match criterion are
    dropped quietly; specs whose mac matches nothing are dropped and added
    to report.
    """
    by_mac = adapters_by_mac(adapters)
    LOG.debug("Detected adapters %s", by_mac)

    resolved = []
    for key in resolution_order(config.keys()):
        spec = config[key]
        if not spec.match_mac:
            LOG.debug("Skipping interface %s: no match criterion", key)
            continue

        mac = normalize_mac(spec.match_mac)
        matches = by_mac.get(mac, [])
        if not matches:
            LOG.warning(
                "[nic not present] No adapter with mac=%s for interface %s",
                spec.match_mac,
                key,
            )
            if report is not None:
                report.add_unmatched(key, spec.match_mac)
            continue

        if len(matches) > 1:
            LOG.warning(
                "Interface %s: mac=%s matches adapters %s, using %s",
                key,
                mac,
                [a.name for a in matches],
                matches[0].name,
            )
        LOG.info(
            "Interface %s: matched adapter '%s' (mac=%s)",
            key,
            matches[0].name,
            mac,
        )
        resolved.append(ResolvedAdapter(spec, matches[0]))
    return resolved
