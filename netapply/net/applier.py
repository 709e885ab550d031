# This file is part of netapply. See LICENSE file for license information.
"""Drive the network stack so each resolved adapter matches its configuration.

Every step is best-effort: a failed command is recorded and logged and the
next command runs anyway.  The one exception is a failed rename, after
which nothing more is done for that adapter since every later command
addresses it by name.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from netapply.net import (
    IPV4_DEFAULT_ROUTE,
    IPV6_DEFAULT_ROUTE,
    is_ipv6_address,
    is_unspecified_gateway,
    net_prefix_to_ipv4_mask,
    normalize_mac,
    split_cidr,
)
from netapply.net.netops import Adapter, AdapterInventory, NetOps
from netapply.net.network_config import RouteSpec
from netapply.net.resolver import ResolvedAdapter
from netapply.net.results import ApplyResult, Reason, RunReport, Status
from netapply.subp import ProcessExecutionError

LOG = logging.getLogger(__name__)

STEP_RENAME = "rename"
STEP_RESET = "reset"
STEP_ADDRESS = "address"
STEP_ROUTE = "route"
STEP_DNS = "dns"
STEP_MTU = "mtu"

DEFAULT_ROUTE_ALIASES = ("default",)


def _describe(func: Callable, args: Sequence, kwargs=None) -> str:
    params = [repr(a) for a in args]
    params.extend("%s=%r" % (k, v) for k, v in (kwargs or {}).items())
    return "%s(%s)" % (getattr(func, "__name__", str(func)), ", ".join(params))


class NetworkApplier:
    def __init__(
        self,
        inventory: AdapterInventory,
        netops: NetOps,
        adapters: Optional[Iterable[Adapter]] = None,
    ):
        """
        @param adapters: the inventory snapshot taken for resolution.  Names
            are tracked from it locally as renames happen; when omitted
            the inventory is listed once, on first use.
        """
        self.inventory = inventory
        self.netops = netops
        self._names: Optional[Dict[str, str]] = None
        if adapters is not None:
            self._names = self._names_from(adapters)

    @staticmethod
    def _names_from(adapters: Iterable[Adapter]) -> Dict[str, str]:
        return {a.name: normalize_mac(a.mac) for a in adapters}

    @property
    def names(self) -> Dict[str, str]:
        """Current adapter name -> normalized mac."""
        if self._names is None:
            self._names = self._names_from(self.inventory.list_adapters())
        return self._names

    def apply_all(
        self,
        resolved: Sequence[ResolvedAdapter],
        report: Optional[RunReport] = None,
    ) -> RunReport:
        """Apply every entry in the given order, whatever happens to each."""
        if report is None:
            report = RunReport()
        for entry in resolved:
            report.add_result(self.apply(entry))
        return report

    def apply(self, resolved: ResolvedAdapter) -> ApplyResult:
        spec = resolved.spec
        LOG.info(
            "Configuring interface %s (mac=%s) on adapter '%s'",
            resolved.key,
            resolved.mac,
            resolved.name,
        )
        result = ApplyResult(resolved.key, resolved.mac, resolved.name)
        if not self._rename(resolved, result):
            LOG.warning(
                "Interface %s: giving up on adapter '%s' after failed rename",
                resolved.key,
                resolved.name,
            )
            return result
        result.name = resolved.name

        self._reset(resolved, result)
        for address in spec.addresses:
            self._add_address(resolved, result, address)
        for route in spec.routes:
            self._add_route(resolved, result, route)
        self._set_dns(resolved, result, spec.nameservers)
        if spec.mtu is not None:
            self._run(
                resolved, result, STEP_MTU, self.netops.set_mtu, spec.mtu
            )
        return result

    def _run(
        self,
        resolved: ResolvedAdapter,
        result: ApplyResult,
        step: str,
        func: Callable,
        *args,
        **kwargs
    ) -> bool:
        """Run one network stack mutation against the working name."""
        args = (resolved.name,) + args
        command = _describe(func, args, kwargs)
        try:
            func(*args, **kwargs)
        except ProcessExecutionError as e:
            LOG.warning(
                "Interface %s (mac=%s): %s failed: %s",
                resolved.key,
                resolved.mac,
                command,
                e.summary,
            )
            LOG.debug("%s", e)
            result.add(
                step,
                Status.FAILED,
                Reason.COMMAND_FAILURE,
                e.summary,
                command,
            )
            return False
        LOG.debug("Interface %s: %s", resolved.key, command)
        result.add(step, Status.OK, command=command)
        return True

    def _rename(self, resolved: ResolvedAdapter, result: ApplyResult) -> bool:
        """Rename the adapter to its set-name, if it has one.

        Returns False only when the rename was attempted and failed.
        """
        target = resolved.spec.rename_target
        if target is None:
            return True

        current = resolved.name
        holder = self.names.get(target)
        if current == target or holder == resolved.mac:
            # Nothing to do, possibly renamed by an earlier run
            LOG.debug(
                "Interface %s: adapter already named '%s'",
                resolved.key,
                target,
            )
            resolved.name = target
            result.add(STEP_RENAME, Status.OK, detail="already named")
            return True

        if holder is not None:
            detail = (
                "name '%s' is held by adapter with mac=%s, keeping '%s'"
                % (target, holder, current)
            )
            LOG.warning(
                "[busy-target] Interface %s: cannot rename mac=%s: %s",
                resolved.key,
                resolved.mac,
                detail,
            )
            result.add(
                STEP_RENAME, Status.SKIPPED, Reason.RENAME_CONFLICT, detail
            )
            return True

        command = _describe(self.inventory.rename_adapter, (current, target))
        try:
            self.inventory.rename_adapter(current, target)
            confirmed = self.inventory.adapter_exists(target)
        except ProcessExecutionError as e:
            LOG.warning(
                "Interface %s (mac=%s): error renaming %s to %s: %s",
                resolved.key,
                resolved.mac,
                current,
                target,
                e.summary,
            )
            LOG.debug("%s", e)
            result.add(
                STEP_RENAME,
                Status.FAILED,
                Reason.RENAME_FAILED,
                e.summary,
                command,
            )
            return False
        if not confirmed:
            LOG.warning(
                "Interface %s (mac=%s): adapter '%s' not found after rename",
                resolved.key,
                resolved.mac,
                target,
            )
            result.add(
                STEP_RENAME,
                Status.FAILED,
                Reason.RENAME_FAILED,
                "adapter '%s' not present after rename" % target,
                command,
            )
            return False

        LOG.info(
            "Interface %s: renamed adapter '%s' to '%s'",
            resolved.key,
            current,
            target,
        )
        self.names.pop(current, None)
        self.names[target] = resolved.mac
        resolved.name = target
        result.add(STEP_RENAME, Status.OK, command=command)
        return True

    def _reset(self, resolved: ResolvedAdapter, result: ApplyResult):
        self._run(resolved, result, STEP_RESET, self.netops.set_dhcp)
        self._run(resolved, result, STEP_RESET, self.netops.reset_ipv6)

    def _add_address(
        self, resolved: ResolvedAdapter, result: ApplyResult, cidr: str
    ):
        try:
            address, prefix = split_cidr(cidr)
        except ValueError as e:
            LOG.warning("Interface %s: %s", resolved.key, e)
            result.add(
                STEP_ADDRESS, Status.FAILED, Reason.INVALID_VALUE, str(e)
            )
            return
        if is_ipv6_address(address):
            self._run(
                resolved,
                result,
                STEP_ADDRESS,
                self.netops.add_ipv6_address,
                "%s/%s" % (address, prefix),
            )
        else:
            self._run(
                resolved,
                result,
                STEP_ADDRESS,
                self.netops.add_ipv4_address,
                address,
                net_prefix_to_ipv4_mask(prefix),
            )

    def _add_route(
        self, resolved: ResolvedAdapter, result: ApplyResult, route: RouteSpec
    ):
        destination = route.to
        if destination in DEFAULT_ROUTE_ALIASES:
            if route.via and is_ipv6_address(route.via):
                destination = IPV6_DEFAULT_ROUTE
            else:
                destination = IPV4_DEFAULT_ROUTE
        gateway = None if is_unspecified_gateway(route.via) else route.via
        if is_ipv6_address(destination):
            func = self.netops.add_ipv6_route
        else:
            func = self.netops.add_ipv4_route
        self._run(
            resolved,
            result,
            STEP_ROUTE,
            func,
            destination,
            gateway=gateway,
            metric=route.metric,
        )

    def _set_dns(
        self,
        resolved: ResolvedAdapter,
        result: ApplyResult,
        nameservers: Sequence[str],
    ):
        # The first server replaces whatever the adapter held; the rest
        # follow at index 2, 3, ... in document order.
        for index, server in enumerate(nameservers, 1):
            if index == 1:
                self._run(
                    resolved,
                    result,
                    STEP_DNS,
                    self.netops.set_primary_dns,
                    server,
                )
            else:
                self._run(
                    resolved,
                    result,
                    STEP_DNS,
                    self.netops.add_dns,
                    server,
                    index,
                )


def apply_network_config(
    resolved: Sequence[ResolvedAdapter],
    inventory: AdapterInventory,
    netops: NetOps,
    adapters: Optional[List[Adapter]] = None,
    report: Optional[RunReport] = None,
) -> RunReport:
    """Apply resolved entries in order and return the run report."""
    applier = NetworkApplier(inventory, netops, adapters=adapters)
    return applier.apply_all(resolved, report)
