# This file is part of netapply. See LICENSE file for license information.
"""Recording fakes for the adapter inventory and the network stack."""

from typing import Iterable, List, Optional

from netapply.net.netops import Adapter, AdapterInventory, NetOps
from netapply.subp import ProcessExecutionError


def command_failure(cmd="netsh.exe", stderr="The parameter is incorrect."):
    return ProcessExecutionError(stderr=stderr, exit_code=1, cmd=cmd)


class FakeInventory(AdapterInventory):
    """An in-memory adapter table.

    @param fail_rename: raise ProcessExecutionError from rename_adapter.
    @param lose_rename: accept rename_adapter calls without applying them,
        so the new name is never found afterwards.
    """

    def __init__(
        self,
        adapters: Iterable[Adapter] = (),
        fail_rename=False,
        lose_rename=False,
    ):
        self.adapters: List[Adapter] = list(adapters)
        self.fail_rename = fail_rename
        self.lose_rename = lose_rename
        self.calls: list = []

    def list_adapters(self) -> List[Adapter]:
        self.calls.append(("list_adapters",))
        return list(self.adapters)

    def rename_adapter(self, current_name: str, new_name: str):
        self.calls.append(("rename_adapter", current_name, new_name))
        if self.fail_rename:
            raise command_failure(
                "Rename-NetAdapter", "No MSFT_NetAdapter objects found"
            )
        if self.lose_rename:
            return
        self.adapters = [
            a._replace(name=new_name) if a.name == current_name else a
            for a in self.adapters
        ]

    def adapter_exists(self, name: str) -> bool:
        self.calls.append(("adapter_exists", name))
        return any(a.name == name for a in self.adapters)

    @property
    def renames(self) -> list:
        return [c[1:] for c in self.calls if c[0] == "rename_adapter"]


class RecordingNetOps(NetOps):
    """Record every call as a tuple of method name and arguments.

    Methods named in fail record their call and then raise
    ProcessExecutionError.
    """

    def __init__(self, fail: Optional[Iterable[str]] = None):
        self.calls: list = []
        self.fail = set(fail or ())

    def _record(self, method, *args):
        self.calls.append((method,) + args)
        if method in self.fail:
            raise command_failure()

    def set_dhcp(self, interface):
        self._record("set_dhcp", interface)

    def reset_ipv6(self, interface):
        self._record("reset_ipv6", interface)

    def add_ipv4_address(self, interface, address, netmask):
        self._record("add_ipv4_address", interface, address, netmask)

    def add_ipv6_address(self, interface, cidr):
        self._record("add_ipv6_address", interface, cidr)

    def add_ipv4_route(
        self, interface, destination, *, gateway=None, metric=None
    ):
        self._record("add_ipv4_route", interface, destination, gateway, metric)

    def add_ipv6_route(
        self, interface, destination, *, gateway=None, metric=None
    ):
        self._record("add_ipv6_route", interface, destination, gateway, metric)

    def set_primary_dns(self, interface, server):
        self._record("set_primary_dns", interface, server)

    def add_dns(self, interface, server, index):
        self._record("add_dns", interface, server, index)

    def set_mtu(self, interface, mtu):
        self._record("set_mtu", interface, mtu)

    def methods(self) -> List[str]:
        return [c[0] for c in self.calls]
