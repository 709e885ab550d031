# This file is part of netapply. See LICENSE file for license information.
"""Windows implementations of the adapter inventory and network operations.

Adapters are listed and renamed with the NetAdapter PowerShell cmdlets;
addresses, routes, DNS servers and MTU are set with netsh.
"""

import json
import logging
from typing import Dict, List, Optional, Tuple

from netapply import subp
from netapply.net.netops import Adapter, AdapterInventory, NetOps

LOG = logging.getLogger(__name__)

DEFAULT_NETSH = "netsh.exe"
DEFAULT_POWERSHELL = "powershell.exe"

# netsh fails on requests that are already satisfied, which is fine for us.
_ALREADY_DONE = ("already enabled", "already exists")


def ps_quote(value: str) -> str:
    """Quote value as a PowerShell single-quoted string literal."""
    return "'%s'" % str(value).replace("'", "''")


class _Runner:
    def __init__(self, executable: str, timeout=None, dry_run=False):
        self.executable = executable
        self.timeout = timeout
        self.dry_run = dry_run

    def _call(self, args: List[str]) -> subp.SubpResult:
        if self.dry_run:
            LOG.info("Dry run, not running: %s", " ".join(args))
            return subp.SubpResult("", "")
        return subp.subp(args, timeout=self.timeout)


class PowerShell(_Runner):
    def __init__(
        self, executable=DEFAULT_POWERSHELL, timeout=None, dry_run=False
    ):
        super().__init__(executable, timeout=timeout, dry_run=dry_run)

    def _argv(self, script: str) -> List[str]:
        return [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            "$ErrorActionPreference = 'Stop'; " + script,
        ]

    def run(self, script: str) -> subp.SubpResult:
        return self._call(self._argv(script))

    def run_json(self, script: str) -> list:
        """Run script piped to ConvertTo-Json and return a list of objects.

        Queries are read-only so they run in dry run mode too.
        """
        out, _err = subp.subp(
            self._argv("@(%s) | ConvertTo-Json -Compress" % script),
            timeout=self.timeout,
        )
        if not out or not out.strip():
            return []
        try:
            data = json.loads(out)
        except ValueError as e:
            raise subp.ProcessExecutionError(
                stdout=out,
                cmd=script,
                description="Unparseable PowerShell output",
                reason=e,
            ) from e
        # A single object is not wrapped in a list by ConvertTo-Json
        return data if isinstance(data, list) else [data]


class WindowsAdapterInventory(AdapterInventory):
    def __init__(self, powershell: Optional[PowerShell] = None):
        self.powershell = powershell or PowerShell()
        self._dry_renames = {}

    def list_adapters(self) -> List[Adapter]:
        adapters = []
        for item in self.powershell.run_json(
            "Get-NetAdapter -Physical"
            " | Select-Object Name, MacAddress, InterfaceGuid"
        ):
            name = item.get("Name")
            if not name:
                continue
            adapters.append(
                Adapter(
                    name=self._dry_renames.get(name, name),
                    mac=item.get("MacAddress") or "",
                    device_id=item.get("InterfaceGuid"),
                )
            )
        return adapters

    def rename_adapter(self, current_name: str, new_name: str):
        self.powershell.run(
            "Rename-NetAdapter -Name %s -NewName %s -Confirm:$false"
            % (ps_quote(current_name), ps_quote(new_name))
        )
        if self.powershell.dry_run:
            self._dry_renames[current_name] = new_name

    def adapter_exists(self, name: str) -> bool:
        return any(a.name == name for a in self.list_adapters())


class WindowsNetOps(NetOps, _Runner):
    def __init__(
        self,
        netsh=DEFAULT_NETSH,
        powershell: Optional[PowerShell] = None,
        timeout=None,
        dry_run=False,
    ):
        _Runner.__init__(self, netsh, timeout=timeout, dry_run=dry_run)
        self.powershell = powershell or PowerShell(
            timeout=timeout, dry_run=dry_run
        )
        # Last DNS list position used per (interface, family)
        self._dns_positions: Dict[Tuple[str, str], int] = {}

    def netsh(self, *args: str) -> subp.SubpResult:
        try:
            return self._call([self.executable, "interface", *args])
        except subp.ProcessExecutionError as e:
            output = "%s %s" % (e.stdout, e.stderr)
            if any(msg in output.lower() for msg in _ALREADY_DONE):
                LOG.debug("Nothing to do for netsh %s: %s", args, output)
                return subp.SubpResult(e.stdout, e.stderr)
            raise

    def set_dhcp(self, interface: str):
        self.netsh(
            "ipv4", "set", "address", "name=%s" % interface, "source=dhcp"
        )

    def reset_ipv6(self, interface: str):
        alias = ps_quote(interface)
        self.powershell.run(
            "Get-NetIPAddress -InterfaceAlias %s -AddressFamily IPv6"
            " -PrefixOrigin Manual -ErrorAction SilentlyContinue"
            " | Remove-NetIPAddress -Confirm:$false; "
            "Get-NetRoute -InterfaceAlias %s -AddressFamily IPv6"
            " -Protocol NetMgmt -ErrorAction SilentlyContinue"
            " | Remove-NetRoute -Confirm:$false" % (alias, alias)
        )

    def add_ipv4_address(self, interface: str, address: str, netmask: str):
        self.netsh(
            "ipv4",
            "add",
            "address",
            "name=%s" % interface,
            "address=%s" % address,
            "mask=%s" % netmask,
        )

    def add_ipv6_address(self, interface: str, cidr: str):
        self.netsh(
            "ipv6",
            "add",
            "address",
            "interface=%s" % interface,
            "address=%s" % cidr,
        )

    def _add_route(self, family, interface, destination, gateway, metric):
        args = [
            family,
            "add",
            "route",
            "prefix=%s" % destination,
            "interface=%s" % interface,
        ]
        if gateway:
            args.append("nexthop=%s" % gateway)
        if metric is not None:
            args.append("metric=%s" % metric)
        args.append("store=persistent")
        self.netsh(*args)

    def add_ipv4_route(
        self,
        interface: str,
        destination: str,
        *,
        gateway: Optional[str] = None,
        metric: Optional[int] = None,
    ):
        self._add_route("ipv4", interface, destination, gateway, metric)

    def add_ipv6_route(
        self,
        interface: str,
        destination: str,
        *,
        gateway: Optional[str] = None,
        metric: Optional[int] = None,
    ):
        self._add_route("ipv6", interface, destination, gateway, metric)

    @staticmethod
    def _dns_family(server: str) -> str:
        return "ipv6" if ":" in server else "ipv4"

    def _replace_dns(self, interface: str, server: str):
        family = self._dns_family(server)
        self.netsh(
            family,
            "set",
            "dnsservers",
            "name=%s" % interface,
            "source=static",
            "address=%s" % server,
            "register=primary",
            "validate=no",
        )
        self._dns_positions[(interface, family)] = 1

    def set_primary_dns(self, interface: str, server: str):
        for key in [k for k in self._dns_positions if k[0] == interface]:
            del self._dns_positions[key]
        self._replace_dns(interface, server)

    def add_dns(self, interface: str, server: str, index: int):
        """Add server to the DNS list of its address family.

        netsh keeps separate IPv4 and IPv6 lists, so index is translated to
        the next position in the server's own list.  The first server of a
        family replaces whatever that list held.
        """
        family = self._dns_family(server)
        position = self._dns_positions.get((interface, family))
        if position is None:
            LOG.debug(
                "DNS server %s (index %s) starts the %s list of %s",
                server,
                index,
                family,
                interface,
            )
            self._replace_dns(interface, server)
            return
        self.netsh(
            family,
            "add",
            "dnsservers",
            "name=%s" % interface,
            "address=%s" % server,
            "index=%s" % (position + 1),
            "validate=no",
        )
        self._dns_positions[(interface, family)] = position + 1

    def set_mtu(self, interface: str, mtu: int):
        self.netsh(
            "ipv4",
            "set",
            "subinterface",
            interface,
            "mtu=%s" % mtu,
            "store=persistent",
        )
