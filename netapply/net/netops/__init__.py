# This file is part of netapply. See LICENSE file for license information.
"""Interfaces to the host's adapter inventory and network stack.

Implementations raise netapply.subp.ProcessExecutionError when the
underlying operation fails.
"""

from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional


class Adapter(NamedTuple):
    """A physical adapter as reported by the inventory."""

    name: str
    mac: str
    device_id: Optional[str] = None


class AdapterInventory(ABC):
    @abstractmethod
    def list_adapters(self) -> List[Adapter]:
        """Return the physical adapters present on the host."""

    @abstractmethod
    def rename_adapter(self, current_name: str, new_name: str):
        """Rename adapter current_name to new_name."""

    @abstractmethod
    def adapter_exists(self, name: str) -> bool:
        """Check whether an adapter with this name is present."""


class NetOps(ABC):
    @abstractmethod
    def set_dhcp(self, interface: str):
        """Source the interface's IPv4 address from DHCP."""

    @abstractmethod
    def reset_ipv6(self, interface: str):
        """Remove manually configured IPv6 addresses and routes."""

    @abstractmethod
    def add_ipv4_address(self, interface: str, address: str, netmask: str):
        pass

    @abstractmethod
    def add_ipv6_address(self, interface: str, cidr: str):
        pass

    @abstractmethod
    def add_ipv4_route(
        self,
        interface: str,
        destination: str,
        *,
        gateway: Optional[str] = None,
        metric: Optional[int] = None
    ):
        pass

    @abstractmethod
    def add_ipv6_route(
        self,
        interface: str,
        destination: str,
        *,
        gateway: Optional[str] = None,
        metric: Optional[int] = None
    ):
        pass

    @abstractmethod
    def set_primary_dns(self, interface: str, server: str):
        """Replace the interface's DNS servers with server."""

    @abstractmethod
    def add_dns(self, interface: str, server: str, index: int):
        """Add server at position index; the primary server is index 1."""

    @abstractmethod
    def set_mtu(self, interface: str, mtu: int):
        pass
