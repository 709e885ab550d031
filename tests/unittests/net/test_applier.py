# This file is part of netapply. See LICENSE file for license information.

import pytest

from netapply import settings
from netapply.net import network_config
from netapply.net.applier import (
    STEP_ADDRESS,
    STEP_RENAME,
    STEP_RESET,
    NetworkApplier,
    apply_network_config,
)
from netapply.net.netops import Adapter
from netapply.net.resolver import resolve
from netapply.net.results import Reason, RunReport, Status, StepResult
from tests.unittests.helpers import FakeInventory, RecordingNetOps

MAC = "AA:BB:CC:DD:EE:FF"

END_TO_END = """\
ethernets:
  eth0:
    match:
      macaddress: AA:BB:CC:DD:EE:FF
    set-name: "LAN"
    addresses:
      - 10.0.0.5/24
      - fd00::5/64
    routes:
      - to: 0.0.0.0/0
        via: 10.0.0.1
    nameservers:
      addresses: [8.8.8.8, 1.1.1.1]
    mtu: 1400
"""


def _interface(body, mac=MAC, key="eth0"):
    return "ethernets:\n  %s:\n    match:\n      macaddress: %s\n%s" % (
        key,
        mac,
        body,
    )


def _apply(text, inventory, netops):
    adapters = inventory.list_adapters()
    report = RunReport()
    resolved = resolve(network_config.load(text), adapters, report)
    return apply_network_config(
        resolved, inventory, netops, adapters=adapters, report=report
    )


class TestEndToEnd:
    def test_apply(self):
        inventory = FakeInventory([Adapter("Ethernet", "aa-bb-cc-dd-ee-ff")])
        netops = RecordingNetOps()
        report = _apply(END_TO_END, inventory, netops)

        assert inventory.calls == [
            ("list_adapters",),
            ("rename_adapter", "Ethernet", "LAN"),
            ("adapter_exists", "LAN"),
        ]
        assert netops.calls == [
            ("set_dhcp", "LAN"),
            ("reset_ipv6", "LAN"),
            ("add_ipv4_address", "LAN", "10.0.0.5", "255.255.255.0"),
            ("add_ipv6_address", "LAN", "fd00::5/64"),
            ("add_ipv4_route", "LAN", "0.0.0.0/0", "10.0.0.1", None),
            ("set_primary_dns", "LAN", "8.8.8.8"),
            ("add_dns", "LAN", "1.1.1.1", 2),
            ("set_mtu", "LAN", 1400),
        ]
        [result] = report.results
        assert result.ok
        assert result.name == "LAN"
        assert result.mac == "aa:bb:cc:dd:ee:ff"
        assert {s.status for s in result.steps} == {Status.OK}
        assert report.exit_code == settings.EXIT_OK

    def test_second_run_does_not_rename_again(self):
        inventory = FakeInventory([Adapter("Ethernet", MAC)])
        _apply(END_TO_END, inventory, RecordingNetOps())
        netops = RecordingNetOps()
        report = _apply(END_TO_END, inventory, netops)

        assert inventory.renames == [("Ethernet", "LAN")]
        assert netops.methods()[:2] == ["set_dhcp", "reset_ipv6"]
        assert report.results[0].ok


class TestRename:
    def test_already_named_is_not_renamed(self):
        inventory = FakeInventory([Adapter("LAN", MAC)])
        netops = RecordingNetOps()
        report = _apply(_interface("    set-name: LAN\n"), inventory, netops)

        assert inventory.renames == []
        [result] = report.results
        assert result.steps[0] == StepResult(
            STEP_RENAME, Status.OK, detail="already named"
        )
        assert netops.calls[0] == ("set_dhcp", "LAN")

    def test_no_set_name_keeps_adapter_name(self):
        inventory = FakeInventory([Adapter("Ethernet", MAC)])
        netops = RecordingNetOps()
        report = _apply(_interface("    mtu: 9000\n"), inventory, netops)

        assert inventory.renames == []
        assert report.results[0].steps[0].step == STEP_RESET
        assert netops.calls[-1] == ("set_mtu", "Ethernet", 9000)

    def test_name_held_by_other_adapter_is_a_conflict(self, caplog):
        inventory = FakeInventory(
            [Adapter("Ethernet", MAC), Adapter("LAN", "00:11:22:33:44:55")]
        )
        netops = RecordingNetOps()
        report = _apply(_interface("    set-name: LAN\n"), inventory, netops)

        assert inventory.renames == []
        [result] = report.results
        assert result.steps[0].status == Status.SKIPPED
        assert result.steps[0].reason == Reason.RENAME_CONFLICT
        assert result.name == "Ethernet"
        assert result.ok
        # configuration carries on under the original name
        assert netops.calls[0] == ("set_dhcp", "Ethernet")
        assert "[busy-target]" in caplog.text

    def test_eth1_rename_frees_name_for_eth0(self):
        # eth1's adapter currently holds the name eth0 wants
        inventory = FakeInventory(
            [
                Adapter("Ethernet", "00:00:00:00:00:00"),
                Adapter("eth1-old", "00:00:00:00:00:01"),
            ]
        )
        text = (
            "ethernets:\n"
            "  eth0:\n"
            "    match:\n"
            "      macaddress: 00:00:00:00:00:00\n"
            "    set-name: eth1-old\n"
            "  eth1:\n"
            "    match:\n"
            "      macaddress: 00:00:00:00:00:01\n"
            "    set-name: eth1\n"
        )
        report = _apply(text, inventory, RecordingNetOps())

        assert inventory.renames == [
            ("eth1-old", "eth1"),
            ("Ethernet", "eth1-old"),
        ]
        assert [(r.key, r.name, r.ok) for r in report.results] == [
            ("eth1", "eth1", True),
            ("eth0", "eth1-old", True),
        ]

    @pytest.mark.parametrize(
        "inventory_args,detail",
        (
            ({"fail_rename": True}, "exit code 1: No MSFT_NetAdapter"),
            ({"lose_rename": True}, "adapter 'LAN' not present after"),
        ),
    )
    def test_failed_rename_stops_only_that_entry(self, inventory_args, detail):
        inventory = FakeInventory(
            [
                Adapter("Ethernet", MAC),
                Adapter("Ethernet 2", "00:11:22:33:44:55"),
            ],
            **inventory_args,
        )
        netops = RecordingNetOps()
        text = _interface("    set-name: LAN\n", key="eth1") + (
            "  eth2:\n"
            "    match:\n"
            "      macaddress: 00:11:22:33:44:55\n"
            "    mtu: 1500\n"
        )
        report = _apply(text, inventory, netops)

        first, second = report.results
        assert first.name == "Ethernet"
        assert [(s.status, s.reason) for s in first.steps] == [
            (Status.FAILED, Reason.RENAME_FAILED)
        ]
        assert first.steps[0].detail.startswith(detail)
        assert first.steps[0].command == "rename_adapter('Ethernet', 'LAN')"
        assert second.ok
        # nothing was sent for the adapter whose rename failed
        assert {c[1] for c in netops.calls} == {"Ethernet 2"}
        assert report.failed == [first]
        assert report.exit_code == settings.EXIT_OK

    def test_names_are_read_from_inventory_without_snapshot(self):
        inventory = FakeInventory([Adapter("LAN", MAC)])
        spec = network_config.load(_interface("    set-name: LAN\n"))
        resolved = resolve(spec, inventory.adapters)
        applier = NetworkApplier(inventory, RecordingNetOps())
        result = applier.apply(resolved[0])

        assert inventory.calls == [("list_adapters",)]
        assert result.steps[0].detail == "already named"


class TestCommands:
    def test_command_failure_is_recorded_and_run_continues(self, caplog):
        inventory = FakeInventory([Adapter("Ethernet", MAC)])
        netops = RecordingNetOps(fail=["set_dhcp", "add_ipv4_address"])
        report = _apply(END_TO_END, inventory, netops)

        # every command is still attempted
        assert len(netops.calls) == 8
        [result] = report.results
        assert not result.ok
        assert [(s.step, s.command) for s in result.failures] == [
            (STEP_RESET, "set_dhcp('LAN')"),
            (
                STEP_ADDRESS,
                "add_ipv4_address('LAN', '10.0.0.5', '255.255.255.0')",
            ),
        ]
        assert {s.reason for s in result.failures} == {Reason.COMMAND_FAILURE}
        assert result.failures[0].detail == (
            "exit code 1: The parameter is incorrect."
        )
        assert (
            "Interface eth0 (mac=aa:bb:cc:dd:ee:ff): set_dhcp" in caplog.text
        )
        assert report.exit_code == settings.EXIT_OK

    def test_invalid_address_is_reported(self):
        inventory = FakeInventory([Adapter("Ethernet", MAC)])
        netops = RecordingNetOps()
        body = "    addresses: [10.0.0.5, 10.0.0.6/40, 10.0.0.7/8]\n"
        report = _apply(_interface(body), inventory, netops)

        failures = report.results[0].failures
        assert [(s.step, s.reason) for s in failures] == [
            (STEP_ADDRESS, Reason.INVALID_VALUE),
            (STEP_ADDRESS, Reason.INVALID_VALUE),
        ]
        assert "Missing prefix length" in failures[0].detail
        assert netops.calls[2:] == [
            ("add_ipv4_address", "Ethernet", "10.0.0.7", "255.0.0.0")
        ]

    @pytest.mark.parametrize(
        "route,expected",
        (
            (
                "      - to: 10.1.0.0/16\n        via: 10.0.0.2\n",
                ("add_ipv4_route", "10.1.0.0/16", "10.0.0.2", None),
            ),
            (
                "      - to: 10.1.0.0/16\n        via: 0.0.0.0\n",
                ("add_ipv4_route", "10.1.0.0/16", None, None),
            ),
            (
                "      - to: 10.1.0.0/16\n        metric: 20\n",
                ("add_ipv4_route", "10.1.0.0/16", None, 20),
            ),
            (
                "      - to: fd01::/64\n        via: '::'\n",
                ("add_ipv6_route", "fd01::/64", None, None),
            ),
            (
                "      - to: fd01::/64\n        via: fd00::1\n",
                ("add_ipv6_route", "fd01::/64", "fd00::1", None),
            ),
            (
                "      - to: default\n        via: 10.0.0.1\n",
                ("add_ipv4_route", "0.0.0.0/0", "10.0.0.1", None),
            ),
            (
                "      - to: default\n        via: fd00::1\n",
                ("add_ipv6_route", "::/0", "fd00::1", None),
            ),
        ),
    )
    def test_routes(self, route, expected):
        netops = RecordingNetOps()
        _apply(
            _interface("    routes:\n" + route),
            FakeInventory([Adapter("Ethernet", MAC)]),
            netops,
        )
        method, *args = expected
        assert netops.calls[2:] == [(method, "Ethernet", *args)]

    def test_dns_indexes_follow_document_order(self):
        netops = RecordingNetOps()
        body = (
            "    nameservers:\n"
            "      addresses:"
            " [8.8.8.8, '2001:4860:4860::8888', 1.1.1.1, 'fd00::54']\n"
        )
        _apply(
            _interface(body), FakeInventory([Adapter("Ethernet", MAC)]), netops
        )
        assert netops.calls[2:] == [
            ("set_primary_dns", "Ethernet", "8.8.8.8"),
            ("add_dns", "Ethernet", "2001:4860:4860::8888", 2),
            ("add_dns", "Ethernet", "1.1.1.1", 3),
            ("add_dns", "Ethernet", "fd00::54", 4),
        ]

    def test_reset_always_runs(self):
        netops = RecordingNetOps()
        _apply(
            _interface(""), FakeInventory([Adapter("Ethernet", MAC)]), netops
        )
        assert netops.calls == [
            ("set_dhcp", "Ethernet"),
            ("reset_ipv6", "Ethernet"),
        ]
