# This file is part of netapply. See LICENSE file for license information.

import logging

import pytest

from netapply.net import network_config
from netapply.net.netops import Adapter
from netapply.net.resolver import resolution_order, resolve
from netapply.net.results import Reason, RunReport

CONFIG = """\
ethernets:
  eth2:
    match:
      macaddress: 00:00:00:00:00:02
  eth0:
    match:
      macaddress: 00:00:00:00:00:00
  eth1:
    match:
      macaddress: 00:00:00:00:00:01
"""

ADAPTERS = [
    Adapter("Ethernet", "00-00-00-00-00-00"),
    Adapter("Ethernet 2", "00-00-00-00-00-01"),
    Adapter("Ethernet 3", "00-00-00-00-00-02"),
]


class TestResolutionOrder:
    @pytest.mark.parametrize(
        "keys,expected",
        (
            (["eth0", "eth1", "eth2"], ["eth1", "eth0", "eth2"]),
            (["eth2", "eth0", "eth1"], ["eth1", "eth0", "eth2"]),
            (["wan", "eth0", "lan"], ["eth0", "wan", "lan"]),
            (["b", "a"], ["b", "a"]),
            ([], []),
        ),
    )
    def test_order(self, keys, expected):
        assert resolution_order(keys) == expected


class TestResolve:
    def test_all_matched_in_resolution_order(self):
        resolved = resolve(network_config.load(CONFIG), ADAPTERS)
        assert [(r.key, r.name) for r in resolved] == [
            ("eth1", "Ethernet 2"),
            ("eth0", "Ethernet"),
            ("eth2", "Ethernet 3"),
        ]
        assert resolved[0].mac == "00:00:00:00:00:01"

    def test_unmatched_spec_is_reported_and_skipped(self, caplog):
        report = RunReport()
        resolved = resolve(
            network_config.load(CONFIG), ADAPTERS[:1] + ADAPTERS[2:], report
        )
        assert [r.key for r in resolved] == ["eth0", "eth2"]
        assert [(u.key, u.mac, u.reason) for u in report.unmatched] == [
            ("eth1", "00:00:00:00:00:01", Reason.NO_MATCHING_ADAPTER)
        ]
        assert "[nic not present]" in caplog.text

    def test_unmatched_without_report(self):
        assert resolve(network_config.load(CONFIG), []) == []

    def test_spec_without_mac_is_skipped_quietly(self, caplog):
        config = network_config.load(
            "ethernets:\n  eth0:\n    set-name: LAN\n"
        )
        report = RunReport()
        assert resolve(config, ADAPTERS, report) == []
        assert report.unmatched == []
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    @pytest.mark.parametrize(
        "mac",
        ("AA:BB:CC:DD:EE:FF", "aa-bb-cc-dd-ee-ff", "aabb.ccdd.eeff"),
    )
    def test_mac_forms_match(self, mac):
        config = network_config.load(
            "ethernets:\n  lan:\n    match:\n      macaddress: '%s'\n" % mac
        )
        resolved = resolve(config, [Adapter("Ethernet", "AA-BB-CC-DD-EE-FF")])
        assert [r.name for r in resolved] == ["Ethernet"]

    def test_duplicate_mac_uses_first_adapter(self, caplog):
        config = network_config.load(
            "ethernets:\n  lan:\n    match:\n"
            "      macaddress: 00:00:00:00:00:00\n"
        )
        adapters = [ADAPTERS[0], Adapter("Team", "00:00:00:00:00:00")]
        resolved = resolve(config, adapters)
        assert [r.name for r in resolved] == ["Ethernet"]
        assert "matches adapters ['Ethernet', 'Team']" in caplog.text

    def test_adapters_without_mac_are_ignored(self):
        config = network_config.load(
            "ethernets:\n  lan:\n    match:\n      macaddress: ''\n"
        )
        assert resolve(config, [Adapter("Loopback", "")]) == []
