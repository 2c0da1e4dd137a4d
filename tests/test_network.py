import socket
from collections import namedtuple

import pytest

from powerlink import network

Addr = namedtuple("Addr", "family address netmask broadcast ptp")
Stats = namedtuple("Stats", "isup duplex speed mtu flags")


def v4(address):
    return Addr(socket.AF_INET, address, "255.255.255.0", None, None)


def v6(address):
    return Addr(socket.AF_INET6, address, None, None, None)


def up(flags="up,broadcast,running,multicast"):
    return Stats(True, 2, 1000, 1500, flags)


def down():
    return Stats(False, 0, 0, 1500, "broadcast,multicast")


@pytest.fixture
def interfaces(monkeypatch):
    """Install a fake interface table; returns a setter."""
    table = {"addrs": {}, "stats": {}}
    monkeypatch.setattr(network.psutil, "net_if_addrs", lambda: table["addrs"])
    monkeypatch.setattr(network.psutil, "net_if_stats", lambda: table["stats"])

    def _set(addrs, stats):
        table["addrs"] = addrs
        table["stats"] = stats

    return _set


def test_skips_loopback_and_returns_first_lan_address(interfaces):
    interfaces(
        {
            "lo": [v4("127.0.0.1"), v6("::1")],
            "eth0": [v6("fe80::1"), v4("192.168.1.20"), v4("192.168.1.21")],
            "wlan0": [v4("10.0.0.5")],
        },
        {"lo": up("up,loopback,running"), "eth0": up(), "wlan0": up()},
    )
    assert network.primary_ipv4() == "192.168.1.20"


def test_skips_interfaces_that_are_down(interfaces):
    interfaces(
        {"eth0": [v4("192.168.1.20")], "wlan0": [v4("10.0.0.5")]},
        {"eth0": down(), "wlan0": up()},
    )
    assert network.primary_ipv4() == "10.0.0.5"


def test_loopback_detected_by_address_without_flags(interfaces):
    interfaces(
        {"Loopback Pseudo-Interface 1": [v4("127.0.0.1")], "Ethernet": [v4("172.16.0.9")]},
        {"Loopback Pseudo-Interface 1": up(flags=""), "Ethernet": up(flags="")},
    )
    assert network.primary_ipv4() == "172.16.0.9"


def test_interface_without_stats_is_skipped(interfaces):
    interfaces({"eth0": [v4("192.168.1.20")]}, {})
    assert network.primary_ipv4() is None


def test_ipv6_only_interface_does_not_qualify(interfaces):
    interfaces({"eth0": [v6("fe80::1")]}, {"eth0": up()})
    assert network.primary_ipv4() is None


def test_enumeration_error_means_offline(monkeypatch):
    def boom():
        raise OSError("no netlink")

    monkeypatch.setattr(network.psutil, "net_if_addrs", boom)
    assert network.primary_ipv4() is None
    assert network.base_url() == ""


def test_base_url_empty_exactly_when_no_address(interfaces):
    interfaces({}, {})
    assert network.primary_ipv4() is None
    assert network.base_url() == ""


def test_base_url_uses_default_port(interfaces):
    interfaces({"eth0": [v4("192.168.1.20")]}, {"eth0": up()})
    assert network.base_url() == "http://192.168.1.20:8000"
    assert network.base_url(9000) == "http://192.168.1.20:9000"


def test_base_url_follows_interface_changes(interfaces):
    interfaces({"wlan0": [v4("192.168.1.20")]}, {"wlan0": up()})
    assert network.base_url() == "http://192.168.1.20:8000"

    interfaces({"wlan0": [v4("10.1.2.3")]}, {"wlan0": up()})
    assert network.base_url() == "http://10.1.2.3:8000"

    interfaces({"wlan0": [v4("10.1.2.3")]}, {"wlan0": down()})
    assert network.base_url() == ""
