"""
PowerLink - Network Info
========================
Finds the address other devices on the LAN should use to reach this PC.

Nothing here is cached: every call re-enumerates the interfaces, so the
result follows the machine when it joins another Wi-Fi network or a
cable gets plugged in while the server is running.

Usage:
    ip = primary_ipv4()        # "192.168.1.20" or None when offline
    url = base_url()           # "http://192.168.1.20:8000" or ""
"""

import ipaddress
import logging
import socket

import psutil

from powerlink import PORT

logger = logging.getLogger(__name__)


def _is_loopback(stats, addrs) -> bool:
    """True for the loopback interface, judged by its flags or addresses."""
    flags = getattr(stats, "flags", "") or ""
    if "loopback" in flags.split(","):
        return True
    for addr in addrs:
        if addr.family != socket.AF_INET:
            continue
        try:
            if ipaddress.IPv4Address(addr.address).is_loopback:
                return True
        except ValueError:
            continue
    return False


def primary_ipv4() -> str | None:
    """
    Return the first IPv4 address bound to an up, non-loopback interface.

    Interfaces are visited in the order the OS enumerates them, addresses
    in the order listed for that interface.

    Returns:
        Dotted-quad address string, or None if no interface qualifies.
        Never raises: an unreadable interface table counts as offline.
    """
    try:
        all_addrs = psutil.net_if_addrs()
        all_stats = psutil.net_if_stats()
    except (OSError, RuntimeError) as e:
        logger.debug("Interface enumeration failed: %s", e)
        return None

    for name, addrs in all_addrs.items():
        stats = all_stats.get(name)
        if stats is None or not stats.isup:
            continue
        if _is_loopback(stats, addrs):
            continue
        for addr in addrs:
            if addr.family == socket.AF_INET and addr.address:
                return addr.address
    return None


def base_url(port: int = PORT) -> str:
    """
    Build the connection URL clients use to reach the control server.

    Args:
        port: Port the server listens on.

    Returns:
        "http://<ip>:<port>", or "" when no address is available.
    """
    ip = primary_ipv4()
    if ip is None:
        return ""
    return f"http://{ip}:{port}"
