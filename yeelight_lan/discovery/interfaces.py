"""Network interface enumeration for multicast discovery.

Wraps psutil's per-interface address and status tables, adding the OS
interface index needed to join a multicast group.
"""

import socket
from dataclasses import dataclass, field
from typing import Optional

import psutil


@dataclass
class NetworkInterface:
    name: str
    index: Optional[int]  # None if the OS reports no index
    ipv4_addresses: list[str] = field(default_factory=list)
    is_up: bool = False
    supports_multicast: bool = False


def _interface_index(name: str) -> Optional[int]:
    try:
        return socket.if_nametoindex(name)
    except OSError:
        return None


def _supports_multicast(flags: str) -> bool:
    # psutil only reports flags on POSIX; elsewhere assume capable
    if not flags:
        return True
    return "multicast" in flags.split(",")


def list_interfaces() -> list[NetworkInterface]:
    """Return every interface the OS reports, in enumeration order."""
    addrs = psutil.net_if_addrs()
    stats = psutil.net_if_stats()
    result = []
    for name, entries in addrs.items():
        st = stats.get(name)
        result.append(NetworkInterface(
            name=name,
            index=_interface_index(name),
            ipv4_addresses=[a.address for a in entries if a.family == socket.AF_INET],
            is_up=bool(st and st.isup),
            supports_multicast=bool(st) and _supports_multicast(getattr(st, "flags", "")),
        ))
    return result


def is_usable_for_multicast(nic: NetworkInterface) -> bool:
    """Up, multicast-capable, has an IPv4 address and a valid index."""
    if not nic.ipv4_addresses:
        return False  # most VPN adapters land here
    if not nic.supports_multicast:
        return False
    if not nic.is_up:
        return False
    return nic.index is not None and nic.index > 0


def find_interface(name: str) -> Optional[NetworkInterface]:
    """Look up one interface by name."""
    for nic in list_interfaces():
        if nic.name == name:
            return nic
    return None
