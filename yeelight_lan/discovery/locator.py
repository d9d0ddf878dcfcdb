"""Multicast device discovery.

Sends M-SEARCH probes to the discovery group from one interface and
collects the unicast replies. Each probe gets its own receive window that
ends at the first receive timeout.
"""

import logging
import socket
import struct
from typing import Optional, Union

from ..config import settings
from ..protocol.constants import DISCOVERY_PORT, MULTICAST_GROUP
from ..protocol.errors import DiscoveryUnavailableError
from .interfaces import NetworkInterface, find_interface, is_usable_for_multicast, list_interfaces
from .ssdp import DiscoveredDevice, build_probe, parse_reply

logger = logging.getLogger(__name__)

RECV_SIZE = 4096


def _create_socket() -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    return sock


def _join_on_interface(nic: NetworkInterface) -> Optional[socket.socket]:
    """Open a socket on the first of nic's addresses that can join the group.

    The returned socket also sends multicast out of that address.
    """
    if not is_usable_for_multicast(nic):
        logger.debug("Interface %s not usable for multicast", nic.name)
        return None

    group = socket.inet_aton(MULTICAST_GROUP)
    for address in nic.ipv4_addresses:
        local = socket.inet_aton(address)
        sock = _create_socket()
        try:
            sock.bind((address, 0))
            sock.setsockopt(
                socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, struct.pack("4s4s", group, local)
            )
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, local)
        except OSError as e:
            sock.close()
            logger.debug("Joining %s via %s (%s) failed: %s", MULTICAST_GROUP, nic.name, address, e)
            continue
        logger.info("Joined %s on %s (%s)", MULTICAST_GROUP, nic.name, address)
        return sock
    return None


def _resolve_interface(
    network_interface: Union[NetworkInterface, str, None],
) -> Optional[NetworkInterface]:
    if isinstance(network_interface, NetworkInterface):
        return network_interface
    name = network_interface or settings.discovery_interface
    if not name:
        return None
    nic = find_interface(name)
    if nic is None:
        raise DiscoveryUnavailableError(f"No such network interface: {name}")
    return nic


def open_discovery_socket(
    network_interface: Union[NetworkInterface, str, None] = None,
) -> tuple[socket.socket, NetworkInterface]:
    """Return a UDP socket joined to the discovery group, and its interface.

    Raises DiscoveryUnavailableError if no interface can join.
    """
    nic = _resolve_interface(network_interface)
    if nic is not None:
        sock = _join_on_interface(nic)
        if sock is None:
            raise DiscoveryUnavailableError(
                f"Failed to join multicast group {MULTICAST_GROUP} on {nic.name}"
            )
        return sock, nic

    for candidate in list_interfaces():
        sock = _join_on_interface(candidate)
        if sock is not None:
            return sock, candidate
    raise DiscoveryUnavailableError(
        f"No network interface could join multicast group {MULTICAST_GROUP}"
    )


def _collect_replies(sock: socket.socket, devices: dict[str, DiscoveredDevice]) -> None:
    """Receive until the socket times out, recording new devices."""
    while True:
        try:
            data, addr = sock.recvfrom(RECV_SIZE)
        except socket.timeout:
            return
        source = addr[0]
        if source in devices:
            continue
        device = parse_reply(data, source)
        if device is None:
            logger.debug("Ignoring non-device datagram from %s", source)
            continue
        devices[source] = device
        logger.info("Discovered %s at %s", device.model or "device", device.endpoint)


def discover_devices(
    timeout: Optional[float] = None,
    probe_count: Optional[int] = None,
    network_interface: Union[NetworkInterface, str, None] = None,
) -> list[DiscoveredDevice]:
    """Probe the LAN and return the devices that answered.

    Args:
        timeout: Seconds to wait for each reply before closing a probe's window.
        probe_count: Number of probes to send.
        network_interface: Interface (or its name) to probe from. Default:
            the first interface that can join the multicast group.

    Returns:
        Discovered devices, one per source address, in the order they answered.

    Raises:
        DiscoveryUnavailableError: If no interface can join the group, or a
            probe cannot be sent on the one that did.
    """
    if timeout is None:
        timeout = settings.discovery_timeout
    if probe_count is None:
        probe_count = settings.discovery_probe_count
    if probe_count <= 0:
        return []

    devices: dict[str, DiscoveredDevice] = {}
    probe = build_probe()
    target = (MULTICAST_GROUP, DISCOVERY_PORT)

    sock, nic = open_discovery_socket(network_interface)
    with sock:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 0)
        sock.settimeout(timeout)

        for i in range(probe_count):
            try:
                sock.sendto(probe, target)
            except OSError as e:
                raise DiscoveryUnavailableError(
                    f"Failed to send probe via {nic.name}: {e}"
                ) from e
            logger.debug("Sent probe %d/%d via %s", i + 1, probe_count, nic.name)
            _collect_replies(sock, devices)

    return list(devices.values())
