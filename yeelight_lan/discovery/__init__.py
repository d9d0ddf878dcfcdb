"""Device discovery - SSDP-style multicast probing."""

from .interfaces import NetworkInterface, find_interface, is_usable_for_multicast, list_interfaces
from .locator import discover_devices, open_discovery_socket
from .ssdp import DiscoveredDevice, parse_reply

__all__ = [
    "DiscoveredDevice",
    "NetworkInterface",
    "discover_devices",
    "find_interface",
    "is_usable_for_multicast",
    "list_interfaces",
    "open_discovery_socket",
    "parse_reply",
]
