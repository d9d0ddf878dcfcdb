"""yeelight-lan - LAN control client for Yeelight smart lights.

Provides a blocking device session speaking the JSON-over-TCP command
protocol (including the streaming "music" mode handoff) and SSDP-style
multicast discovery.
"""

__version__ = "0.1.0"

from .discovery import DiscoveredDevice, discover_devices
from .protocol import (
    AlreadyInModeError,
    ArgumentRangeError,
    DeviceConnectionError,
    DeviceSession,
    DeviceTimeoutError,
    DiscoveryUnavailableError,
    Effect,
    Endpoint,
    InvalidHostnameError,
    LightControlError,
    NotConnectedError,
    PowerState,
    ProtocolError,
    SessionMode,
)

__all__ = [
    "AlreadyInModeError",
    "ArgumentRangeError",
    "DeviceConnectionError",
    "DeviceSession",
    "DeviceTimeoutError",
    "DiscoveredDevice",
    "DiscoveryUnavailableError",
    "Effect",
    "Endpoint",
    "InvalidHostnameError",
    "LightControlError",
    "NotConnectedError",
    "PowerState",
    "ProtocolError",
    "SessionMode",
    "__version__",
    "discover_devices",
]
