"""Device session and command protocol."""

from .constants import Effect, PowerState, SessionMode
from .endpoint import Endpoint
from .errors import (
    AlreadyInModeError,
    ArgumentRangeError,
    DeviceConnectionError,
    DeviceTimeoutError,
    DiscoveryUnavailableError,
    InvalidHostnameError,
    LightControlError,
    NotConnectedError,
    ProtocolError,
)
from .session import DeviceSession

__all__ = [
    "AlreadyInModeError",
    "ArgumentRangeError",
    "DeviceConnectionError",
    "DeviceSession",
    "DeviceTimeoutError",
    "DiscoveryUnavailableError",
    "Effect",
    "Endpoint",
    "InvalidHostnameError",
    "LightControlError",
    "NotConnectedError",
    "PowerState",
    "ProtocolError",
    "SessionMode",
]
