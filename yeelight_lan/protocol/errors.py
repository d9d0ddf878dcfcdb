"""Exception taxonomy for the device session and discovery layer."""

from typing import Optional


class LightControlError(Exception):
    """Base class for every error raised by this package."""


class ArgumentRangeError(LightControlError, ValueError):
    """An argument is outside its documented bounds."""

    def __init__(self, name: str, value: int, low: int, high: Optional[int] = None):
        self.name = name
        self.value = value
        self.low = low
        self.high = high
        bounds = f"{low} to {high}" if high is not None else f">= {low}"
        super().__init__(f"{name!r} must be {bounds}, got {value}")


class NotConnectedError(LightControlError):
    """The operation needs an open connection and there is none."""

    def __init__(self, message: str = "Device is not connected"):
        super().__init__(message)


class AlreadyInModeError(LightControlError):
    """A redundant mode transition was requested."""


class DeviceConnectionError(LightControlError, ConnectionError):
    """Transport-level connect or reconnect failure."""


class DeviceTimeoutError(LightControlError, TimeoutError):
    """A bounded wait expired."""


class ProtocolError(LightControlError):
    """Malformed reply, or a reply carrying an error object."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message if code is None else f"{message} (code {code})")


class InvalidHostnameError(LightControlError, ValueError):
    """A hostname could not be resolved to an address."""


class DiscoveryUnavailableError(LightControlError):
    """No network interface could join the discovery multicast group."""
