"""SSDP-style discovery messages.

Devices answer an M-SEARCH probe with an HTTP-like header block:

    HTTP/1.1 200 OK
    Cache-Control: max-age=3600
    Location: yeelight://192.168.1.239:55443
    id: 0x000000000015243f
    model: color
    support: get_prop set_default set_power toggle set_bright ...

Only the Location header is needed to reach the device; the rest is kept
as-is for callers that want it.
"""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

from ..protocol.constants import DEFAULT_COMMAND_PORT, LOCATION_HEADER, PROBE_MESSAGE
from ..protocol.endpoint import Endpoint
from ..protocol.errors import InvalidHostnameError
from ..protocol.session import DeviceSession


def build_probe() -> bytes:
    """The fixed M-SEARCH datagram."""
    return PROBE_MESSAGE.encode("ascii")


@dataclass
class DiscoveredDevice:
    """A device that answered a probe. Not connected."""
    endpoint: Endpoint
    source_address: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def device_id(self) -> Optional[str]:
        return self.headers.get("id")

    @property
    def model(self) -> Optional[str]:
        return self.headers.get("model")

    def to_session(self, **kwargs) -> DeviceSession:
        """Build a session for this device (kwargs go to DeviceSession)."""
        return DeviceSession(self.endpoint.address, self.endpoint.port, **kwargs)


def endpoint_from_location(location: str) -> Optional[Endpoint]:
    """Parse a Location URI into an endpoint; None if it has no usable host."""
    try:
        parts = urlsplit(location.strip())
        port = parts.port
    except ValueError:
        return None
    if not parts.hostname:
        return None
    try:
        return Endpoint.resolve(parts.hostname, DEFAULT_COMMAND_PORT if port is None else port)
    except InvalidHostnameError:
        return None


def parse_headers(text: str) -> dict[str, str]:
    """Collect "Name: value" lines, names lower-cased. Status line skipped."""
    headers = {}
    for line in text.split("\r\n"):
        name, sep, value = line.partition(":")
        if not sep or " " in name.strip():
            continue
        headers[name.strip().lower()] = value.strip()
    return headers


def parse_reply(data: bytes, source_address: str) -> Optional[DiscoveredDevice]:
    """Build a DiscoveredDevice from one reply datagram.

    Returns None for anything that is not a reply we understand: no Location
    header, or a Location that is not a URI with a resolvable host. Header
    values are free text (devices let users set a name), so bad bytes are
    replaced rather than rejected.
    """
    text = data.decode("utf-8", errors="replace")

    endpoint = None
    for line in text.split("\r\n"):
        if line.startswith(LOCATION_HEADER):
            endpoint = endpoint_from_location(line[len(LOCATION_HEADER):])
            break
    if endpoint is None:
        return None
    return DiscoveredDevice(endpoint, source_address, parse_headers(text))
