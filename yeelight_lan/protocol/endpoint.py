"""Network endpoint of a device command connection."""

import ipaddress
import socket
from dataclasses import dataclass

from .constants import DEFAULT_COMMAND_PORT
from .errors import ArgumentRangeError, InvalidHostnameError


def check_port(port: int) -> int:
    if not 0 <= port <= 0xFFFF:
        raise ArgumentRangeError("port", port, 0, 0xFFFF)
    return port


@dataclass(frozen=True)
class Endpoint:
    address: str
    port: int = DEFAULT_COMMAND_PORT

    def __post_init__(self):
        check_port(self.port)

    @classmethod
    def resolve(cls, host: str, port: int = DEFAULT_COMMAND_PORT) -> "Endpoint":
        """Build an endpoint from an IP literal or a hostname.

        Hostnames are resolved once, here; the first IPv4 address wins.
        """
        check_port(port)
        try:
            address = str(ipaddress.ip_address(host))
        except ValueError:
            try:
                address = socket.gethostbyname(host)
            except (socket.gaierror, UnicodeError) as e:
                raise InvalidHostnameError(f"Cannot resolve host {host!r}: {e}") from e
        return cls(address, port)

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"
