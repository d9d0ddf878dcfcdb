"""TCP socket wrapper for the device command connection.

Provides a thin abstraction over a connected socket with whole-payload
writes, stale-input draining and CRLF line reads.
"""

import logging
import socket
from typing import Optional

from .constants import CRLF
from .errors import DeviceConnectionError, DeviceTimeoutError

logger = logging.getLogger(__name__)

RECV_SIZE = 1024


class DeviceConnection:
    """Owns exactly one connected TCP socket."""

    def __init__(self, sock: socket.socket, timeout: Optional[float] = None):
        self._sock: Optional[socket.socket] = sock
        self._buffer = b""
        self.timeout = timeout
        sock.settimeout(timeout)
        try:
            self.peer = sock.getpeername()
        except OSError:
            self.peer = None

    @classmethod
    def open(cls, address: str, port: int, connect_timeout: float,
             timeout: Optional[float] = None) -> "DeviceConnection":
        """Connect to address:port. Raises DeviceConnectionError on failure."""
        try:
            sock = socket.create_connection((address, port), timeout=connect_timeout)
        except OSError as e:
            raise DeviceConnectionError(
                f"Could not connect to {address}:{port}: {e}"
            ) from e
        logger.info("Connected to %s:%d", address, port)
        return cls(sock, timeout)

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def close(self) -> None:
        """Close the socket."""
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None
                self._buffer = b""
            logger.info("Closed connection to %s", self.peer)

    def send(self, data: bytes) -> bool:
        """Write the whole payload in one call.

        Returns True only if every byte was accepted. A transport error
        releases the socket, since the peer is gone.
        """
        if self._sock is None:
            return False
        try:
            sent = self._sock.send(data)
        except OSError as e:
            logger.warning("Send to %s failed: %s", self.peer, e)
            self.close()
            return False
        logger.debug("TX: %r", data)
        if sent != len(data):
            logger.warning("Short write to %s: %d/%d bytes", self.peer, sent, len(data))
            return False
        return True

    def drain(self) -> int:
        """Discard bytes already buffered on the socket. Returns the count."""
        if self._sock is None:
            return 0
        dropped = len(self._buffer)
        self._buffer = b""
        self._sock.setblocking(False)
        try:
            while True:
                chunk = self._sock.recv(RECV_SIZE)
                if not chunk:
                    break
                dropped += len(chunk)
        except (BlockingIOError, InterruptedError):
            pass
        except OSError as e:
            self.close()
            raise DeviceConnectionError(f"Connection to {self.peer} lost: {e}") from e
        finally:
            if self._sock is not None:
                self._sock.settimeout(self.timeout)
        if dropped:
            logger.debug("Drained %d stale bytes from %s", dropped, self.peer)
        return dropped

    def read_line(self) -> Optional[bytes]:
        """Read one CRLF-terminated message (terminator stripped).

        Returns None if the peer closed with nothing pending. Raises
        DeviceTimeoutError if no complete line arrives within the timeout.
        """
        if self._sock is None:
            return None
        while CRLF not in self._buffer:
            try:
                chunk = self._sock.recv(RECV_SIZE)
            except socket.timeout as e:
                raise DeviceTimeoutError(
                    f"No reply from {self.peer} within {self.timeout}s"
                ) from e
            except OSError as e:
                raise DeviceConnectionError(f"Receive from {self.peer} failed: {e}") from e
            if not chunk:
                # Peer closed: whatever is left is the final message
                rest, self._buffer = self._buffer, b""
                rest = rest.strip()
                if rest:
                    logger.debug("RX: %r", rest)
                return rest or None
            self._buffer += chunk
        line, self._buffer = self._buffer.split(CRLF, 1)
        logger.debug("RX: %r", line)
        return line

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
