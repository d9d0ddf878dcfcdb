"""Passive listener for the streaming-mode handoff.

When switched into streaming ("music") mode the device drops the command
connection and dials back to an address we give it. The listener is bound
before the request is sent, then polled at a fixed interval for a bounded
number of attempts.
"""

import logging
import select
import socket
import time
from typing import Optional

from .constants import HANDOFF_POLL_ATTEMPTS, HANDOFF_POLL_INTERVAL
from .errors import DeviceConnectionError, DeviceTimeoutError

logger = logging.getLogger(__name__)


class HandoffListener:
    """Bounded-lifetime TCP listener that accepts one inbound connection."""

    def __init__(self, address: str, port: int):
        self.address = address
        self.port = port
        self._sock: Optional[socket.socket] = None

    def start(self) -> None:
        """Bind and listen. Raises DeviceConnectionError if the bind fails."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.address, self.port))
            sock.listen(1)
        except OSError as e:
            sock.close()
            raise DeviceConnectionError(
                f"Could not listen on {self.address}:{self.port}: {e}"
            ) from e
        self._sock = sock
        # Port 0 asks the OS for a free port; report the real one
        self.port = sock.getsockname()[1]
        logger.debug("Handoff listener bound on %s:%d", self.address, self.port)

    def pending(self) -> bool:
        """True if an inbound connection is waiting to be accepted."""
        if self._sock is None:
            return False
        readable, _, _ = select.select([self._sock], [], [], 0)
        return bool(readable)

    def wait_for_connection(
        self,
        attempts: int = HANDOFF_POLL_ATTEMPTS,
        interval: float = HANDOFF_POLL_INTERVAL,
    ) -> socket.socket:
        """Poll for the device's inbound connection and accept it.

        Raises DeviceTimeoutError if nothing arrives within
        attempts * interval seconds.
        """
        if self._sock is None:
            raise RuntimeError("Handoff listener not started")
        for attempt in range(attempts + 1):
            if self.pending():
                conn, peer = self._sock.accept()
                logger.info("Accepted handoff connection from %s:%d", *peer[:2])
                return conn
            if attempt < attempts:
                time.sleep(interval)
        logger.warning(
            "No handoff connection on %s:%d after %d attempts",
            self.address, self.port, attempts,
        )
        raise DeviceTimeoutError(
            f"Device did not connect back to {self.address}:{self.port} "
            f"within {attempts * interval:.1f}s"
        )

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.debug("Handoff listener on %s:%d closed", self.address, self.port)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
