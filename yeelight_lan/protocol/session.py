"""Device session: connection lifecycle, commands and the streaming handoff.

A session owns at most one socket to one device. In normal mode every
command goes over the command connection the client opened. In streaming
("music") mode the device has dialled back to a listener we provided and
commands are pushed over that inbound connection without rate limiting.
"""

import itertools
import logging
from typing import Any, Iterable, Optional, Sequence

from ..config import settings
from .connection import DeviceConnection
from .constants import (
    BRIGHTNESS_MAX,
    BRIGHTNESS_MIN,
    CHANNEL_MAX,
    CHANNEL_MIN,
    COLOR_TEMP_MAX,
    COLOR_TEMP_MIN,
    METHOD_GET_PROP,
    METHOD_SET_BRIGHT,
    METHOD_SET_CT,
    METHOD_SET_MUSIC,
    METHOD_SET_POWER,
    METHOD_SET_RGB,
    METHOD_TOGGLE,
    MIN_DURATION_MS,
    Effect,
    PowerState,
    SessionMode,
)
from .endpoint import Endpoint
from .errors import (
    AlreadyInModeError,
    ArgumentRangeError,
    DeviceConnectionError,
    NotConnectedError,
    ProtocolError,
)
from .handoff import HandoffListener
from .messages import (
    Command,
    decode_message,
    encode_command,
    is_notification,
    parse_response,
    quote,
    token,
)

logger = logging.getLogger(__name__)


def check_range(name: str, value: int, low: int, high: Optional[int] = None) -> None:
    """Raise ArgumentRangeError unless low <= value (<= high)."""
    if value < low or (high is not None and value > high):
        raise ArgumentRangeError(name, value, low, high)


def pack_rgb(red: int, green: int, blue: int) -> int:
    """Pack three 8-bit channels into the 24-bit value the device expects."""
    return (red << 16) | (green << 8) | blue


class DeviceSession:
    """Client-side handle for one device's connection and protocol state."""

    def __init__(
        self,
        address: str,
        port: Optional[int] = None,
        connect_timeout: Optional[float] = None,
        response_timeout: Optional[float] = None,
        handoff_poll_interval: Optional[float] = None,
        handoff_poll_attempts: Optional[int] = None,
    ):
        self._endpoint = Endpoint.resolve(
            address, settings.command_port if port is None else port
        )
        self.connect_timeout = (
            settings.connect_timeout if connect_timeout is None else connect_timeout
        )
        self.response_timeout = (
            settings.response_timeout if response_timeout is None else response_timeout
        )
        self.handoff_poll_interval = (
            settings.handoff_poll_interval
            if handoff_poll_interval is None else handoff_poll_interval
        )
        self.handoff_poll_attempts = (
            settings.handoff_poll_attempts
            if handoff_poll_attempts is None else handoff_poll_attempts
        )
        self._conn: Optional[DeviceConnection] = None
        self._mode = SessionMode.NORMAL
        self._ids = itertools.count(1)

    def __repr__(self) -> str:
        return f"<DeviceSession {self._endpoint} mode={self.mode.value}>"

    # ---- endpoint ----

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    def set_endpoint(self, address: str, port: Optional[int] = None) -> None:
        """Point the session at another address. Takes effect on next connect."""
        self._endpoint = Endpoint.resolve(
            address, settings.command_port if port is None else port
        )

    # ---- state queries ----

    def is_connected(self) -> bool:
        return self._conn is not None and self._conn.is_open

    def is_streaming_mode(self) -> bool:
        # A dropped connection never reports streaming, even if the flag is stale
        return self._mode == SessionMode.STREAMING and self.is_connected()

    @property
    def mode(self) -> SessionMode:
        if self._mode == SessionMode.STREAMING and not self.is_connected():
            return SessionMode.NORMAL
        return self._mode

    # ---- connection lifecycle ----

    def connect(self) -> None:
        """Open the command connection. Raises DeviceConnectionError."""
        self._mode = SessionMode.NORMAL
        self._release()
        self._conn = DeviceConnection.open(
            self._endpoint.address,
            self._endpoint.port,
            connect_timeout=self.connect_timeout,
            timeout=self.response_timeout,
        )

    def close_connection(self) -> None:
        """Close the owned connection. Raises NotConnectedError if none."""
        self._require_connected()
        self._release()
        self._mode = SessionMode.NORMAL

    def _release(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _adopt(self, conn: DeviceConnection) -> None:
        """Take ownership of a new connection, dropping any prior one."""
        self._release()
        self._conn = conn

    def _require_connected(self) -> None:
        if not self.is_connected():
            raise NotConnectedError(f"Device {self._endpoint} is not connected")

    # ---- commands ----

    def _next_id(self) -> int:
        return next(self._ids)

    def send_command(self, method: str, params: Sequence[str] = ()) -> bool:
        """Send one pre-rendered command without waiting for a reply.

        Returns True only if the whole payload was written.
        """
        self._require_connected()
        cmd = Command(self._next_id(), method, list(params))
        return self._conn.send(encode_command(cmd))

    def set_brightness(
        self,
        brightness: int,
        duration: int = MIN_DURATION_MS,
        effect: Effect = Effect.SUDDEN,
    ) -> bool:
        check_range("duration", duration, MIN_DURATION_MS)
        check_range("brightness", brightness, BRIGHTNESS_MIN, BRIGHTNESS_MAX)
        self._require_connected()
        return self.send_command(
            METHOD_SET_BRIGHT, [token(brightness), token(effect), token(duration)]
        )

    def set_power(
        self,
        state: PowerState,
        duration: int = MIN_DURATION_MS,
        effect: Effect = Effect.SUDDEN,
    ) -> bool:
        check_range("duration", duration, MIN_DURATION_MS)
        self._require_connected()
        return self.send_command(
            METHOD_SET_POWER, [token(state), token(effect), token(duration)]
        )

    def set_color(
        self,
        red: int,
        green: int,
        blue: int,
        duration: int = MIN_DURATION_MS,
        effect: Effect = Effect.SUDDEN,
    ) -> bool:
        check_range("duration", duration, MIN_DURATION_MS)
        check_range("red", red, CHANNEL_MIN, CHANNEL_MAX)
        check_range("green", green, CHANNEL_MIN, CHANNEL_MAX)
        check_range("blue", blue, CHANNEL_MIN, CHANNEL_MAX)
        self._require_connected()
        value = pack_rgb(red, green, blue)
        return self.send_command(
            METHOD_SET_RGB, [token(value), token(effect), token(duration)]
        )

    def set_color_temperature(
        self,
        kelvin: int,
        duration: int = MIN_DURATION_MS,
        effect: Effect = Effect.SUDDEN,
    ) -> bool:
        check_range("duration", duration, MIN_DURATION_MS)
        check_range("kelvin", kelvin, COLOR_TEMP_MIN, COLOR_TEMP_MAX)
        self._require_connected()
        return self.send_command(
            METHOD_SET_CT, [token(kelvin), token(effect), token(duration)]
        )

    def toggle(self) -> bool:
        self._require_connected()
        return self.send_command(METHOD_TOGGLE)

    def get_properties(self, names: Iterable[str]) -> list[Any]:
        """Query device properties and return the reply's result list.

        Raises ProtocolError if the device answers with an error object or
        the reply does not match the envelope, DeviceTimeoutError if no
        reply arrives in time.
        """
        self._require_connected()
        conn = self._conn
        conn.drain()

        cmd = Command(self._next_id(), METHOD_GET_PROP, [quote(n) for n in names])
        if not conn.send(encode_command(cmd)):
            raise DeviceConnectionError(f"Failed to send {cmd.method} to {self._endpoint}")

        response = self._await_reply(conn, cmd.id)
        if response.error is not None:
            raise ProtocolError(response.error.message, code=response.error.code)
        return response.result

    def _await_reply(self, conn: DeviceConnection, request_id: int):
        """Read messages until the reply to request_id shows up."""
        while True:
            try:
                line = conn.read_line()
            except DeviceConnectionError:
                self._release()
                raise
            if line is None:
                self._release()
                raise ProtocolError(
                    f"Connection to {self._endpoint} closed before reply {request_id}"
                )
            if not line.strip():
                continue
            msg = decode_message(line)
            if is_notification(msg):
                logger.debug("Skipping notification: %s", msg.get("params"))
                continue
            if msg.get("id") != request_id:
                logger.debug("Skipping reply with id %r (want %d)", msg.get("id"), request_id)
                continue
            return parse_response(msg)

    # ---- streaming mode ----

    def set_streaming_mode(self, local_address: str, local_port: int, enable: bool) -> None:
        """Switch between normal and streaming mode.

        Enabling asks the device to dial back to local_address:local_port,
        drops the command connection and waits (bounded) for the inbound
        connection. Disabling tells the device to leave streaming mode and
        reconnects to the command endpoint.
        """
        if enable:
            self._enter_streaming(local_address, local_port)
        else:
            self._leave_streaming()

    def _enter_streaming(self, local_address: str, local_port: int) -> None:
        self._require_connected()
        if self.is_streaming_mode():
            raise AlreadyInModeError(f"Device {self._endpoint} is already in streaming mode")

        listener = HandoffListener(local_address, local_port)
        listener.start()
        self._mode = SessionMode.AWAITING_HANDOFF
        try:
            sent = self.send_command(
                METHOD_SET_MUSIC,
                [token(1), quote(local_address), token(listener.port)],
            )
            if not sent:
                logger.warning("set_music request to %s was not fully written", self._endpoint)
            # The device dials a fresh connection; the command socket is not reused
            self._release()
            logger.info(
                "Waiting for %s to connect back on %s:%d",
                self._endpoint, local_address, listener.port,
            )
            sock = listener.wait_for_connection(
                attempts=self.handoff_poll_attempts,
                interval=self.handoff_poll_interval,
            )
        except Exception:
            self._mode = SessionMode.NORMAL
            raise
        finally:
            listener.close()

        self._adopt(DeviceConnection(sock, timeout=self.response_timeout))
        self._mode = SessionMode.STREAMING
        logger.info("Device %s is in streaming mode", self._endpoint)

    def _leave_streaming(self) -> None:
        if self.is_connected():
            self.send_command(METHOD_SET_MUSIC, [token(0)])
        self._release()
        self._mode = SessionMode.NORMAL
        self.connect()
        logger.info("Device %s is back in normal mode", self._endpoint)

    # ---- context manager ----

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.is_connected():
            self.close_connection()
