"""Shared fixtures: a minimal threaded fake device on loopback."""

import json
import socket
import threading
from typing import Callable, Optional

import pytest

LOOPBACK = "127.0.0.1"


class FakeDevice:
    """Accepts command connections, records every command it receives.

    get_prop commands are answered by `reply_handler`, which returns the raw
    byte chunks to write back. set_music [1, host, port] makes the device dial
    back to host:port unless `dial_back` is False.
    """

    def __init__(self, dial_back: bool = True):
        self.dial_back = dial_back
        self.reply_handler: Optional[Callable[[dict], list[bytes]]] = None
        self.received: list[tuple[str, dict]] = []
        self.music_sockets: list[socket.socket] = []
        self._server = socket.create_server((LOOPBACK, 0))
        self._server.settimeout(0.05)
        self.port = self._server.getsockname()[1]
        self._stop = threading.Event()
        self._stop_accepting = threading.Event()
        self._acceptor: Optional[threading.Thread] = None
        self._conns: list[socket.socket] = []
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    def start(self) -> None:
        self._acceptor = self._spawn(self._accept_loop)

    def stop_listening(self) -> None:
        """Refuse further connections but keep existing ones.

        The accept loop is stopped and joined before the listening socket is
        closed, so no connection can slip in between.
        """
        self._stop_accepting.set()
        if self._acceptor is not None:
            self._acceptor.join(timeout=1.0)
        self._server.close()

    def close(self) -> None:
        self._stop.set()
        self._server.close()
        for s in self._conns + self.music_sockets:
            try:
                s.close()
            except OSError:
                pass
        for t in self._threads:
            t.join(timeout=1.0)

    def push(self, data: bytes) -> int:
        """Write unsolicited bytes to every accepted command connection.

        Returns how many connections were written to.
        """
        conns = list(self._conns)
        for conn in conns:
            conn.sendall(data)
        return len(conns)

    def methods(self, kind: Optional[str] = None) -> list[str]:
        with self._lock:
            return [m["method"] for k, m in self.received if kind is None or k == kind]

    def commands(self, method: str) -> list[tuple[str, dict]]:
        with self._lock:
            return [(k, m) for k, m in self.received if m.get("method") == method]

    # --- internal ---

    def _spawn(self, target, *args) -> threading.Thread:
        t = threading.Thread(target=target, args=args, daemon=True)
        self._threads.append(t)
        t.start()
        return t

    def _accept_loop(self) -> None:
        while not (self._stop.is_set() or self._stop_accepting.is_set()):
            try:
                conn, _ = self._server.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            self._conns.append(conn)
            self._spawn(self._serve, conn, "command")

    def _serve(self, conn: socket.socket, kind: str) -> None:
        buf = b""
        conn.settimeout(0.05)
        while not self._stop.is_set():
            try:
                chunk = conn.recv(1024)
            except socket.timeout:
                continue
            except OSError:
                return
            if not chunk:
                return
            buf += chunk
            while b"\r\n" in buf:
                line, buf = buf.split(b"\r\n", 1)
                self._handle(conn, kind, json.loads(line))

    def _handle(self, conn: socket.socket, kind: str, msg: dict) -> None:
        with self._lock:
            self.received.append((kind, msg))
        method = msg.get("method")
        if method == "get_prop" and self.reply_handler is not None:
            for payload in self.reply_handler(msg):
                conn.sendall(payload)
        elif method == "set_music" and msg["params"][0] == 1 and self.dial_back:
            host, port = msg["params"][1], msg["params"][2]
            music = socket.create_connection((host, port), timeout=1.0)
            self.music_sockets.append(music)
            self._spawn(self._serve, music, "music")


@pytest.fixture
def device():
    dev = FakeDevice()
    dev.start()
    yield dev
    dev.close()


@pytest.fixture
def silent_device():
    """A device that never dials back on set_music."""
    dev = FakeDevice(dial_back=False)
    dev.start()
    yield dev
    dev.close()
