"""Root conftest — shared fixtures for all tests."""
from __future__ import annotations

import socket
import threading

import pytest

import logger
from trapper import HEADER, LENGTH_FIELD_SIZE, decode_length

FRAME_HEADER_SIZE = len(HEADER) + LENGTH_FIELD_SIZE


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep rich output out of the test report."""
    logger.set_logging(False)
    yield
    logger.set_logging(True)


# ══════════════════════════════════════════════════════════════════
# Local trapper peer
# ══════════════════════════════════════════════════════════════════


class TrapperPeer:
    """
    One-shot localhost server standing in for the monitoring server.

    Reads exactly one frame (header + declared payload), then either sends
    `reply`, closes immediately (`close_without_reply`), or stays silent
    until the client hangs up.
    """

    def __init__(self, reply: bytes | None = None, close_without_reply: bool = False):
        self.reply = reply
        self.close_without_reply = close_without_reply
        self.received = b""
        self.client_closed = False
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind(("127.0.0.1", 0))
        self.server.listen(1)
        self.port = self.server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self):
        self._thread.start()
        return self

    def wait(self, timeout: float = 5.0):
        self._thread.join(timeout)

    def close(self):
        self.server.close()
        self.wait(1.0)

    def _serve(self):
        self.server.settimeout(5)
        try:
            conn, _ = self.server.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5)
            data = self._read_frame(conn)
            self.received = bytes(data)
            if self.close_without_reply:
                return
            if self.reply is not None:
                conn.sendall(self.reply)
                return
            # Silent: block until the client closes its end
            try:
                self.client_closed = conn.recv(1) == b""
            except OSError:
                pass

    @staticmethod
    def _read_frame(conn):
        data = bytearray()
        expected = FRAME_HEADER_SIZE
        while len(data) < expected:
            chunk = conn.recv(65536)
            if not chunk:
                break
            data.extend(chunk)
            if len(data) >= FRAME_HEADER_SIZE and expected == FRAME_HEADER_SIZE:
                expected += decode_length(bytes(data[len(HEADER):FRAME_HEADER_SIZE]))
        return data


@pytest.fixture
def trapper_peer():
    """Factory fixture: trapper_peer(reply=b"OK\\r") -> started TrapperPeer."""
    peers = []

    def _start(**kwargs):
        peer = TrapperPeer(**kwargs).start()
        peers.append(peer)
        return peer

    yield _start
    for peer in peers:
        peer.close()


class RecordingConnector:
    """socket.create_connection stand-in that remembers every socket it opened."""

    def __init__(self):
        self.calls = 0
        self.sockets = []

    def __call__(self, address, timeout=None):
        self.calls += 1
        sock = socket.create_connection(address, timeout=timeout)
        self.sockets.append(sock)
        return sock


@pytest.fixture
def connector() -> RecordingConnector:
    return RecordingConnector()


@pytest.fixture
def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
