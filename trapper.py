# trapper.py
"""
FILE: trapper.py
DESCRIPTION:
  Encoder and sender for the Zabbix trapper protocol.
  - build_payload(): Serializes a measurement batch into the "sender data" JSON.
  - encode_length() / build_frame(): Wraps the payload in the binary ZBXD header.
  - TrapperSender.send(): One connect -> write -> await reply -> close exchange.

  Frame layout:
    0   4  b"ZBXD"
    4   1  0x01 (protocol flag)
    5   8  payload length, little-endian
    13  N  UTF-8 JSON payload (no terminator)
"""
import json
import socket
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

MAGIC = b"ZBXD"
PROTOCOL_FLAG = b"\x01"
HEADER = MAGIC + PROTOCOL_FLAG
LENGTH_FIELD_SIZE = 8

# Largest payload the classic 16-bit length encoding can carry
MAX_PAYLOAD_LENGTH = 0xFFFF

DEFAULT_PORT = 10051
RESPONSE_DELIMITER = b"\r"


class TrapperError(Exception):
    """Base class for trapper protocol errors."""


class OversizedPayload(TrapperError):
    def __init__(self, length, limit=MAX_PAYLOAD_LENGTH):
        super().__init__(f"Payload of {length} bytes exceeds the {limit} byte limit")
        self.length = length
        self.limit = limit


class SenderState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    HEADER_SENT = "header_sent"
    LENGTH_SENT = "length_sent"
    PAYLOAD_SENT = "payload_sent"
    AWAITING_RESPONSE = "awaiting_response"
    # Terminal states
    ACKNOWLEDGED = "acknowledged"
    TIMED_OUT = "timed_out"
    CONNECTION_FAILED = "connection_failed"
    OVERSIZED_PAYLOAD = "oversized_payload"
    INVALID_MEASUREMENT = "invalid_measurement"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    SenderState.ACKNOWLEDGED,
    SenderState.TIMED_OUT,
    SenderState.CONNECTION_FAILED,
    SenderState.OVERSIZED_PAYLOAD,
    SenderState.INVALID_MEASUREMENT,
})


@dataclass(frozen=True)
class Measurement:
    key: str
    value: float


@dataclass(frozen=True)
class SendResult:
    status: SenderState
    payload: str
    response: Optional[str] = None
    error: Optional[str] = None
    elapsed: float = 0.0
    peer_closed: bool = False

    @property
    def ok(self) -> bool:
        return self.status is SenderState.ACKNOWLEDGED


# ---------------- PAYLOAD ----------------

def format_value(value) -> str:
    """Renders a reading as plain decimal text (23.5 -> "23.5"), never in exponent form."""
    number = float(value)
    text = repr(number)
    if "e" in text or "E" in text:
        text = format(number, "f").rstrip("0").rstrip(".")
    return text


def build_payload(host: str, measurements: Iterable[Measurement]) -> str:
    """
    Builds the "sender data" request for one host.
    Items keep the order of `measurements`. Values are not checked for plausibility.
    """
    data = [
        {"host": host, "key": m.key, "value": format_value(m.value)}
        for m in measurements
    ]
    return json.dumps(
        {"request": "sender data", "data": data},
        separators=(",", ":"),
        ensure_ascii=False,
    )


# ---------------- FRAMING ----------------

def encode_length(length: int, extended: bool = False) -> bytes:
    """
    Encodes the 8-byte little-endian length field.
    Only lengths up to MAX_PAYLOAD_LENGTH are representable unless `extended` is set.
    """
    if length < 0:
        raise ValueError(f"Payload length cannot be negative: {length}")

    if extended:
        if length >= 1 << (8 * LENGTH_FIELD_SIZE):
            raise OversizedPayload(length, (1 << (8 * LENGTH_FIELD_SIZE)) - 1)
        return length.to_bytes(LENGTH_FIELD_SIZE, "little")

    if length > MAX_PAYLOAD_LENGTH:
        raise OversizedPayload(length)
    if length < 256:
        return bytes([length, 0, 0, 0, 0, 0, 0, 0])
    return bytes([length & 0xFF, (length >> 8) & 0xFF, 0, 0, 0, 0, 0, 0])


def decode_length(field: bytes) -> int:
    if len(field) != LENGTH_FIELD_SIZE:
        raise TrapperError(f"Length field must be {LENGTH_FIELD_SIZE} bytes, got {len(field)}")
    return int.from_bytes(field, "little")


def build_frame(payload: bytes, extended: bool = False) -> bytes:
    return HEADER + encode_length(len(payload), extended) + payload


def split_frame(frame: bytes) -> bytes:
    """Returns the payload declared by a frame's header."""
    if not frame.startswith(HEADER):
        raise TrapperError("Missing ZBXD header")
    offset = len(HEADER)
    length = decode_length(frame[offset:offset + LENGTH_FIELD_SIZE])
    payload = frame[offset + LENGTH_FIELD_SIZE:offset + LENGTH_FIELD_SIZE + length]
    if len(payload) != length:
        raise TrapperError(f"Frame declares {length} payload bytes but carries {len(payload)}")
    return payload


def describe_response(raw: bytes) -> str:
    """
    Renders a captured reply for logging.
    Plain replies are cut at the first carriage return; framed replies are unwrapped.
    """
    if raw.startswith(MAGIC):
        try:
            return split_frame(raw).decode("utf-8", errors="replace")
        except TrapperError:
            pass
    text = raw.split(RESPONSE_DELIMITER, 1)[0]
    return text.decode("utf-8", errors="replace")


def _response_complete(received):
    # A framed reply may contain 0x0D inside its length field, so it is read to its declared size
    header_size = len(HEADER) + LENGTH_FIELD_SIZE
    if received[:len(MAGIC)] == MAGIC[:len(received)]:
        if len(received) < header_size:
            return False
        length = decode_length(bytes(received[len(HEADER):header_size]))
        return len(received) >= header_size + length
    return RESPONSE_DELIMITER in received


# ---------------- SENDER ----------------

class TrapperSender:
    """
    Performs one trapper exchange per send() call.
    Calls are serialized so every connection carries exactly one frame.
    """

    def __init__(self, server, port=DEFAULT_PORT, connect_timeout=5.0,
                 response_timeout=10.0, extended_length=False,
                 socket_factory=socket.create_connection):
        self.server = server
        self.port = port
        self.connect_timeout = connect_timeout
        self.response_timeout = response_timeout
        self.extended_length = extended_length
        self._socket_factory = socket_factory
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, **kwargs):
        return cls(
            settings.zabbix_server,
            port=settings.zabbix_port,
            connect_timeout=settings.connect_timeout,
            response_timeout=settings.response_timeout,
            extended_length=settings.trapper_extended_length,
            **kwargs,
        )

    def send(self, host: str, measurements: Iterable[Measurement]) -> SendResult:
        """Sends one batch and reports how the exchange ended. Never raises."""
        with self._lock:
            started = time.monotonic()
            try:
                payload = build_payload(host, measurements)
            except (TypeError, ValueError) as e:
                outcome = {"status": SenderState.INVALID_MEASUREMENT, "payload": "",
                           "error": f"Batch not sent, a value is not numeric: {e}"}
            else:
                outcome = self._exchange(payload)
                outcome["payload"] = payload
            return SendResult(elapsed=time.monotonic() - started, **outcome)

    def _exchange(self, payload):
        state = SenderState.IDLE
        body = payload.encode("utf-8")
        try:
            length_field = encode_length(len(body), self.extended_length)
        except OversizedPayload as e:
            return {"status": SenderState.OVERSIZED_PAYLOAD, "error": str(e)}

        state = SenderState.CONNECTING
        try:
            sock = self._socket_factory((self.server, self.port), timeout=self.connect_timeout)
        except OSError as e:
            return {"status": SenderState.CONNECTION_FAILED,
                    "error": f"Connect to {self.server}:{self.port} failed: {e}"}

        with sock:
            try:
                sock.sendall(HEADER)
                state = SenderState.HEADER_SENT
                sock.sendall(length_field)
                state = SenderState.LENGTH_SENT
                sock.sendall(body)
                state = SenderState.PAYLOAD_SENT
            except OSError as e:
                return {"status": SenderState.CONNECTION_FAILED,
                        "error": f"Write failed after {state.value}: {e}"}

            state = SenderState.AWAITING_RESPONSE
            return self._await_response(sock, state)

    def _await_response(self, sock, state):
        started = time.monotonic()
        deadline = started + self.response_timeout
        received = bytearray()
        failure = None
        peer_closed = False

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            sock.settimeout(remaining)
            try:
                chunk = sock.recv(1024)
            except socket.timeout:
                break
            except OSError as e:
                failure = e
                break
            if not chunk:
                peer_closed = True
                break
            received.extend(chunk)
            if _response_complete(received):
                break

        if received:
            return {"status": SenderState.ACKNOWLEDGED, "response": describe_response(bytes(received))}
        if failure is not None:
            return {"status": SenderState.CONNECTION_FAILED,
                    "error": f"Read failed while {state.value}: {failure}"}
        if peer_closed:
            waited = time.monotonic() - started
            return {"status": SenderState.TIMED_OUT, "peer_closed": True,
                    "error": f"Peer closed the connection after {waited:.2f}s without a response"}
        return {"status": SenderState.TIMED_OUT,
                "error": f"No response within {self.response_timeout}s"}
