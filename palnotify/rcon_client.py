from __future__ import annotations

import socket
import struct
import time
from typing import Optional, Tuple


SERVERDATA_AUTH = 3
SERVERDATA_AUTH_RESPONSE = 2
SERVERDATA_EXECCOMMAND = 2
SERVERDATA_RESPONSE_VALUE = 0

MIN_PACKET_SIZE = 10
MAX_PACKET_SIZE = MIN_PACKET_SIZE + 4096


class RconError(RuntimeError):
    def __init__(self, message: str, partial: str = "") -> None:
        super().__init__(message)
        # Whatever part of the response body arrived before the failure.
        self.partial = partial


def _as_timeout(value: Optional[float]) -> Optional[float]:
    # Zero or less means no timeout, not a non-blocking socket.
    if value is None or value <= 0:
        return None
    return value


def _apply_deadline(sock: socket.socket, deadline: Optional[float]) -> None:
    if deadline is None:
        sock.settimeout(None)
        return
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise socket.timeout("timed out")
    sock.settimeout(remaining)


def _recv_exact(
    sock: socket.socket, length: int, buf: bytearray, deadline: Optional[float]
) -> None:
    target = len(buf) + length
    while len(buf) < target:
        _apply_deadline(sock, deadline)
        chunk = sock.recv(target - len(buf))
        if not chunk:
            raise RconError("Connection closed by server")
        buf.extend(chunk)


def _recv_packet(
    sock: socket.socket, payload: bytearray, deadline: Optional[float]
) -> Tuple[int, int, bytes]:
    raw_len = bytearray()
    _recv_exact(sock, 4, raw_len, deadline)
    (length,) = struct.unpack("<i", raw_len)
    if not MIN_PACKET_SIZE <= length <= MAX_PACKET_SIZE:
        raise RconError(f"Malformed packet length {length}")
    _recv_exact(sock, length, payload, deadline)
    req_id, packet_type = struct.unpack("<ii", payload[:8])
    body = bytes(payload[8:-2])
    return req_id, packet_type, body


def _send_packet(
    sock: socket.socket,
    req_id: int,
    packet_type: int,
    body: str,
    deadline: Optional[float],
) -> None:
    body_bytes = body.encode("utf-8")
    packet = struct.pack("<iii", len(body_bytes) + 10, req_id, packet_type)
    packet += body_bytes + b"\x00\x00"
    _apply_deadline(sock, deadline)
    sock.sendall(packet)


def _authenticate(sock: socket.socket, password: str, deadline: Optional[float]) -> bool:
    _send_packet(sock, 1, SERVERDATA_AUTH, password, deadline)
    while True:
        req_id, packet_type, _ = _recv_packet(sock, bytearray(), deadline)
        if packet_type == SERVERDATA_AUTH_RESPONSE:
            return req_id != -1
        if req_id == -1:
            return False


def _decode(raw: bytes) -> str:
    # Palworld pads responses with NUL bytes.
    return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


class RconClient:
    """Source RCON client that opens a fresh connection for every command.

    The Palworld RCON server is unstable, so connections are never reused:
    each call dials, authenticates, runs one command and closes. ``timeout``
    bounds the whole exchange after the dial; zero disables it.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        timeout: Optional[float],
        dial_timeout: Optional[float] = None,
    ) -> None:
        self._host = host
        self._port = port
        self._password = password
        self._timeout = _as_timeout(timeout)
        self._dial_timeout = self._timeout if dial_timeout is None else _as_timeout(dial_timeout)

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    def execute(self, command: str) -> str:
        try:
            sock = socket.create_connection(
                (self._host, self._port), timeout=self._dial_timeout
            )
        except OSError as exc:
            raise RconError(f"failed to connect to {self.endpoint}: {exc}") from exc

        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        with sock:
            try:
                authenticated = _authenticate(sock, self._password, deadline)
            except (OSError, RconError, struct.error) as exc:
                raise RconError(f"failed to connect to {self.endpoint}: {exc}") from exc
            if not authenticated:
                raise RconError(f"RCON auth failed for {self.endpoint}")

            payload = bytearray()
            try:
                _send_packet(sock, 2, SERVERDATA_EXECCOMMAND, command, deadline)
                _, packet_type, body = _recv_packet(sock, payload, deadline)
            except (OSError, RconError, struct.error) as exc:
                raise RconError(
                    f"failed to execute the command: {exc}",
                    partial=_decode(bytes(payload[8:])),
                ) from exc

            if packet_type not in (SERVERDATA_RESPONSE_VALUE, SERVERDATA_EXECCOMMAND):
                raise RconError(f"Unexpected packet type {packet_type}")
            return _decode(body)

    def broadcast(self, message: str) -> str:
        return self.execute(f"Broadcast {message}")
