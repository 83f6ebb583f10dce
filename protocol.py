from __future__ import annotations

import socket
from dataclasses import dataclass

from config import ENCODING, MAX_RECV_LEN


class GreetingError(OSError):
    """Base class for socket failures in the greeting exchange."""


class BindError(GreetingError):
    """Listening socket could not be bound. Fatal for the server."""


class AcceptError(GreetingError):
    """accept() failed. The server logs it and keeps serving."""


class WriteError(GreetingError):
    """Reply could not be fully written. Only the current connection is lost."""


class ConnectError(GreetingError):
    """Client could not reach the server. Fatal for the client."""


class ReadError(GreetingError):
    """Client read failed or timed out. Fatal for the client."""


@dataclass
class Message:
    payload: bytes

    @property
    def length(self) -> int:
        return len(self.payload)

    @property
    def text(self) -> str:
        return self.payload.decode(ENCODING, errors="replace")


def send_all(sock: socket.socket, data: bytes) -> int:
    """Write every byte of data, looping over partial sends.

    Raises WriteError if the socket errors out or stops accepting bytes.
    """
    view = memoryview(data)
    sent = 0
    while sent < len(data):
        try:
            n = sock.send(view[sent:])
        except OSError as e:
            raise WriteError(f"send failed after {sent}/{len(data)} bytes: {e}") from e
        if n == 0:
            raise WriteError(f"connection stopped accepting data after {sent}/{len(data)} bytes")
        sent += n
    return sent


def recv_once(sock: socket.socket, max_len: int = MAX_RECV_LEN) -> Message:
    """Single blocking read of at most max_len bytes.

    An empty payload means the peer closed without sending anything.
    """
    if max_len <= 0:
        raise ValueError("max_len must be positive")

    buf = bytearray(max_len + 1)  # one spare byte, never written by recv
    try:
        n = sock.recv_into(buf, max_len)
    except OSError as e:
        raise ReadError(f"recv failed: {e}") from e
    return Message(payload=bytes(buf[:n]))
