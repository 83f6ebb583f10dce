from __future__ import annotations

import argparse
import socket
import sys
from typing import Optional, Sequence

from config import CLIENT_HOST, MAX_RECV_LEN, PORT
from logger import make_logger, set_verbose
from protocol import ConnectError, Message, ReadError, recv_once

log = make_logger("client")


def connect(host: str = CLIENT_HOST, port: int = PORT, timeout: Optional[float] = None) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect((host, port))
    except OSError as e:
        sock.close()
        raise ConnectError(f"Cannot connect to {host}:{port}: {e}") from e
    return sock


def fetch_greeting(
    host: str = CLIENT_HOST,
    port: int = PORT,
    max_len: int = MAX_RECV_LEN,
    timeout: Optional[float] = None,
) -> Message:
    """Connect, read once, close. No retries."""
    with connect(host, port, timeout) as sock:
        return recv_once(sock, max_len)


def show(msg: Message) -> None:
    print(f"Got a message from the server [{msg.length} bytes]:")
    if msg.payload:
        text = msg.text
        print(text, end="" if text.endswith("\n") else "\n")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Read one message from the greeting server.")
    ap.add_argument("--host", default=CLIENT_HOST)
    ap.add_argument("--port", type=int, default=PORT)
    ap.add_argument("--timeout", type=float, default=None, help="seconds; blocks forever if omitted")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    set_verbose(log, args.verbose)

    log.info(f"Connecting to the server at {args.host}:{args.port}...")
    try:
        msg = fetch_greeting(args.host, args.port, timeout=args.timeout)
    except (ConnectError, ReadError) as e:
        log.error(str(e))
        return 1

    show(msg)
    return 0


if __name__ == "__main__":
    sys.exit(main())
