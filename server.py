from __future__ import annotations

import argparse
import signal
import socket
import sys
import threading
from typing import Callable, Dict, Optional, Sequence, Tuple

from config import ACCEPT_POLL_INTERVAL, BACKLOG, GREETING, PORT, SERVER_HOST
from logger import make_logger, set_verbose
from protocol import AcceptError, BindError, WriteError, send_all

log = make_logger("server")

Endpoint = Tuple[str, int]

SHUTDOWN_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM") if hasattr(signal, name)
)


class ShutdownToken:
    """Cancellation flag shared between the signal handler and the accept loop."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def set(self, reason: Optional[str] = None) -> None:
        if reason and self.reason is None:
            self.reason = reason
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


def make_signal_handler(token: ShutdownToken) -> Callable:
    def handler(signum, frame) -> None:
        # Only flag here; the accept loop does the logging and cleanup.
        token.set(signal.Signals(signum).name)

    return handler


def install_signal_handlers(token: ShutdownToken) -> Dict[int, object]:
    """Route SIGINT/SIGTERM to the token. Returns the previous handlers."""
    handler = make_signal_handler(token)
    previous = {}
    for sig in SHUTDOWN_SIGNALS:
        previous[sig] = signal.signal(sig, handler)
    return previous


def restore_signal_handlers(previous: Dict[int, object]) -> None:
    for sig, handler in previous.items():
        if handler is not None:  # None: installed outside Python, can't be restored
            signal.signal(sig, handler)


def open_listener(
    host: str = SERVER_HOST,
    port: int = PORT,
    backlog: int = BACKLOG,
    poll_interval: float = ACCEPT_POLL_INTERVAL,
) -> socket.socket:
    """Create, bind and listen. Raises BindError without leaking the socket."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        # lets a restarted server rebind while old connections sit in TIME_WAIT
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind((host, port))
        srv.listen(backlog)
    except OSError as e:
        srv.close()
        raise BindError(f"Cannot listen on {host}:{port}: {e}") from e

    srv.settimeout(poll_interval)
    return srv


def accept_one(
    srv: socket.socket, token: ShutdownToken
) -> Optional[Tuple[socket.socket, Endpoint]]:
    """Wait for the next connection, polling the token between timeouts.

    Returns None once shutdown has been requested.
    """
    while not token.is_set():
        try:
            conn, addr = srv.accept()
        except socket.timeout:
            continue
        except OSError as e:
            if token.is_set():
                return None
            raise AcceptError(f"accept failed: {e}") from e

        conn.settimeout(None)
        return conn, addr
    return None


def reply(conn: socket.socket, addr: Endpoint, payload: bytes = GREETING) -> int:
    log.info(f"Incoming connection from {addr[0]}:{addr[1]}, replying.")
    try:
        sent = send_all(conn, payload)
    finally:
        conn.close()
    log.debug(f"Sent {sent} bytes to {addr[0]}:{addr[1]}")
    return sent


def serve(srv: socket.socket, token: ShutdownToken, payload: bytes = GREETING) -> int:
    """Reply to connections one at a time until the token is set.

    Per-connection failures are logged and skipped. Returns the number of
    connections that got the full payload.
    """
    replied = 0
    while not token.is_set():
        try:
            accepted = accept_one(srv, token)
        except AcceptError as e:
            log.warning(str(e))
            token.wait(ACCEPT_POLL_INTERVAL)
            continue

        if accepted is None:
            break

        conn, addr = accepted
        try:
            reply(conn, addr, payload)
        except WriteError as e:
            log.warning(f"Reply to {addr[0]}:{addr[1]} failed: {e}")
            continue
        replied += 1

    return replied


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Reply to every TCP connection with a fixed greeting.")
    ap.add_argument("--host", default=SERVER_HOST)
    ap.add_argument("--port", type=int, default=PORT)
    ap.add_argument("--backlog", type=int, default=BACKLOG)
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    set_verbose(log, args.verbose)

    try:
        srv = open_listener(args.host, args.port, args.backlog)
    except BindError as e:
        log.error(str(e))
        return 1

    token = ShutdownToken()
    previous = install_signal_handlers(token)
    host, port = srv.getsockname()[:2]
    log.info(f"Running the TCP server on {host}:{port}.")

    try:
        replied = serve(srv, token)
    finally:
        srv.close()
        restore_signal_handlers(previous)

    log.info(f"Received {token.reason or 'shutdown request'}, shutting down server ({replied} replies sent).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
