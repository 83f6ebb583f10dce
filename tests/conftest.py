from __future__ import annotations

import socket
import threading
from dataclasses import dataclass, field
from typing import Dict, List

import pytest

from config import GREETING
from server import ShutdownToken, open_listener, serve


@dataclass
class RunningServer:
    srv: socket.socket
    token: ShutdownToken
    thread: threading.Thread
    result: Dict[str, int] = field(default_factory=dict)

    @property
    def port(self) -> int:
        return self.srv.getsockname()[1]

    def stop(self) -> int:
        self.token.set("test teardown")
        self.thread.join(timeout=5)
        self.srv.close()
        return self.result.get("replied", -1)


@pytest.fixture
def run_server():
    """Start serve() in a background thread on an ephemeral loopback port."""
    started: List[RunningServer] = []

    def _start(payload: bytes = GREETING) -> RunningServer:
        srv = open_listener("127.0.0.1", 0, poll_interval=0.05)
        token = ShutdownToken()
        result: Dict[str, int] = {}

        def run() -> None:
            result["replied"] = serve(srv, token, payload)

        t = threading.Thread(target=run, daemon=True)
        t.start()
        running = RunningServer(srv, token, t, result)
        started.append(running)
        return running

    yield _start

    for running in started:
        if running.thread.is_alive():
            running.stop()


@pytest.fixture
def free_port() -> int:
    """A loopback port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
