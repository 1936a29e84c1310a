"""Pytest configuration and fixtures for fluent_request tests.

This file provides:
- make_stub_client: httpx.Client backed by an in-process MockTransport
- PortReservation, MockServer: the echo server subprocess
- Fixtures: Shared test infrastructure
"""

from __future__ import annotations

import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import Any, Callable, Generator

import httpx
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
MOCK_SERVER_MODULE = "tests.integration.mock_server"


def make_stub_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    """Create an httpx.Client whose transport calls handler instead of the network.

    Prefer this over patching httpx - the real client code path (request
    building, streaming, header handling) still runs.
    """
    return httpx.Client(transport=httpx.MockTransport(handler))


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Stub handler returning the request body and echoing the URL in a header."""
    return httpx.Response(
        200,
        content=request.content,
        headers={"X-Echo-Url": str(request.url), "X-Echo-Method": request.method},
    )


class PortReservation:
    """Ephemeral localhost port held open until the server is about to bind."""

    def __init__(self) -> None:
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._socket.bind(("127.0.0.1", 0))
        self.port: int = self._socket.getsockname()[1]

    def release(self) -> int:
        self._socket.close()
        return self.port


def wait_for_port(host: str, port: int, timeout: float = 10.0) -> bool:
    """Poll until host:port accepts a TCP connection or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            socket.create_connection((host, port), timeout=1.0).close()
            return True
        except OSError:
            time.sleep(0.1)
    return False


class MockServer:
    """Runs tests/integration/mock_server.py in a subprocess."""

    host = "127.0.0.1"

    def __init__(self, reservation: PortReservation) -> None:
        self._reservation = reservation
        self.port = reservation.port
        self.base_url = f"http://{self.host}:{self.port}"
        self._process: subprocess.Popen | None = None

    def __enter__(self) -> MockServer:
        self._reservation.release()
        self._process = subprocess.Popen(
            [sys.executable, "-m", MOCK_SERVER_MODULE, "--host", self.host, "--port", str(self.port)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            cwd=PROJECT_ROOT,
        )
        if not wait_for_port(self.host, self.port):
            self._process.kill()
            _, stderr = self._process.communicate()
            raise RuntimeError(
                f"MockServer did not start on port {self.port}: "
                f"{stderr.decode(errors='replace') or '(no stderr)'}"
            )
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._process is None:
            return
        self._process.terminate()
        try:
            self._process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self._process.kill()
            self._process.wait()
        self._process = None


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def fixture_mock_server() -> Generator[MockServer, None, None]:
    """Start the echo server once per test session."""
    with MockServer(PortReservation()) as server:
        yield server
