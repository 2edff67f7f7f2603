import os
import socket
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest
import httpx

from dgramclient.config.settings import get_settings
from dgramclient.api.client import PeerApiClient
from dgramclient.transport.endpoint import Endpoint

REPO_ROOT = Path(__file__).resolve().parents[1]

def _wait_for_http_ready(url: str, proc: subprocess.Popen, timeout_s: float = 15.0) -> None:
    """
    Wait for the echo peer to respond at url. If the process exits, surface logs.
    """
    deadline = time.time() + timeout_s

    while time.time() < deadline:
        if proc.poll() is not None:
            out = proc.stdout.read() if proc.stdout else ""
            raise RuntimeError(
                f"Echo peer exited early (code={proc.returncode}).\n"
                f"--- peer output ---\n{out}"
            )

        try:
            r = httpx.get(url, timeout=1.0)
            if r.status_code == 200:
                return
        except httpx.HTTPError:
            pass

        time.sleep(0.2)

    proc.terminate()
    out, _ = proc.communicate(timeout=5)
    raise RuntimeError(
        f"Echo peer did not become ready at {url} within {timeout_s}s.\n"
        f"--- peer output ---\n{out}"
    )

@pytest.fixture(scope="session")
def settings():
    return get_settings()

@pytest.fixture(scope="session")
def peer_process(settings):
    """
    Starts the echo peer once for the test session.
    Uses `python -m uvicorn ...` from repo root so `services.*` imports resolve.
    """
    env = os.environ.copy()
    url = httpx.URL(settings.peer_http)
    env["PEER_HTTP_HOST"] = url.host
    env["PEER_HTTP_PORT"] = str(url.port or 80)
    env["PEER_UDP_HOST"] = settings.peer_udp_host
    env["PEER_UDP_PORT"] = str(settings.peer_udp_port)

    cmd = [
        sys.executable, "-m", "uvicorn",
        "services.echo_peer.app.main:app",
        "--host", env["PEER_HTTP_HOST"],
        "--port", env["PEER_HTTP_PORT"],
        "--log-level", "warning",
        "--no-access-log",
    ]

    p = subprocess.Popen(
        cmd,
        cwd=str(REPO_ROOT),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    )

    try:
        _wait_for_http_ready(f"{settings.peer_http}/health", p, timeout_s=15.0)
        yield p
    finally:
        # graceful terminate, then force kill if needed
        p.terminate()
        try:
            p.wait(timeout=5)
        except subprocess.TimeoutExpired:
            p.kill()

@pytest.fixture
def peer_api(settings, peer_process):
    """
    Control client for the echo peer; each test starts from a clean peer.
    """
    client = PeerApiClient(settings.peer_http)
    client.reset()
    try:
        yield client
    finally:
        client.close()

@pytest.fixture
def peer_endpoint(settings):
    return Endpoint(settings.peer_udp_host, settings.peer_udp_port)

@pytest.fixture
def udp_listener():
    """A bound loopback UDP socket that only answers when the test tells it to."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    try:
        yield sock
    finally:
        sock.close()

@pytest.fixture
def listener_endpoint(udp_listener):
    host, port = udp_listener.getsockname()
    return Endpoint(host, port)

@pytest.fixture
def closed_port():
    """A loopback port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port

@pytest.fixture
def echo_once(udp_listener):
    """
    Background responder: echoes the first datagram it gets, then stops.
    """
    def serve():
        try:
            data, addr = udp_listener.recvfrom(65535)
        except OSError:
            return
        udp_listener.sendto(data, addr)

    t = threading.Thread(target=serve, daemon=True)
    t.start()
    yield udp_listener.getsockname()
    t.join(timeout=3)
