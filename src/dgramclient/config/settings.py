from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class Settings:
    timeout_s: float
    max_size: int
    message: str
    peer_http: str
    peer_udp_host: str
    peer_udp_port: int


def get_settings() -> Settings:
    """
    Centralized configuration for the client and the tests.
    Values come from environment variables with safe defaults.
    """
    return Settings(
        timeout_s=float(os.getenv("DGRAM_TIMEOUT_S", "10.0")),
        max_size=int(os.getenv("DGRAM_MAX_SIZE", "1024")),
        message=os.getenv("DGRAM_MESSAGE", "Hey, server, it's client\n"),
        peer_http=os.getenv("PEER_HTTP", "http://127.0.0.1:18000"),
        peer_udp_host=os.getenv("PEER_UDP_HOST", "127.0.0.1"),
        peer_udp_port=int(os.getenv("PEER_UDP_PORT", "19000")),
    )


def request_payload(message: str) -> bytes:
    # sent with its terminating NUL, as a C string would be
    return message.encode() + b"\0"
