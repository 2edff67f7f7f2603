from __future__ import annotations

import argparse
import logging
import socket
from typing import Optional

from dgramclient.config.settings import get_settings, request_payload
from dgramclient.transport.endpoint import Endpoint
from dgramclient.transport.errors import AddressParseError, PortRangeError, SendError, SocketCreateError
from dgramclient.transport.receiver import ReceiveOutcome, Received, TimedOut
from dgramclient.transport.session import (
    STAGE_SENDING,
    STAGE_SENT,
    STAGE_WAITING,
    SendResult,
    SocketFactory,
    run_exchange,
)
from dgramclient.utils.duration import Duration

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def render_payload(data: bytes) -> str:
    # replies are shown the way a C string prints: up to the first NUL
    return data.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def report_outcome(outcome: ReceiveOutcome) -> int:
    if isinstance(outcome, Received):
        print(f"Received: {render_payload(outcome.data)}")
        return EXIT_OK
    if isinstance(outcome, TimedOut):
        print("Timed out waiting for reply from server")
    else:
        print(f"Error receiving reply from server: {outcome.cause}")
    return EXIT_FAILED


def print_progress(stage: str, sent: Optional[SendResult]) -> None:
    if stage == STAGE_SENDING:
        print("Sending message to server...")
    elif stage == STAGE_SENT:
        print("Message sent")
        if sent is not None and sent.partial:
            print(f"Sent {sent.sent} bytes instead of {sent.expected} bytes")
    elif stage == STAGE_WAITING:
        print("Waiting for reply from server...")


def run(
    endpoint: Endpoint,
    payload: bytes,
    max_size: int,
    timeout: Duration,
    socket_factory: SocketFactory = socket.socket,
) -> int:
    report = run_exchange(
        endpoint,
        payload,
        max_size=max_size,
        timeout=timeout,
        socket_factory=socket_factory,
        progress=print_progress,
    )
    if isinstance(report.error, SocketCreateError):
        print(f"Error creating UDP socket: {report.error}")
        return EXIT_FAILED
    if isinstance(report.error, SendError):
        print(f"Error sending message to server: {report.error}")
        return EXIT_FAILED
    return report_outcome(report.outcome)


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_settings()
    p = argparse.ArgumentParser(
        prog="dgramclient",
        description="Send one UDP request over a connected socket and wait for one reply.",
    )
    p.add_argument("address", help="server IPv4 address (dotted quad)")
    p.add_argument("port", help="server UDP port")
    p.add_argument("--timeout", type=float, default=settings.timeout_s, help="reply wait in seconds")
    p.add_argument("--max-size", type=int, default=settings.max_size, help="receive buffer size in bytes")
    p.add_argument("--message", default=settings.message, help="request text (sent with a trailing NUL)")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = p.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")

    if args.max_size <= 0:
        p.error("--max-size must be > 0")
    try:
        timeout = Duration.from_seconds(args.timeout)
    except ValueError as e:
        p.error(f"--timeout: {e}")

    try:
        endpoint = Endpoint.parse(args.address, args.port)
    except AddressParseError as e:
        print(f"Error converting IPv4 address: {e}")
        return EXIT_USAGE
    except PortRangeError as e:
        print(f"Invalid UDP port: {e}")
        return EXIT_USAGE

    payload = request_payload(args.message)
    return run(endpoint, payload, args.max_size, timeout)


if __name__ == "__main__":
    raise SystemExit(main())
