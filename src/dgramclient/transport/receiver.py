from __future__ import annotations
import logging
import select
import socket
from dataclasses import dataclass
from typing import List, Sequence, Union

from dgramclient.transport.errors import ReceiveError, WaitError
from dgramclient.utils.duration import Duration, as_duration

logger = logging.getLogger(__name__)

# not every platform has it; readiness was already confirmed so 0 still won't block
_RECV_FLAGS = getattr(socket, "MSG_DONTWAIT", 0)


@dataclass(frozen=True)
class TimedOut:
    kind = "timeout"


@dataclass(frozen=True)
class Failed:
    cause: Union[WaitError, ReceiveError]
    kind = "error"


@dataclass(frozen=True)
class Received:
    byte_count: int
    data: bytes
    kind = "received"


ReceiveOutcome = Union[TimedOut, Failed, Received]


def wait_readable(socks: Sequence[socket.socket], timeout: Duration) -> List[socket.socket]:
    """
    Block until any socket in the wait set is readable or the timeout elapses.
    Returns the readable subset (empty on timeout). Errors from the wait
    itself propagate as OSError/ValueError.
    """
    readable, _, _ = select.select(list(socks), [], [], timeout.total_seconds)
    return readable


def await_and_receive(
    sock: socket.socket,
    buffer: bytearray,
    max_size: int,
    timeout: Union[Duration, float],
) -> ReceiveOutcome:
    """
    Wait up to `timeout` for `sock` to become readable, then perform exactly
    one receive of at most `max_size` bytes into `buffer`.

    A zero-length datagram is reported as Received(0, b""). Datagrams larger
    than `max_size` are truncated by the receive call. `buffer` is written
    only when the outcome is Received.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be > 0, got {max_size}")
    if max_size > len(buffer):
        raise ValueError(f"max_size {max_size} exceeds buffer capacity {len(buffer)}")
    timeout = as_duration(timeout)

    try:
        ready = wait_readable([sock], timeout)
    except (OSError, ValueError) as e:
        logger.debug("readiness wait failed: %s", e)
        return Failed(WaitError.wrap(e))

    if not ready:
        logger.debug("no datagram within %s", timeout)
        return TimedOut()

    try:
        n = sock.recv_into(memoryview(buffer)[:max_size], max_size, _RECV_FLAGS)
    except OSError as e:
        # connected UDP sockets surface queued ICMP errors here
        logger.debug("receive failed after readiness: %s", e)
        return Failed(ReceiveError.wrap(e))

    logger.debug("received %d bytes", n)
    return Received(n, bytes(buffer[:n]))
