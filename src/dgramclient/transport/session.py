from __future__ import annotations
import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from dgramclient.transport.endpoint import Endpoint
from dgramclient.transport.errors import (
    ConnectError,
    DatagramClientError,
    SendError,
    SocketCreateError,
)
from dgramclient.transport.receiver import (
    Failed,
    ReceiveOutcome,
    Received,
    TimedOut,
    await_and_receive,
)
from dgramclient.utils.duration import Duration

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1024
DEFAULT_TIMEOUT = Duration(seconds=10)

SocketFactory = Callable[[int, int], socket.socket]

# progress stages reported by run_exchange
STAGE_SENDING = "sending"
STAGE_SENT = "sent"
STAGE_WAITING = "waiting"

Progress = Callable[[str, Optional["SendResult"]], None]


class SessionState(str, Enum):
    UNCONNECTED = "UNCONNECTED"
    CONNECTED = "CONNECTED"
    REQUEST_SENT = "REQUEST_SENT"
    AWAITING_REPLY = "AWAITING_REPLY"
    COMPLETED = "COMPLETED"
    TIMED_OUT = "TIMED_OUT"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SendResult:
    sent: int
    expected: int

    @property
    def partial(self) -> bool:
        return self.sent < self.expected


class RequestResponseSession:
    """
    One request, one reply over a UDP socket connected to a single endpoint.

    The session owns its socket from open() until close(); use it as a
    context manager so the socket is released on every exit path.
    """

    def __init__(self, endpoint: Endpoint, *, socket_factory: SocketFactory = socket.socket):
        self._endpoint = endpoint
        self._socket_factory = socket_factory
        self._sock: Optional[socket.socket] = None
        self.state = SessionState.UNCONNECTED
        self.connect_error: Optional[ConnectError] = None
        self._released = False

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def sock(self) -> Optional[socket.socket]:
        return self._sock

    @property
    def closed(self) -> bool:
        return self._sock is None

    def _expect(self, *states: SessionState) -> None:
        if self._released:
            raise ValueError(f"Invalid transition: session closed in state {self.state.value}")
        if self.state not in states:
            allowed = "/".join(s.value for s in states)
            raise ValueError(f"Invalid transition: {self.state.value} (expected {allowed})")

    def open(self) -> socket.socket:
        self._expect(SessionState.UNCONNECTED)
        try:
            sock = self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            self.state = SessionState.FAILED
            raise SocketCreateError.wrap(e) from e
        self._sock = sock

        # connected mode: only this peer's datagrams are delivered and ICMP
        # errors for it show up on the next receive
        try:
            sock.connect(self._endpoint.as_tuple())
        except OSError as e:
            self.connect_error = ConnectError.wrap(e)
            logger.warning("connect to %s failed, continuing unconnected: %s", self._endpoint, self.connect_error)

        self.state = SessionState.CONNECTED
        return sock

    def send_request(self, payload: bytes) -> SendResult:
        self._expect(SessionState.CONNECTED)
        try:
            if self.connect_error is None:
                sent = self._sock.send(payload)
            else:
                sent = self._sock.sendto(payload, self._endpoint.as_tuple())
        except OSError as e:
            self.state = SessionState.FAILED
            raise SendError.wrap(e) from e

        result = SendResult(sent=sent, expected=len(payload))
        if result.partial:
            logger.warning("partial send: %d of %d bytes", result.sent, result.expected)
        self.state = SessionState.REQUEST_SENT
        return result

    def await_reply(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        timeout: Union[Duration, float] = DEFAULT_TIMEOUT,
    ) -> ReceiveOutcome:
        self._expect(SessionState.REQUEST_SENT)
        if max_size <= 0:
            raise ValueError(f"max_size must be > 0, got {max_size}")
        buffer = bytearray(max_size)
        self.state = SessionState.AWAITING_REPLY

        outcome = await_and_receive(self._sock, buffer, max_size, timeout)
        if isinstance(outcome, Received):
            self.state = SessionState.COMPLETED
        elif isinstance(outcome, TimedOut):
            self.state = SessionState.TIMED_OUT
        else:
            self.state = SessionState.FAILED
        return outcome

    def close(self) -> None:
        # keeps the terminal state; only further transitions are refused
        self._released = True
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()

    def __enter__(self) -> "RequestResponseSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass(frozen=True)
class ExchangeReport:
    connect_error: Optional[ConnectError] = None
    send: Optional[SendResult] = None
    outcome: Optional[ReceiveOutcome] = None
    error: Optional[DatagramClientError] = None

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Received)


def run_exchange(
    endpoint: Endpoint,
    payload: bytes,
    *,
    max_size: int = DEFAULT_MAX_SIZE,
    timeout: Union[Duration, float] = DEFAULT_TIMEOUT,
    socket_factory: SocketFactory = socket.socket,
    progress: Optional[Progress] = None,
) -> ExchangeReport:
    """
    open -> send -> await one reply -> close. Any failure ends the exchange;
    nothing is retried.

    `progress(stage, send_result)` is called before the send, after it
    (with the SendResult) and before the reply wait.
    """
    def notify(stage: str, sent: Optional[SendResult] = None) -> None:
        if progress is not None:
            progress(stage, sent)

    with RequestResponseSession(endpoint, socket_factory=socket_factory) as session:
        try:
            session.open()
        except SocketCreateError as e:
            return ExchangeReport(error=e)
        notify(STAGE_SENDING)
        try:
            sent = session.send_request(payload)
        except SendError as e:
            return ExchangeReport(connect_error=session.connect_error, error=e)
        notify(STAGE_SENT, sent)

        notify(STAGE_WAITING)
        outcome = session.await_reply(max_size, timeout)
        error = outcome.cause if isinstance(outcome, Failed) else None
        return ExchangeReport(
            connect_error=session.connect_error,
            send=sent,
            outcome=outcome,
            error=error,
        )
