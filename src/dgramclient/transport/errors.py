from __future__ import annotations
from typing import Optional


class DatagramClientError(Exception):
    """Base for every error the client reports to the operator."""

    @property
    def errno(self) -> Optional[int]:
        cause = self.__cause__
        return getattr(cause, "errno", None)

    @classmethod
    def wrap(cls, exc: BaseException, detail: str = "") -> "DatagramClientError":
        """Build an instance from a lower-level error, keeping it as __cause__."""
        message = detail or getattr(exc, "strerror", None) or str(exc) or type(exc).__name__
        err = cls(message)
        err.__cause__ = exc
        return err


class AddressParseError(DatagramClientError, ValueError):
    pass

class PortRangeError(DatagramClientError, ValueError):
    pass

class SocketCreateError(DatagramClientError):
    pass

class ConnectError(DatagramClientError):
    # tolerated: the session keeps going after logging it
    pass

class SendError(DatagramClientError):
    pass

class WaitError(DatagramClientError):
    pass

class ReceiveError(DatagramClientError):
    pass
