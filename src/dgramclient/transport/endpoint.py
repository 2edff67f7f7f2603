from __future__ import annotations
import ipaddress
import logging
from dataclasses import dataclass
from typing import Tuple

from dgramclient.transport.errors import AddressParseError, PortRangeError

logger = logging.getLogger(__name__)

PORT_MAX = 65535
# ports below this are well-known or IANA-registered
DYNAMIC_PORT_MIN = 49152


@dataclass(frozen=True)
class Endpoint:
    address: str
    port: int

    def __post_init__(self) -> None:
        if not isinstance(self.address, str):
            raise AddressParseError(f"address must be dotted-quad text, got {self.address!r}")
        try:
            ipaddress.IPv4Address(self.address)
        except ipaddress.AddressValueError as e:
            raise AddressParseError(f"invalid IPv4 address: {self.address!r}") from e
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise PortRangeError(f"port must be an integer, got {self.port!r}")
        if not (0 <= self.port <= PORT_MAX):
            raise PortRangeError(f"port must be in [0, {PORT_MAX}], got {self.port}")

    @property
    def is_recommended_port(self) -> bool:
        return self.port >= DYNAMIC_PORT_MIN

    def as_tuple(self) -> Tuple[str, int]:
        return self.address, self.port

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"

    @classmethod
    def parse(cls, address_text: str, port_text: str) -> "Endpoint":
        """
        Build an endpoint from the two textual command line inputs.
        Port text accepts 0x/0o/0b prefixes as well as plain decimal.
        """
        try:
            port = int(port_text.strip(), 0)
        except ValueError as e:
            raise PortRangeError(f"port must be an integer in [0, {PORT_MAX}], got {port_text!r}") from e

        endpoint = cls(address_text, port)
        if not endpoint.is_recommended_port:
            logger.warning(
                "port %d is well-known or registered; ports >= %d are recommended",
                endpoint.port, DYNAMIC_PORT_MIN,
            )
        return endpoint
