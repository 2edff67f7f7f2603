from __future__ import annotations
from dataclasses import dataclass
import math
from typing import Union

_USEC_PER_SEC = 1_000_000
# upper bound for one reply wait (a year); huge values overflow select()
MAX_SECONDS = 365 * 24 * 3600

@dataclass(frozen=True)
class Duration:
    """
    Wait budget for one receive attempt: whole seconds plus a sub-second
    remainder in microseconds. Zero means poll without waiting.
    """
    seconds: int = 0
    microseconds: int = 0

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise ValueError(f"seconds must be >= 0, got {self.seconds}")
        if self.seconds > MAX_SECONDS:
            raise ValueError(f"seconds must be <= {MAX_SECONDS}, got {self.seconds}")
        if not (0 <= self.microseconds < _USEC_PER_SEC):
            raise ValueError(f"microseconds must be in [0, {_USEC_PER_SEC}), got {self.microseconds}")

    @classmethod
    def from_seconds(cls, value: float) -> "Duration":
        if not math.isfinite(value) or not (0 <= value <= MAX_SECONDS):
            raise ValueError(f"duration must be in [0, {MAX_SECONDS}] seconds, got {value}")
        total_us = round(value * _USEC_PER_SEC)
        return cls(*divmod(total_us, _USEC_PER_SEC))

    @classmethod
    def from_millis(cls, value: int) -> "Duration":
        return cls.from_seconds(value / 1000.0)

    @property
    def total_seconds(self) -> float:
        return self.seconds + self.microseconds / _USEC_PER_SEC

    def __str__(self) -> str:
        return f"{self.total_seconds:g}s"


def as_duration(value: Union[Duration, float, int]) -> Duration:
    if isinstance(value, Duration):
        return value
    return Duration.from_seconds(value)
