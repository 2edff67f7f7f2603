from __future__ import annotations
from dataclasses import dataclass
import random

@dataclass
class FaultConfig:
    delay_ms: int = 0           # wait before replying
    drop_rate: float = 0.0      # 0.0..1.0 of requests ignored

    @property
    def delay_s(self) -> float:
        return self.delay_ms / 1000.0

    def should_drop(self) -> bool:
        return self.drop_rate > 0 and random.random() < self.drop_rate

    def clear(self) -> None:
        self.delay_ms = 0
        self.drop_rate = 0.0
