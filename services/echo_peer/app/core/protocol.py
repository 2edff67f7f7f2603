from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
from .state import ReplyMode
from .faults import FaultConfig

PAD_BYTE = b"."

@dataclass
class PeerModel:
    mode: ReplyMode = ReplyMode.ECHO
    fixed_payload: bytes = b""
    pad_to: int = 0
    requests: int = 0
    replies: int = 0
    reset_count: int = 0
    last_request: bytes = b""
    faults: FaultConfig = field(default_factory=FaultConfig)

    def reset(self) -> None:
        self.mode = ReplyMode.ECHO
        self.fixed_payload = b""
        self.pad_to = 0
        self.requests = 0
        self.replies = 0
        self.last_request = b""
        self.faults.clear()
        self.reset_count += 1

    def configure(self, mode: ReplyMode, payload: bytes = b"", pad_to: int = 0) -> None:
        if mode == ReplyMode.FIXED and not payload and pad_to == 0:
            raise ValueError("FIXED mode needs a payload or pad_to")
        self.mode = mode
        self.fixed_payload = payload
        self.pad_to = pad_to

    def reply_for(self, data: bytes) -> Optional[bytes]:
        """Reply datagram for one request, or None to stay silent."""
        self.requests += 1
        self.last_request = data

        if self.mode == ReplyMode.SILENT:
            return None
        if self.mode == ReplyMode.EMPTY:
            reply = b""
        elif self.mode == ReplyMode.FIXED:
            reply = self.fixed_payload
        else:
            reply = data

        # EMPTY stays empty regardless of padding
        if self.mode != ReplyMode.EMPTY and len(reply) < self.pad_to:
            reply = reply + PAD_BYTE * (self.pad_to - len(reply))
        self.replies += 1
        return reply
