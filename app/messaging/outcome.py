# app/messaging/outcome.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RenderedMessage:
    body: str
    subject: Optional[str] = None  # email only


@dataclass(frozen=True)
class SendOutcome:
    """Uniform result of one channel send, whatever the provider."""
    success: bool
    cost: int = 0
    error: Optional[str] = None
    message_id: Optional[str] = None

    @classmethod
    def ok(cls, cost: int = 0, message_id: str | None = None) -> "SendOutcome":
        return cls(True, cost=cost, message_id=message_id)

    @classmethod
    def fail(cls, error: str) -> "SendOutcome":
        return cls(False, cost=0, error=error or "send failed")
