# app/reminders/models.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

JobStatus = Literal["processing", "completed", "failed"]
TERMINAL_STATUSES = ("completed", "failed")
METHODS = ("sms", "email")


@dataclass(frozen=True)
class Landlord:
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Recipient:
    """Snapshot of a tenant as the dispatch loop needs it."""
    id: str
    name: str
    phone: str
    unit_number: str
    rent_amount: int
    due_date: int
    email: Optional[str] = None
    property_name: Optional[str] = None


# Per-recipient result of the dispatch loop
@dataclass(frozen=True)
class Sent:
    cost: int = 0


@dataclass(frozen=True)
class Failed:
    reason: str


DispatchResult = Union[Sent, Failed]


@dataclass
class JobDetail:
    tenant_id: str
    tenant_name: str
    status: Literal["sent", "failed"]
    cost: int = 0
    error: Optional[str] = None

    @classmethod
    def from_result(cls, recipient: Recipient, result: DispatchResult) -> "JobDetail":
        if isinstance(result, Sent):
            return cls(recipient.id, recipient.name, "sent", cost=result.cost)
        return cls(recipient.id, recipient.name, "failed", cost=0, error=result.reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "tenantName": self.tenant_name,
            "status": self.status,
            "cost": self.cost,
            "error": self.error,
        }


@dataclass
class Job:
    id: str
    total: int
    status: JobStatus = "processing"
    sent: int = 0
    failed: int = 0
    total_cost: int = 0
    details: List[JobDetail] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    method: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def progress(self) -> int:
        if self.total <= 0:
            return 0
        # halves round up
        return math.floor((self.sent + self.failed) / self.total * 100 + 0.5)

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "method": self.method,
            "total": self.total,
            "sent": self.sent,
            "failed": self.failed,
            "totalCost": self.total_cost or 0,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "progress": self.progress,
            "error": self.error,
        }

    def to_dict(self) -> Dict[str, Any]:
        out = self.summary()
        out["details"] = [d.to_dict() for d in self.details]
        return out


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None
