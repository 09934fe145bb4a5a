# In-memory stand-ins for the reminder engine's collaborators.
import asyncio
from typing import Dict, List, Optional, Sequence

from app.messaging.outcome import SendOutcome
from app.reminders.models import Landlord, Recipient


class FakeRepository:
    def __init__(self):
        self.users: Dict[str, Landlord] = {}
        self.tenants: Dict[str, tuple] = {}   # id -> (owner, recipient, deleted)
        self.reminded: Dict[str, object] = {}
        self.fail_mark = False
        self.fail_lookup: Optional[Exception] = None

    def add_user(self, user_id="u1", name="Alice Landlord", phone="+256700000010"):
        self.users[user_id] = Landlord(id=user_id, name=name, phone=phone)
        return self.users[user_id]

    def add_tenant(self, tenant_id, owner="u1", *, name=None, phone="+256700000001", email=None,
                   deleted=False, rent=500000, due=5, unit="A1", property_name="Sunset Flats"):
        r = Recipient(id=tenant_id, name=name or f"Tenant {tenant_id}", phone=phone, email=email,
                      unit_number=unit, rent_amount=rent, due_date=due, property_name=property_name)
        self.tenants[tenant_id] = (owner, r, deleted)
        return r

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def find_for_owner(self, tenant_ids: Sequence[str], owner_id: str) -> List[Recipient]:
        if self.fail_lookup is not None:
            raise self.fail_lookup
        out, seen = [], set()
        for tid in tenant_ids:
            row = self.tenants.get(tid)
            if row and row[0] == owner_id and not row[2] and tid not in seen:
                seen.add(tid)
                out.append(row[1])
        return out

    async def mark_reminded(self, tenant_id, when):
        if self.fail_mark:
            raise RuntimeError("database is locked")
        self.reminded[tenant_id] = when


class FakeChannel:
    def __init__(self, cost=50, *, fail_for=(), raise_for=(), hang_for=(), on_send=None):
        self.cost = cost
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.hang_for = set(hang_for)
        self.on_send = on_send
        self.sent: List[tuple] = []

    async def send(self, recipient, message):
        if self.on_send is not None:
            await self.on_send(recipient)
        self.sent.append((recipient.id, message))
        if recipient.id in self.hang_for:
            await asyncio.sleep(3600)
        if recipient.id in self.raise_for:
            raise ConnectionError(f"provider unreachable for {recipient.id}")
        if recipient.id in self.fail_for:
            return SendOutcome.fail("InvalidPhoneNumber")
        return SendOutcome.ok(cost=self.cost, message_id=f"msg-{recipient.id}")


class FakeAudit:
    def __init__(self, fail=False):
        self.fail = fail
        self.reminders: List[dict] = []
        self.events: List[tuple] = []

    async def record_reminder(self, **entry):
        if self.fail:
            raise RuntimeError("audit store down")
        self.reminders.append(entry)

    async def log_event(self, user_id, event_type, metadata=None):
        if self.fail:
            raise RuntimeError("audit store down")
        self.events.append((user_id, event_type, dict(metadata or {})))


class FakeFlags:
    def __init__(self, **enabled):
        self.enabled = {"sms_reminders": True, "email_reminders": True}
        self.enabled.update(enabled)
        self.messages = {
            "sms_reminders": "SMS reminders are paused for maintenance.",
            "email_reminders": "Email reminders are paused.",
        }

    async def is_enabled(self, key):
        return self.enabled.get(key, True)

    async def disabled_message(self, key):
        return self.messages.get(key, "This feature is temporarily unavailable.")


async def wait_for_terminal(store, job_id, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        job = await store.get(job_id)
        if job is not None and job.is_terminal:
            return job
        await asyncio.sleep(0.01)
    raise AssertionError(f"job {job_id} did not finish")
