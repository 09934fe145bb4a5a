#==========================================================================================
# app/messaging/sms.py
# Africa's Talking SMS channel (REST API over httpx).
#==========================================================================================
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.messaging.outcome import RenderedMessage, SendOutcome
from app.utils.phone import normalize_uganda_phone

logger = logging.getLogger("uvicorn.error")

SANDBOX_URL = "https://api.sandbox.africastalking.com"


def _parse_response(data: Dict[str, Any], cost: int) -> SendOutcome:
    """
    Expected shape:
      {"SMSMessageData": {"Message": "...", "Recipients": [
          {"statusCode": 101, "number": "+256...", "status": "Success", "messageId": "ATXid_..."}]}}
    """
    recipients = ((data or {}).get("SMSMessageData") or {}).get("Recipients")
    if not recipients:
        message = ((data or {}).get("SMSMessageData") or {}).get("Message")
        return SendOutcome.fail(message or "Unexpected response format")
    first = recipients[0] or {}
    if first.get("status") == "Success" or first.get("statusCode") == 101:
        return SendOutcome.ok(cost=cost, message_id=first.get("messageId"))
    return SendOutcome.fail(str(first.get("status") or "SMS rejected"))


class SmsChannel:
    name = "sms"

    def __init__(
        self,
        *,
        username: str | None = None,
        api_key: str | None = None,
        sender_id: str | None = None,
        base_url: str | None = None,
        cost: int | None = None,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.username = username if username is not None else settings.AT_USERNAME
        self.api_key = api_key if api_key is not None else settings.AT_API_KEY
        self.sender_id = sender_id if sender_id is not None else settings.AT_SENDER_ID
        if base_url is None:
            base_url = SANDBOX_URL if self.username == "sandbox" else settings.AT_BASE_URL
        self.base_url = base_url.rstrip("/")
        self.cost = settings.SMS_COST if cost is None else cost
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.username and self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {"apiKey": self.api_key, "Accept": "application/json"}

    async def send(self, recipient, message: RenderedMessage) -> SendOutcome:
        to = normalize_uganda_phone(getattr(recipient, "phone", None))
        if not to:
            logger.warning("[SMS] invalid phone for tenant %s", getattr(recipient, "id", "?"))
            return SendOutcome.fail("Invalid phone number")
        if not self.configured:
            logger.error("[SMS] Africa's Talking credentials not configured")
            return SendOutcome.fail("SMS provider not configured")

        form = {"username": self.username, "to": to, "message": message.body}
        if self.sender_id:
            form["from"] = self.sender_id

        logger.info("[SMS] sending to %s", to)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/version1/messaging", headers=self._headers(), data=form)
        except httpx.HTTPError as e:
            logger.error("[SMS] transport error to %s: %s", to, e)
            return SendOutcome.fail(str(e) or "SMS sending failed")

        if resp.status_code not in (200, 201):
            logger.error("[SMS] HTTP %s from provider: %s", resp.status_code, resp.text[:200])
            return SendOutcome.fail(f"SMS provider returned HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError:
            return SendOutcome.fail("Unexpected response format")

        outcome = _parse_response(data, self.cost)
        if outcome.success:
            logger.info("[SMS] sent to %s (%s)", to, outcome.message_id)
        else:
            logger.error("[SMS] failed to %s: %s", to, outcome.error)
        return outcome
