# app/messaging/mailer.py
# SMTP email channel. smtplib is blocking, so each send runs in a worker thread.
from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any, Callable

from app.config import settings
from app.messaging.outcome import RenderedMessage, SendOutcome
from app.utils.formatters import strip_html

logger = logging.getLogger("uvicorn.error")


class EmailChannel:
    name = "email"

    def __init__(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
        sender: str | None = None,
        timeout: float | None = None,
        smtp_factory: Callable[..., Any] = smtplib.SMTP,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.sender = sender or settings.EMAIL_FROM
        self.timeout = settings.SMTP_TIMEOUT_SECONDS if timeout is None else timeout
        self._smtp_factory = smtp_factory

    def build_message(self, to: str, message: RenderedMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject or "Rent Reminder"
        msg["From"] = self.sender
        msg["To"] = to
        msg["Message-ID"] = make_msgid(domain="rentalert")
        msg.attach(MIMEText(strip_html(message.body), "plain", "utf-8"))
        msg.attach(MIMEText(message.body, "html", "utf-8"))
        return msg

    def _deliver(self, to: str, msg: MIMEMultipart) -> None:
        with self._smtp_factory(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.sender, [to], msg.as_string())

    async def send(self, recipient, message: RenderedMessage) -> SendOutcome:
        to = (getattr(recipient, "email", None) or "").strip()
        if not to:
            return SendOutcome.fail("Tenant has no email address")

        msg = self.build_message(to, message)
        logger.info("[EMAIL] sending to %s", to)
        # A timeout around this await cannot stop the worker thread; the SMTP
        # socket timeout is what actually bounds a stuck delivery.
        try:
            await asyncio.to_thread(self._deliver, to, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("[EMAIL] failed to %s: %s", to, e)
            return SendOutcome.fail(str(e) or "Email sending failed")

        logger.info("[EMAIL] sent to %s (%s)", to, msg["Message-ID"])
        # email is free
        return SendOutcome.ok(cost=0, message_id=msg["Message-ID"])
