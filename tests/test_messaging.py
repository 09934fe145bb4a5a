import asyncio
import smtplib
from datetime import date
from email import message_from_string

import httpx
import pytest

from app.logging_filters import sanitize
from app.messaging.mailer import EmailChannel
from app.messaging.outcome import RenderedMessage
from app.messaging.sms import SmsChannel
from app.messaging.templates import email_subject, render_email, render_sms
from app.reminders.models import Recipient
from app.utils.formatters import current_month, format_currency, format_ordinal, is_month, month_name, strip_html
from app.utils.phone import format_phone_display, normalize_uganda_phone


def recipient(phone="0700123456", email="grace@example.com"):
    return Recipient(id="t1", name="Grace", phone=phone, email=email,
                     unit_number="A1", rent_amount=500000, due_date=5, property_name="Sunset Flats")


# ---------------- formatters ----------------

@pytest.mark.parametrize("n,expected", [
    (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"),
    (12, "12th"), (13, "13th"), (21, "21st"), (22, "22nd"), (31, "31st"),
])
def test_format_ordinal(n, expected):
    assert format_ordinal(n) == expected


def test_format_currency():
    assert format_currency(1500000) == "UGX 1,500,000"
    assert format_currency("450000.4") == "UGX 450,000"
    assert format_currency(None) == "UGX 0"


def test_month_helpers():
    assert month_name("2025-11") == "November 2025"
    assert month_name(date(2026, 1, 15)) == "January 2026"
    assert current_month(date(2025, 3, 9)) == "2025-03"
    assert is_month("2025-01") and not is_month("2025-00") and not is_month(None)
    with pytest.raises(ValueError):
        month_name("2025-13")


def test_strip_html():
    assert strip_html("<style>p{}</style><p>Hello <b>Grace</b></p>") == "Hello Grace"


# ---------------- phone ----------------

@pytest.mark.parametrize("raw", [
    "+256700123456", "256700123456", "0700123456", "700123456",
    "0700 123 456", "+256-700-123-456", "2.56700123456E+11",
])
def test_normalize_uganda_phone_variants(raw):
    assert normalize_uganda_phone(raw) == "+256700123456"


@pytest.mark.parametrize("raw", [None, "", "12345", "+1 555 123 4567", "07001234567"])
def test_normalize_uganda_phone_rejects(raw):
    assert normalize_uganda_phone(raw) is None

def test_format_phone_display():
    assert format_phone_display("0700123456") == "+256 700 123 456"
    assert format_phone_display("garbage") == "garbage"
    assert format_phone_display(None) == ""


# ---------------- templates ----------------

def test_render_sms():
    body = render_sms(tenant_name="Grace", month="2025-11", rent_amount=500000,
                      due_date=1, landlord_name="Alice")
    assert body == (
        "Hello Grace, your rent for November 2025 (UGX 500,000) is due on the 1st. "
        "Kindly clear to avoid penalties. Thank you. - Alice"
    )
    assert not render_sms(tenant_name="Grace", month="2025-11", rent_amount=1,
                          due_date=2).endswith("- None")


def test_render_email_escapes_and_subject():
    html = render_email(tenant_name="<Grace>", month="2025-11", rent_amount=500000,
                        due_date=22, unit_number="A1", landlord_name="Alice", landlord_phone="+256700000010")
    assert "&lt;Grace&gt;" in html and "<Grace>" not in html
    assert "22nd" in html and "UGX 500,000" in html and "November 2025" in html
    assert "+256 700 000 010" in html
    assert email_subject("Sunset Flats") == "Rent Reminder - Sunset Flats"
    assert email_subject(None) == "Rent Reminder"


# ---------------- SMS channel ----------------

def sms_channel(handler, **kw):
    opts = dict(username="landlord", api_key="secret-key-123", sender_id="RentAlert",
                base_url="https://sms.example.test", cost=50)
    opts.update(kw)
    return SmsChannel(transport=httpx.MockTransport(handler), **opts)


def test_sms_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["apiKey"]
        seen["form"] = request.content.decode()
        return httpx.Response(201, json={"SMSMessageData": {"Message": "Sent to 1/1", "Recipients": [
            {"statusCode": 101, "number": "+256700123456", "status": "Success", "messageId": "ATXid_1"}]}})

    out = asyncio.run(sms_channel(handler).send(recipient(), RenderedMessage("Hi")))
    assert out.success and out.cost == 50 and out.message_id == "ATXid_1"
    assert seen["url"] == "https://sms.example.test/version1/messaging"
    assert seen["key"] == "secret-key-123"
    assert "to=%2B256700123456" in seen["form"] and "from=RentAlert" in seen["form"]


def test_sms_rejected_by_provider():
    def handler(request):
        return httpx.Response(201, json={"SMSMessageData": {"Recipients": [
            {"statusCode": 403, "status": "InvalidPhoneNumber"}]}})

    out = asyncio.run(sms_channel(handler).send(recipient(), RenderedMessage("Hi")))
    assert not out.success and out.cost == 0
    assert out.error == "InvalidPhoneNumber"


def test_sms_http_error_and_bad_body():
    out = asyncio.run(sms_channel(lambda r: httpx.Response(500, text="boom"))
                      .send(recipient(), RenderedMessage("Hi")))
    assert (out.success, out.error) == (False, "SMS provider returned HTTP 500")

    out = asyncio.run(sms_channel(lambda r: httpx.Response(200, json={"SMSMessageData": {}}))
                      .send(recipient(), RenderedMessage("Hi")))
    assert out.error == "Unexpected response format"


def test_sms_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    out = asyncio.run(sms_channel(handler).send(recipient(), RenderedMessage("Hi")))
    assert not out.success and "connection refused" in out.error


def test_sms_invalid_phone_and_unconfigured_skip_network():
    def handler(request):
        raise AssertionError("no request expected")

    out = asyncio.run(sms_channel(handler).send(recipient(phone="123"), RenderedMessage("Hi")))
    assert out.error == "Invalid phone number"
    out = asyncio.run(sms_channel(handler, api_key="").send(recipient(), RenderedMessage("Hi")))
    assert out.error == "SMS provider not configured"


# ---------------- email channel ----------------

class FakeSMTP:
    instances = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user))

    def sendmail(self, sender, to, body):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.calls.append(("sendmail", sender, to, body))


def email_channel():
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    return EmailChannel(host="smtp.example.test", port=587, username="bot@example.com",
                        password="pw", use_tls=True, sender="RentAlert <bot@example.com>",
                        smtp_factory=FakeSMTP)


def test_email_sends_multipart():
    ch = email_channel()
    out = asyncio.run(ch.send(recipient(), RenderedMessage("<p>Pay rent</p>", subject="Rent Reminder - Sunset Flats")))
    assert out.success and out.cost == 0 and out.message_id
    smtp = FakeSMTP.instances[0]
    assert smtp.calls[0] == "starttls"
    assert smtp.calls[1] == ("login", "bot@example.com")
    _, sender, to, body = smtp.calls[2]
    assert to == ["grace@example.com"]
    parsed = message_from_string(body)
    assert parsed["Subject"] == "Rent Reminder - Sunset Flats"
    assert [p.get_content_type() for p in parsed.get_payload()] == ["text/plain", "text/html"]


def test_email_failures_are_outcomes():
    ch = email_channel()
    out = asyncio.run(ch.send(recipient(email=None), RenderedMessage("x")))
    assert out.error == "Tenant has no email address"
    assert FakeSMTP.instances == []

    FakeSMTP.fail_with = smtplib.SMTPRecipientsRefused({"grace@example.com": (550, b"no such user")})
    out = asyncio.run(ch.send(recipient(), RenderedMessage("x")))
    assert not out.success and out.cost == 0


# ---------------- log sanitizer ----------------

def test_sanitize_masks_phones_and_keys():
    clean = sanitize("sending to +256700123456 with apiKey=abcdef123456")
    assert "+256700123456" not in clean
    assert clean.endswith("apiKey=<redacted>")
    assert "456" in clean


def test_smtp_socket_timeout_is_below_send_timeout():
    from app.feature_flags import FeatureFlagStore
    from app.main_app import build_reminder_service
    from app.reminders.audit import AuditLog

    service = build_reminder_service(AuditLog(), FeatureFlagStore())
    email = service.dispatcher.channels["email"]
    assert email.timeout < service.dispatcher.send_timeout

    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    ch = EmailChannel(host="smtp.example.test", port=587, username="", password="", use_tls=False,
                      sender="bot@example.com", smtp_factory=FakeSMTP)
    asyncio.run(ch.send(recipient(), RenderedMessage("x")))
    assert FakeSMTP.instances[0].timeout == email.timeout
