#===========================================================================
# app/messaging/templates.py
# Rent reminder message bodies. Pure functions, safe to call repeatedly.
#===========================================================================
from __future__ import annotations

from html import escape
from typing import Any, Optional

from app.utils.formatters import format_currency, format_ordinal, month_name
from app.utils.phone import format_phone_display


def render_sms(
    *,
    tenant_name: str,
    month: str,
    rent_amount: Any,
    due_date: int,
    landlord_name: Optional[str] = None,
) -> str:
    message = (
        f"Hello {tenant_name}, your rent for {month_name(month)} ({format_currency(rent_amount)}) "
        f"is due on the {format_ordinal(due_date)}. Kindly clear to avoid penalties. Thank you."
    )
    if landlord_name:
        message += f" - {landlord_name}"
    return message


def email_subject(property_name: Optional[str]) -> str:
    return f"Rent Reminder - {property_name}" if property_name else "Rent Reminder"


_EMAIL_CSS = """
    body { font-family: Arial, sans-serif; color: #333; margin: 0; padding: 0; background-color: #f5f5f5; }
    .container { max-width: 600px; margin: 20px auto; background: white; border-radius: 8px; overflow: hidden; }
    .header { background: #2563EB; color: white; padding: 30px 20px; text-align: center; }
    .header h1 { margin: 0; font-size: 24px; }
    .content { padding: 30px 20px; background: white; }
    .amount { font-size: 32px; font-weight: bold; color: #2563EB; margin: 20px 0; }
    .info-row { display: flex; justify-content: space-between; padding: 12px 0; border-bottom: 1px solid #e5e7eb; }
    .info-label { color: #6b7280; font-weight: 500; }
    .info-value { color: #111827; font-weight: 600; }
    .notice { background: #fef3c7; border-left: 4px solid #f59e0b; padding: 15px; margin: 20px 0; border-radius: 4px; }
    .footer { text-align: center; padding: 20px; background: #f9fafb; color: #6b7280; font-size: 12px; }
"""


def render_email(
    *,
    tenant_name: str,
    month: str,
    rent_amount: Any,
    due_date: int,
    unit_number: Optional[str] = None,
    landlord_name: Optional[str] = None,
    landlord_phone: Optional[str] = None,
) -> str:
    period = month_name(month)
    phone_line = f'<span style="color: #6b7280;">{escape(format_phone_display(landlord_phone))}</span>' if landlord_phone else ""
    return f"""<!DOCTYPE html>
<html>
<head>
  <style>{_EMAIL_CSS}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>Rent Reminder</h1></div>
    <div class="content">
      <p>Dear <strong>{escape(tenant_name)}</strong>,</p>
      <p>This is a friendly reminder that your rent for <strong>{period}</strong> is due soon.</p>
      <div class="amount">{format_currency(rent_amount)}</div>
      <div class="info-row"><span class="info-label">Unit Number:</span><span class="info-value">{escape(unit_number or "-")}</span></div>
      <div class="info-row"><span class="info-label">Due Date:</span><span class="info-value">{format_ordinal(due_date)}</span></div>
      <div class="info-row"><span class="info-label">Month:</span><span class="info-value">{period}</span></div>
      <div class="notice"><strong>Important:</strong> Kindly clear your rent by the due date to avoid late payment penalties.</div>
      <p>If you have already paid, please disregard this message.</p>
      <p>Thank you,<br><strong>{escape(landlord_name or "Your Landlord")}</strong><br>{phone_line}</p>
    </div>
    <div class="footer"><p>Sent via RentAlert - Rent Management Made Simple</p></div>
  </div>
</body>
</html>"""
