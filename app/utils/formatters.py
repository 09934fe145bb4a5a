# app/utils/formatters.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def format_currency(amount: Any) -> str:
    """1500000 -> 'UGX 1,500,000' (shillings have no minor unit)."""
    try:
        value = round(float(amount or 0))
    except (TypeError, ValueError):
        value = 0
    return f"UGX {value:,}"


def format_ordinal(num: Any) -> str:
    n = int(num)
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def current_month(today: date | None = None) -> str:
    d = today or date.today()
    return f"{d.year:04d}-{d.month:02d}"


def is_month(value: str | None) -> bool:
    m = _MONTH_RE.match((value or "").strip())
    return bool(m) and 1 <= int(m.group(2)) <= 12


def month_name(month: str | int | date | datetime | None = None) -> str:
    """
    Accepts "2025-11", a month number (1-12, current year) or a date.
    Returns e.g. "November 2025".
    """
    if month is None:
        month = date.today()
    if isinstance(month, (date, datetime)):
        return f"{_MONTHS[month.month - 1]} {month.year}"
    if isinstance(month, int):
        return f"{_MONTHS[month - 1]} {date.today().year}"
    m = _MONTH_RE.match(str(month).strip())
    if not m or not 1 <= int(m.group(2)) <= 12:
        raise ValueError(f"invalid month: {month!r}")
    return f"{_MONTHS[int(m.group(2)) - 1]} {m.group(1)}"


def strip_html(text: str | None) -> str:
    text = re.sub(r"(?is)<(script|style)[^>]*>.*?</\1>", "", text or "")
    text = re.sub(r"<[^>]+>", " ", text)
    return re.sub(r"\s+", " ", text).strip()
