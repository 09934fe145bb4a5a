# app/utils/phone.py
# Uganda phone numbers, normalized to +256XXXXXXXXX
from __future__ import annotations

import re
from typing import Any, Optional

_SEPARATORS_RE = re.compile(r"[\s\-().]")


def normalize_uganda_phone(phone: Any) -> Optional[str]:
    """
    Accepts +256XXXXXXXXX, 256XXXXXXXXX, 0XXXXXXXXX, XXXXXXXXX,
    with separators or in spreadsheet scientific notation (2.56702E+11).
    Returns None when the value cannot be normalized.
    """
    if phone is None or phone == "":
        return None
    cleaned = str(phone).strip()
    if "e" in cleaned.lower():
        try:
            cleaned = f"{float(cleaned):.0f}"
        except ValueError:
            pass
    cleaned = _SEPARATORS_RE.sub("", cleaned)

    if cleaned.startswith("+"):
        cleaned = "+" + re.sub(r"\D", "", cleaned[1:])
    else:
        cleaned = re.sub(r"\D", "", cleaned)

    if cleaned.startswith("+256"):
        return cleaned if len(cleaned) == 13 else None
    if cleaned.startswith("256"):
        return "+" + cleaned if len(cleaned) == 12 else None
    if cleaned.startswith("0"):
        return "+256" + cleaned[1:] if len(cleaned) == 10 else None
    if len(cleaned) == 9:
        return "+256" + cleaned
    return None


def format_phone_display(phone: Any) -> str:
    if not phone:
        return ""
    normalized = normalize_uganda_phone(phone)
    if not normalized:
        return str(phone)
    d = normalized[4:]
    return f"+256 {d[0:3]} {d[3:6]} {d[6:9]}"
