# --- Global log sanitizer: keep tenant phone numbers and provider keys out of logs ---
import logging, re

from app.config import settings

_PHONE_RE = re.compile(r'\+?256\d{9}\b|\b0\d{9}\b')
_APIKEY_RE = re.compile(r'(?i)(apiKey["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-]{8,})')

def mask_phone(m: re.Match) -> str:
    s = m.group(0)
    return s[:-7] + "****" + s[-3:]

def sanitize(msg: str) -> str:
    msg = _PHONE_RE.sub(mask_phone, msg)
    msg = _APIKEY_RE.sub(r'\1<redacted>', msg)
    key = settings.AT_API_KEY
    if key and key in msg:
        msg = msg.replace(key, "<redacted>")
    return msg

class _SensitiveDataFilter(logging.Filter):
    """Mask phone numbers and the SMS provider key in rendered log messages."""
    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
            if isinstance(msg, str):
                clean = sanitize(msg)
                if clean != msg:
                    record.msg = clean
                    record.args = ()
        except Exception:
            pass
        return True

def install() -> None:
    # install once on common loggers (root + uvicorn family)
    for _name in ("", "uvicorn", "uvicorn.error"):
        lg = logging.getLogger(_name)
        if not any(isinstance(f, _SensitiveDataFilter) for f in lg.filters):
            lg.addFilter(_SensitiveDataFilter())
# --------------------------------------------------------------------------------
