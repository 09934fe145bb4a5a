# ----------------------------------------------------------------
# Import configuration variables to be used throughout the project
# ----------------------------------------------------------------
import os
from dotenv import load_dotenv

# Load .env (allow container env to override file values)
load_dotenv(override=True)


def _rstrip_slash(s: str) -> str:
    return (s or "").rstrip("/")


def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on", "y"}


def _get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, "") or default)
    except ValueError:
        return default


class Settings:
    # ── Database ─────────────────────────────────────────────────────────────
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/rentalert.db")

    # ── Auth ─────────────────────────────────────────────────────────────────
    # Bearer tokens are HS256 JWTs whose "sub" is the landlord's user id
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    # ── Admin Panel ──────────────────────────────────────────────────────────
    ADMIN_USER: str = os.getenv("ADMIN_USER", "admin")
    ADMIN_PASS: str = os.getenv("ADMIN_PASS", "changeme")

    # ── CORS ─────────────────────────────────────────────────────────────────
    # Comma-separated list in .env, e.g. "https://example.com, https://foo.bar"
    CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # ── Africa's Talking (SMS) ───────────────────────────────────────────────
    AT_USERNAME: str = os.getenv("AT_USERNAME", "")
    AT_API_KEY: str = os.getenv("AT_API_KEY", "")
    AT_SENDER_ID: str = os.getenv("AT_SENDER_ID", "RentAlert")
    AT_BASE_URL: str = _rstrip_slash(os.getenv("AT_BASE_URL", "https://api.africastalking.com"))
    SMS_COST: int = _get_int("SMS_COST", 50)  # UGX per delivered message

    # ── SMTP (email) ─────────────────────────────────────────────────────────
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = _get_int("SMTP_PORT", 587)
    SMTP_USER: str = os.getenv("SMTP_USER", "") or os.getenv("GMAIL_USER", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "") or os.getenv("GMAIL_APP_PASSWORD", "")
    SMTP_USE_TLS: bool = _get_bool("SMTP_USE_TLS", True)
    SMTP_TIMEOUT_SECONDS: float = _get_float("SMTP_TIMEOUT_SECONDS", 20.0)  # socket timeout, keep below REMINDER_SEND_TIMEOUT_SECONDS
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "") or (
        f"RentAlert <{os.getenv('SMTP_USER') or os.getenv('GMAIL_USER')}>"
        if (os.getenv("SMTP_USER") or os.getenv("GMAIL_USER")) else "RentAlert <no-reply@localhost>"
    )

    # ── Reminder jobs ────────────────────────────────────────────────────────
    REMINDER_JOB_TTL_SECONDS: int = _get_int("REMINDER_JOB_TTL_SECONDS", 60 * 60)  # keep finished jobs 1 hour
    REMINDER_SWEEP_INTERVAL_SECONDS: int = _get_int("REMINDER_SWEEP_INTERVAL_SECONDS", 5 * 60)
    REMINDER_SEND_DELAY_SECONDS: float = _get_float("REMINDER_SEND_DELAY_SECONDS", 0.1)
    REMINDER_SEND_TIMEOUT_SECONDS: float = _get_float("REMINDER_SEND_TIMEOUT_SECONDS", 30.0)


settings = Settings()
