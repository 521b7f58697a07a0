# shopinpocket/config.py
from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no", ""}


def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "").strip()
    admin_emails: List[str] = [
        e.strip().lower()
        for e in os.getenv("ADMIN_EMAILS", "SIPKING@sip.co.tz,admin@sip.co.tz").split(",")
        if e.strip()
    ]
    currency: str = os.getenv("CURRENCY", "TZS")

    confirm_link_signing: bool = _flag("CONFIRM_LINK_SIGNING", "0")
    confirm_link_ttl_hours: int = _int("CONFIRM_LINK_TTL_HOURS", 168)

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
