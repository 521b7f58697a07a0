# shopinpocket/auth.py
from __future__ import annotations

import hashlib
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext


pwd = CryptContext(schemes=["argon2"], deprecated="auto")

_CONFIRM_TYP = "order-confirm"


def _jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "dev-secret-change-me")


def _jwt_alg() -> str:
    return os.getenv("JWT_ALG", "HS256")


def _jwt_expire_minutes() -> int:
    # default 24h
    raw = os.getenv("JWT_EXPIRE_MIN", "1440")
    try:
        return int(raw)
    except ValueError:
        return 1440


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    return pwd.verify(p, h)


def create_token(user_id: int) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=_jwt_expire_minutes())
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, _jwt_secret(), algorithm=_jwt_alg())


def decode_token(token: str) -> Optional[int]:
    try:
        data = jwt.decode(token, _jwt_secret(), algorithms=[_jwt_alg()])
        if data.get("typ"):
            # confirmation-link tokens are not login tokens
            return None
        return int(data.get("sub"))
    except (JWTError, TypeError, ValueError):
        return None


# -------------------
# Signed confirmation links
# -------------------
def _contact_digest(contact: str) -> str:
    return hashlib.sha256((contact or "").strip().encode("utf-8")).hexdigest()


def create_confirmation_token(order_id: int, contact: str, ttl_hours: int) -> str:
    """
    Binds an order id and the customer's contact into a short-lived token.
    The contact itself is not embedded, only its digest.
    """
    exp = datetime.now(timezone.utc) + timedelta(hours=ttl_hours)
    payload = {
        "sub": str(order_id),
        "cdg": _contact_digest(contact),
        "typ": _CONFIRM_TYP,
        "exp": exp,
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=_jwt_alg())


def verify_confirmation_token(token: str, order_id: int, contact: str) -> bool:
    try:
        data = jwt.decode(token, _jwt_secret(), algorithms=[_jwt_alg()])
    except JWTError:
        return False
    return (
        data.get("typ") == _CONFIRM_TYP
        and data.get("sub") == str(order_id)
        and data.get("cdg") == _contact_digest(contact)
    )
