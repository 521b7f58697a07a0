# shopinpocket/deps.py
from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from .auth import decode_token
from .config import settings
from .db import get_db
from .lifecycle import OrderStatus, parse_status
from .models import Shop, User
from .shops import get_shop_for_user


def require_user_id(authorization: str | None = Header(default=None)) -> int:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")

    token = authorization.split(" ", 1)[1].strip()
    uid = decode_token(token)
    if not uid:
        raise HTTPException(status_code=401, detail="Invalid token")
    return uid


def require_user(user_id: int = Depends(require_user_id), db: Session = Depends(get_db)) -> User:
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(status_code=401, detail="Unknown user")
    return u


def is_admin(u: User) -> bool:
    return u.role == "admin" or (u.email or "").strip().lower() in settings.admin_emails


def require_admin(u: User = Depends(require_user)) -> User:
    if not is_admin(u):
        raise HTTPException(status_code=403, detail="Admin only")
    return u


def require_shop(u: User = Depends(require_user), db: Session = Depends(get_db)) -> Shop:
    shop = get_shop_for_user(db, u.id)
    if not shop:
        raise HTTPException(status_code=404, detail="Create your shop first")
    return shop


def public_base_url(request: Request) -> str:
    """PUBLIC_BASE_URL if set, else the origin the request came in on."""
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def parse_status_param(raw: str | None) -> OrderStatus | None:
    try:
        return parse_status(raw)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
