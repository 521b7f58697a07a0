# shopinpocket/shops.py
from __future__ import annotations

import io
import re
from typing import Optional

import qrcode
from sqlalchemy.orm import Session

from .models import Shop

_SLUG_BAD_CHARS_RE = re.compile(r"[^a-z0-9-]")
_SLUG_DASHES_RE = re.compile(r"-{2,}")


def generate_slug(raw: str) -> str:
    """'Mama Ntilie Foods!' -> 'mama-ntilie-foods'"""
    s = (raw or "").strip().lower()
    s = _SLUG_BAD_CHARS_RE.sub("-", s)
    s = _SLUG_DASHES_RE.sub("-", s)
    return s.strip("-")


def normalize_slug(slug: str) -> str:
    return generate_slug(slug)


def slug_taken(db: Session, slug: str, exclude_shop_id: Optional[int] = None) -> bool:
    q = db.query(Shop.id).filter(Shop.slug == slug)
    if exclude_shop_id is not None:
        q = q.filter(Shop.id != exclude_shop_id)
    return q.first() is not None


def get_shop_by_slug(db: Session, slug: str) -> Optional[Shop]:
    slug = normalize_slug(slug)
    if not slug:
        return None
    return db.query(Shop).filter(Shop.slug == slug).first()


def get_shop_for_user(db: Session, user_id: int) -> Optional[Shop]:
    # one shop per user: first one wins if older data has more
    return db.query(Shop).filter(Shop.user_id == user_id).order_by(Shop.id.asc()).first()


def shop_url(base_url: str, slug: str) -> str:
    return f"{(base_url or '').rstrip('/')}/shop/{slug}"


def shop_qr_png(url: str) -> bytes:
    img = qrcode.make(url)
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()
