# shopinpocket/lifecycle/links.py
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, urlencode

from sqlalchemy.orm import Session

from ..auth import create_confirmation_token
from ..models import Order

_NON_DIGIT_RE = re.compile(r"\D")

CONFIRM_PATH = "/confirm-order"


def generate_confirmation_link(
    base_url: str,
    order_id: int,
    customer_contact: str,
    sign: bool = False,
    ttl_hours: int = 168,
) -> str:
    """
    {base}/confirm-order?order_id=<id>&phone=<contact, url-encoded>

    With `sign`, a `token` param binds the link to this order + contact and expires.
    """
    base = (base_url or "").rstrip("/")
    params = {"order_id": str(order_id), "phone": customer_contact}
    if sign:
        params["token"] = create_confirmation_token(order_id, customer_contact, ttl_hours)
    return f"{base}{CONFIRM_PATH}?{urlencode(params, quote_via=quote)}"


def format_phone_number(phone: str) -> str:
    """Normalise to Tanzanian international digits (255XXXXXXXXX)."""
    cleaned = _NON_DIGIT_RE.sub("", phone or "")
    if cleaned.startswith("255"):
        return cleaned
    if cleaned.startswith("0"):
        return "255" + cleaned[1:]
    if len(cleaned) == 9:
        return "255" + cleaned
    return cleaned


def normalize_contact(contact: str | None) -> str:
    return (contact or "").strip()


def validate_order_access(order_id, customer_contact: str | None) -> bool:
    return bool(order_id) and bool(customer_contact) and len(customer_contact) >= 9


def find_order_for_contact(db: Session, order_id: int, customer_contact: str) -> Optional[Order]:
    """Both must match exactly; a wrong contact looks the same as a missing order."""
    customer_contact = normalize_contact(customer_contact)
    if not order_id or not customer_contact:
        return None
    return (
        db.query(Order)
        .filter(Order.id == order_id, Order.customer_contact == customer_contact)
        .first()
    )
