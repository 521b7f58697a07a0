# shopinpocket/serializers.py
from __future__ import annotations

from typing import Any, Dict, Optional

from .catalog import in_stock, load_variants
from .lifecycle import Actor, allowed_actions
from .models import Order, Product, Shop, User


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def shop_json(s: Shop, public: bool = False) -> Dict[str, Any]:
    out = {
        "id": s.id,
        "name": s.name,
        "description": s.description,
        "contact_info": s.contact_info,
        "slug": s.slug,
        "logo_url": s.logo_url,
        "primary_color": s.primary_color,
        "secondary_color": s.secondary_color,
        "accent_color": s.accent_color,
        "font_style": s.font_style,
    }
    if not public:
        out.update(
            {
                "user_id": s.user_id,
                "created_at": _iso(s.created_at),
                "updated_at": _iso(s.updated_at),
            }
        )
    return out


def product_json(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "shop_id": p.shop_id,
        "name": p.name,
        "price": float(p.price or 0),
        "description": p.description,
        "image_url": p.image_url,
        "stock": int(p.stock or 0),
        "in_stock": in_stock(p),
        "sizes": load_variants(p.sizes_json),
        "colors": load_variants(p.colors_json),
        "created_at": _iso(p.created_at),
        "updated_at": _iso(p.updated_at),
    }


def order_total(o: Order) -> float:
    price = float(o.product.price or 0) if o.product is not None else 0.0
    return round(price * int(o.quantity or 0), 2)


def order_json(o: Order, actor: Optional[Actor] = None, confirmation_link: Optional[str] = None) -> Dict[str, Any]:
    """
    `actor` decides `allowed_actions`; without one the order is shown read-only.
    """
    p = o.product
    out: Dict[str, Any] = {
        "id": o.id,
        "product_id": o.product_id,
        "customer_name": o.customer_name,
        "customer_contact": o.customer_contact,
        "delivery_address": o.delivery_address,
        "delivery_location": o.delivery_location,
        "quantity": o.quantity,
        "note": o.note,
        "status": o.status,
        "total": order_total(o),
        "created_at": _iso(o.created_at),
        "updated_at": _iso(o.updated_at),
        "delivered_at": _iso(o.delivered_at),
        "received_at": _iso(o.received_at),
        "product": {
            "id": p.id,
            "name": p.name,
            "price": float(p.price or 0),
            "image_url": p.image_url,
            "description": p.description,
        } if p is not None else None,
        "shop": {
            "id": p.shop.id,
            "name": p.shop.name,
            "slug": p.shop.slug,
        } if p is not None and p.shop is not None else None,
        "allowed_actions": allowed_actions(actor, o) if actor else [],
    }
    if confirmation_link:
        out["confirmation_link"] = confirmation_link
    return out


def user_json(u: User, is_admin: bool = False) -> Dict[str, Any]:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "phone": u.phone,
        "role": "admin" if is_admin else (u.role or "user"),
        "has_shop": u.shop is not None,
        "created_at": _iso(u.created_at),
    }
