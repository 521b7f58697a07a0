# shopinpocket/stats.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from .lifecycle import FULFILLED_STATES, OrderStatus
from .models import Order, Product, Shop, User
from .serializers import order_json

_FULFILLED = [s.value for s in FULFILLED_STATES]


def _revenue(db: Session, shop_id: Optional[int] = None, since: Optional[datetime] = None) -> float:
    q = (
        db.query(func.coalesce(func.sum(Order.quantity * Product.price), 0))
        .select_from(Order)
        .join(Product, Order.product_id == Product.id)
        .filter(Order.status.in_(_FULFILLED))
    )
    if shop_id is not None:
        q = q.filter(Product.shop_id == shop_id)
    if since is not None:
        q = q.filter(Order.created_at >= since)
    return round(float(q.scalar() or 0), 2)


def seller_stats(db: Session, shop: Shop) -> Dict[str, Any]:
    orders_q = db.query(Order).join(Product, Order.product_id == Product.id).filter(Product.shop_id == shop.id)
    return {
        "total_products": db.query(func.count(Product.id)).filter(Product.shop_id == shop.id).scalar() or 0,
        "total_orders": orders_q.count(),
        "pending_orders": orders_q.filter(Order.status == OrderStatus.PENDING.value).count(),
        "total_revenue": _revenue(db, shop_id=shop.id),
    }


def platform_stats(db: Session, recent_limit: int = 5) -> Dict[str, Any]:
    recent = db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(recent_limit).all()
    return {
        "users": db.query(func.count(User.id)).scalar() or 0,
        "shop_owners": db.query(func.count(distinct(Shop.user_id))).scalar() or 0,
        "shops": db.query(func.count(Shop.id)).scalar() or 0,
        "products": db.query(func.count(Product.id)).scalar() or 0,
        "orders": db.query(func.count(Order.id)).scalar() or 0,
        "pending_orders": db.query(func.count(Order.id)).filter(Order.status == OrderStatus.PENDING.value).scalar() or 0,
        "total_revenue": _revenue(db),
        "recent_orders": [order_json(o) for o in recent],
    }


def _top_shops(db: Session, limit: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(
            Shop.id,
            Shop.name,
            Shop.slug,
            func.count(distinct(Product.id)).label("products"),
            func.count(distinct(Order.id)).label("orders"),
        )
        .select_from(Shop)
        .outerjoin(Product, Product.shop_id == Shop.id)
        .outerjoin(Order, Order.product_id == Product.id)
        .group_by(Shop.id, Shop.name, Shop.slug)
        .order_by(func.count(distinct(Order.id)).desc(), Shop.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {"id": r.id, "name": r.name, "slug": r.slug, "products": r.products, "orders": r.orders}
        for r in rows
    ]


def _top_products(db: Session, limit: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(
            Product.id,
            Product.name,
            Product.price,
            Shop.name.label("shop_name"),
            func.count(Order.id).label("orders"),
        )
        .select_from(Product)
        .join(Shop, Product.shop_id == Shop.id)
        .outerjoin(Order, Order.product_id == Product.id)
        .group_by(Product.id, Product.name, Product.price, Shop.name)
        .order_by(func.count(Order.id).desc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": r.id,
            "name": r.name,
            "price": float(r.price or 0),
            "shop": r.shop_name,
            "orders": r.orders,
        }
        for r in rows
    ]


def platform_analytics(db: Session, days: int = 30, top: int = 5, now: Optional[datetime] = None) -> Dict[str, Any]:
    since = (now or datetime.utcnow()) - timedelta(days=days)
    return {
        "window_days": days,
        "recent_users": db.query(func.count(User.id)).filter(User.created_at >= since).scalar() or 0,
        "recent_shops": db.query(func.count(Shop.id)).filter(Shop.created_at >= since).scalar() or 0,
        "recent_orders": db.query(func.count(Order.id)).filter(Order.created_at >= since).scalar() or 0,
        "recent_revenue": _revenue(db, since=since),
        "top_shops": _top_shops(db, top),
        "top_products": _top_products(db, top),
    }
