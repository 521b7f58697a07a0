# shopinpocket/routes/admin.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import is_admin, parse_status_param, require_admin
from ..lifecycle import ACTIONS, ADMIN, Actor, OrderStatus, apply_transition
from ..models import Order, Product, Shop, User
from ..schemas import TransitionIn
from ..serializers import order_json, product_json, shop_json, user_json
from ..stats import platform_analytics, platform_stats

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

ADMIN_ACTIONS = ("accept", "reject", "deliver", "complete")


def _admin(u: User) -> Actor:
    return Actor(role=ADMIN, user_id=u.id)


@router.get("/stats")
def admin_stats(db: Session = Depends(get_db)):
    return platform_stats(db)


@router.get("/analytics")
def admin_analytics(days: int = 30, db: Session = Depends(get_db)):
    if days < 1:
        raise HTTPException(status_code=422, detail="days must be >= 1")
    return platform_analytics(db, days=days)


@router.get("/shops")
def admin_shops(db: Session = Depends(get_db)):
    counts = dict(
        db.query(Product.shop_id, func.count(Product.id)).group_by(Product.shop_id).all()
    )
    shops = db.query(Shop).order_by(Shop.created_at.desc(), Shop.id.desc()).all()
    return {"data": [dict(shop_json(s), products=counts.get(s.id, 0)) for s in shops]}


@router.get("/products")
def admin_products(db: Session = Depends(get_db)):
    products = db.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()
    return {
        "data": [
            dict(product_json(p), shop={"id": p.shop.id, "name": p.shop.name, "slug": p.shop.slug})
            for p in products
        ]
    }


@router.get("/orders")
def admin_orders(status: str | None = None, u: User = Depends(require_admin), db: Session = Depends(get_db)):
    st = parse_status_param(status)
    query = db.query(Order)
    if st:
        query = query.filter(Order.status == st.value)
    actor = _admin(u)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    by_status = dict(db.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
    return {
        "data": [order_json(o, actor) for o in orders],
        "counts": {s.value: by_status.get(s.value, 0) for s in OrderStatus},
    }


@router.get("/users")
def admin_users(db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    return {"data": [user_json(u, is_admin=is_admin(u)) for u in users]}


@router.post("/orders/{order_id}/{action}")
def admin_act_on_order(
    order_id: int,
    action: str,
    payload: TransitionIn | None = None,
    u: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if action not in ADMIN_ACTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}")
    expected = parse_status_param(payload.expected_status) if payload else None
    actor = _admin(u)
    o = apply_transition(db, order_id, ACTIONS[action], actor, expected_status=expected)
    return order_json(o, actor)
