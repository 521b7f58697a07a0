# shopinpocket/routes/seller.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..catalog import dump_variants, search_products
from ..config import settings
from ..db import get_db
from ..deps import parse_status_param, public_base_url, require_shop, require_user
from ..lifecycle import ACTIONS, SELLER, Actor, OrderStatus, apply_transition, generate_confirmation_link
from ..models import Order, Product, Shop, User
from ..schemas import ProductIn, ShopIn, TransitionIn
from ..serializers import order_json, product_json, shop_json
from ..shops import generate_slug, get_shop_for_user, shop_qr_png, shop_url, slug_taken
from ..stats import seller_stats

log = logging.getLogger(__name__)

router = APIRouter(prefix="/shop", tags=["seller"])

# Actions exposed on the seller surface; customers confirm receipt elsewhere.
SELLER_ACTIONS = ("accept", "reject", "deliver")


def _seller(u: User) -> Actor:
    return Actor(role=SELLER, user_id=u.id)


def _confirmation_link(request: Request, o: Order) -> str:
    return generate_confirmation_link(
        public_base_url(request),
        o.id,
        o.customer_contact,
        sign=settings.confirm_link_signing,
        ttl_hours=settings.confirm_link_ttl_hours,
    )


def _shop_product(db: Session, shop: Shop, product_id: int) -> Product:
    p = db.query(Product).filter(Product.id == product_id, Product.shop_id == shop.id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return p


def _shop_order(db: Session, shop: Shop, order_id: int) -> Order:
    o = (
        db.query(Order)
        .join(Product, Order.product_id == Product.id)
        .filter(Order.id == order_id, Product.shop_id == shop.id)
        .first()
    )
    if not o:
        raise HTTPException(status_code=404, detail="Order not found")
    return o


# -------------------
# Shop settings
# -------------------
@router.get("")
def get_my_shop(shop: Shop = Depends(require_shop)):
    return shop_json(shop)


@router.put("")
def save_my_shop(payload: ShopIn, u: User = Depends(require_user), db: Session = Depends(get_db)):
    """
    First save creates the shop, later saves update it.
    """
    shop = get_shop_for_user(db, u.id)

    if (payload.slug or "").strip():
        slug = generate_slug(payload.slug)
    else:
        slug = shop.slug if shop else generate_slug(payload.name)
    if not slug:
        raise HTTPException(status_code=422, detail="Shop slug is empty")
    if slug_taken(db, slug, exclude_shop_id=shop.id if shop else None):
        raise HTTPException(status_code=409, detail="Slug already taken")

    data = payload.model_dump(exclude={"slug"})
    created = shop is None
    if created:
        shop = Shop(user_id=u.id, slug=slug, **data)
    else:
        for k, v in data.items():
            setattr(shop, k, v)
        shop.slug = slug
        shop.updated_at = datetime.utcnow()

    db.add(shop)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Slug already taken")
    db.refresh(shop)

    log.info("Shop %s %s (slug=%s)", shop.id, "created" if created else "updated", shop.slug)
    return shop_json(shop)


@router.get("/link")
def my_shop_link(request: Request, shop: Shop = Depends(require_shop)):
    return {"slug": shop.slug, "url": shop_url(public_base_url(request), shop.slug)}


@router.get("/qr.png")
def my_shop_qr(request: Request, shop: Shop = Depends(require_shop)):
    png = shop_qr_png(shop_url(public_base_url(request), shop.slug))
    return Response(content=png, media_type="image/png")


@router.get("/stats")
def my_shop_stats(shop: Shop = Depends(require_shop), db: Session = Depends(get_db)):
    return seller_stats(db, shop)


# -------------------
# Products
# -------------------
@router.get("/products")
def list_my_products(q: str | None = None, shop: Shop = Depends(require_shop), db: Session = Depends(get_db)):
    query = search_products(db.query(Product).filter(Product.shop_id == shop.id), q)
    return {"data": [product_json(p) for p in query.order_by(Product.created_at.desc(), Product.id.desc()).all()]}


@router.post("/products", status_code=201)
def create_product(payload: ProductIn, shop: Shop = Depends(require_shop), db: Session = Depends(get_db)):
    p = Product(
        shop_id=shop.id,
        name=payload.name.strip(),
        price=Decimal(str(payload.price)),
        description=payload.description,
        image_url=payload.image_url,
        stock=payload.stock,
        sizes_json=dump_variants(payload.sizes),
        colors_json=dump_variants(payload.colors),
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return product_json(p)


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    payload: ProductIn,
    shop: Shop = Depends(require_shop),
    db: Session = Depends(get_db),
):
    p = _shop_product(db, shop, product_id)
    p.name = payload.name.strip()
    p.price = Decimal(str(payload.price))
    p.description = payload.description
    p.image_url = payload.image_url
    p.stock = payload.stock
    p.sizes_json = dump_variants(payload.sizes)
    p.colors_json = dump_variants(payload.colors)
    p.updated_at = datetime.utcnow()

    db.add(p)
    db.commit()
    db.refresh(p)
    return product_json(p)


@router.delete("/products/{product_id}")
def delete_product(product_id: int, shop: Shop = Depends(require_shop), db: Session = Depends(get_db)):
    p = _shop_product(db, shop, product_id)
    if db.query(Order.id).filter(Order.product_id == p.id).first() is not None:
        raise HTTPException(status_code=409, detail="Product has orders and cannot be deleted")
    db.delete(p)
    db.commit()
    return {"ok": True}


# -------------------
# Orders
# -------------------
@router.get("/orders")
def list_my_orders(
    status: str | None = None,
    q: str | None = None,
    u: User = Depends(require_user),
    shop: Shop = Depends(require_shop),
    db: Session = Depends(get_db),
):
    st = parse_status_param(status)
    query = db.query(Order).join(Product, Order.product_id == Product.id).filter(Product.shop_id == shop.id)
    if st:
        query = query.filter(Order.status == st.value)
    term = (q or "").strip()
    if term:
        like = f"%{term}%"
        query = query.filter(
            or_(Order.customer_name.ilike(like), Order.customer_contact.ilike(like), Product.name.ilike(like))
        )
    actor = _seller(u)
    return {"data": [order_json(o, actor) for o in query.order_by(Order.created_at.desc(), Order.id.desc()).all()]}


@router.get("/orders/{order_id}")
def get_my_order(
    order_id: int,
    u: User = Depends(require_user),
    shop: Shop = Depends(require_shop),
    db: Session = Depends(get_db),
):
    return order_json(_shop_order(db, shop, order_id), _seller(u))


@router.delete("/orders/{order_id}")
def delete_my_order(order_id: int, shop: Shop = Depends(require_shop), db: Session = Depends(get_db)):
    o = _shop_order(db, shop, order_id)
    db.delete(o)
    db.commit()
    log.info("Order %s deleted by shop %s", order_id, shop.id)
    return {"ok": True}


@router.get("/orders/{order_id}/confirmation-link")
def my_order_confirmation_link(
    order_id: int,
    request: Request,
    shop: Shop = Depends(require_shop),
    db: Session = Depends(get_db),
):
    o = _shop_order(db, shop, order_id)
    return {"order_id": o.id, "url": _confirmation_link(request, o)}


@router.post("/orders/{order_id}/{action}")
def act_on_my_order(
    order_id: int,
    action: str,
    payload: TransitionIn | None = None,
    u: User = Depends(require_user),
    shop: Shop = Depends(require_shop),
    db: Session = Depends(get_db),
):
    if action not in SELLER_ACTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}")
    _shop_order(db, shop, order_id)

    expected: OrderStatus | None = parse_status_param(payload.expected_status) if payload else None
    actor = _seller(u)
    o = apply_transition(db, order_id, ACTIONS[action], actor, expected_status=expected)
    return order_json(o, actor)
