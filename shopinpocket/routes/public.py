# shopinpocket/routes/public.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import verify_confirmation_token
from ..catalog import in_stock, search_products
from ..config import settings
from ..db import get_db
from ..deps import parse_status_param, public_base_url
from ..lifecycle import (
    CUSTOMER,
    FULFILLED_STATES,
    Actor,
    OrderStatus,
    OutOfStock,
    apply_transition,
    find_order_for_contact,
    generate_confirmation_link,
    normalize_contact,
)
from ..models import Order, Product, Shop
from ..schemas import ConfirmReceivedIn, OrderIn
from ..serializers import order_json, product_json, shop_json
from ..shops import get_shop_by_slug, shop_qr_png, shop_url

log = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


def _shop_or_404(db: Session, slug: str) -> Shop:
    shop = get_shop_by_slug(db, slug)
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    return shop


def _customer(contact: str) -> Actor:
    return Actor(role=CUSTOMER, contact=contact)


def _customer_order(db: Session, order_id: int, phone: str, token: str | None) -> Order:
    """
    order id + exact contact is the access check. With signed links on,
    the token must also match and be unexpired.
    """
    phone = normalize_contact(phone)
    o = find_order_for_contact(db, order_id, phone)
    if not o:
        raise HTTPException(status_code=404, detail="Order not found or invalid access")
    if settings.confirm_link_signing:
        if not token or not verify_confirmation_token(token, o.id, phone):
            raise HTTPException(status_code=403, detail="Invalid or expired confirmation link")
    return o


# -------------------
# Shop page (slug)
# -------------------
@router.get("/shops/{slug}")
def public_shop(slug: str, db: Session = Depends(get_db)):
    return shop_json(_shop_or_404(db, slug), public=True)


@router.get("/shops/{slug}/products")
def public_shop_products(slug: str, q: str | None = None, db: Session = Depends(get_db)):
    shop = _shop_or_404(db, slug)
    query = search_products(db.query(Product).filter(Product.shop_id == shop.id), q)
    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return {"shop": shop_json(shop, public=True), "data": [product_json(p) for p in products]}


@router.get("/shops/{slug}/qr.png")
def public_shop_qr(slug: str, request: Request, db: Session = Depends(get_db)):
    shop = _shop_or_404(db, slug)
    png = shop_qr_png(shop_url(public_base_url(request), shop.slug))
    return Response(content=png, media_type="image/png")


@router.post("/shops/{slug}/orders", status_code=201)
def place_order(slug: str, payload: OrderIn, request: Request, db: Session = Depends(get_db)):
    shop = _shop_or_404(db, slug)
    product = (
        db.query(Product)
        .filter(Product.id == payload.product_id, Product.shop_id == shop.id)
        .first()
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if not in_stock(product):
        raise OutOfStock(f"{product.name} is out of stock")

    o = Order(
        product_id=product.id,
        customer_name=payload.customer_name.strip(),
        customer_contact=normalize_contact(payload.customer_contact),
        delivery_address=payload.delivery_address.strip(),
        # only keep a location if one was given
        delivery_location=(payload.delivery_location or "").strip() or None,
        quantity=payload.quantity,
        note=(payload.note or "").strip() or None,
        status=OrderStatus.PENDING.value,
    )
    db.add(o)
    db.commit()
    db.refresh(o)

    log.info("Order %s placed: shop=%s product=%s qty=%s", o.id, shop.slug, product.id, o.quantity)

    link = generate_confirmation_link(
        public_base_url(request),
        o.id,
        o.customer_contact,
        sign=settings.confirm_link_signing,
        ttl_hours=settings.confirm_link_ttl_hours,
    )
    return order_json(o, _customer(o.customer_contact), confirmation_link=link)


# -------------------
# Customer confirmation (capability link)
# -------------------
@router.get("/confirm-order")
def view_order_for_confirmation(
    order_id: int,
    phone: str,
    token: str | None = None,
    db: Session = Depends(get_db),
):
    o = _customer_order(db, order_id, phone, token)
    return order_json(o, _customer(o.customer_contact))


@router.post("/confirm-order/received")
def confirm_received(payload: ConfirmReceivedIn, db: Session = Depends(get_db)):
    o = _customer_order(db, payload.order_id, payload.phone, payload.token)
    expected = parse_status_param(payload.expected_status)
    actor = _customer(o.customer_contact)
    o = apply_transition(db, o.id, OrderStatus.RECEIVED, actor, expected_status=expected)
    return order_json(o, actor)


@router.get("/your-orders")
def your_orders(
    phone: str,
    status: str | None = None,
    q: str | None = None,
    db: Session = Depends(get_db),
):
    """
    Every order placed with this contact. Only served while confirmation
    links are unsigned, since the contact alone is the key here.
    """
    if settings.confirm_link_signing:
        raise HTTPException(status_code=403, detail="Use the confirmation link from the seller")

    phone = normalize_contact(phone)
    if not phone:
        raise HTTPException(status_code=422, detail="phone is required")

    st = parse_status_param(status)
    all_orders = (
        db.query(Order)
        .filter(Order.customer_contact == phone)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )

    query = db.query(Order).join(Product, Order.product_id == Product.id).join(Shop, Product.shop_id == Shop.id)
    query = query.filter(Order.customer_contact == phone)
    if st:
        query = query.filter(Order.status == st.value)
    term = (q or "").strip()
    if term:
        like = f"%{term}%"
        query = query.filter(or_(Product.name.ilike(like), Shop.name.ilike(like)))

    actor = _customer(phone)
    return {
        "data": [order_json(o, actor) for o in query.order_by(Order.created_at.desc(), Order.id.desc()).all()],
        "summary": {
            "total": len(all_orders),
            "pending": sum(1 for o in all_orders if o.status == OrderStatus.PENDING.value),
            "delivered": sum(1 for o in all_orders if o.status == OrderStatus.DELIVERED.value),
            "fulfilled": sum(1 for o in all_orders if o.status in {s.value for s in FULFILLED_STATES}),
        },
    }
