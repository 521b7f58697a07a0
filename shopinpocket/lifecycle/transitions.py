# shopinpocket/lifecycle/transitions.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Order, Product
from .errors import InvalidTransition, OrderNotFound, StatusConflict, TransitionForbidden
from .policy import Actor, allowed_transitions, is_party
from .status import TIMESTAMP_FIELDS, OrderStatus

log = logging.getLogger(__name__)


def _status_values(target: OrderStatus, now: datetime) -> Dict[str, Any]:
    values: Dict[str, Any] = {"status": target.value, "updated_at": now}
    ts_field = TIMESTAMP_FIELDS.get(target)
    if ts_field:
        values[ts_field] = now
    return values


def _decrement_stock(db: Session, product_id: int, qty: int) -> None:
    # Relative update: concurrent accepts serialise on the row and the floor holds.
    db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=case((Product.stock > qty, Product.stock - qty), else_=0))
        .execution_options(synchronize_session=False)
    )


def apply_transition(
    db: Session,
    order_id: int,
    target: OrderStatus,
    actor: Actor,
    expected_status: Optional[OrderStatus] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Move one order to `target`.

    Status write and (on Accept) stock adjustment happen in one transaction.
    The status write only applies if the row still holds the status we
    validated against, so a racing actor or a double submit gets
    StatusConflict and nothing is written.

    `expected_status` is what the caller last saw; if given and stale,
    StatusConflict is raised before touching anything.
    """
    order = db.get(Order, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")

    if not is_party(actor, order):
        raise TransitionForbidden("Not allowed to act on this order")

    current = order.status
    if expected_status is not None and expected_status.value != current:
        raise StatusConflict(f"Order is {current}, expected {expected_status.value}")

    if target not in allowed_transitions(actor, order):
        log.warning(
            "Refused transition order=%s %s->%s by %s", order.id, current, target.value, actor.describe()
        )
        raise InvalidTransition(current, target.value)

    now = now or datetime.utcnow()
    try:
        res = db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == current)
            .values(**_status_values(target, now))
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            db.rollback()
            log.warning("Status conflict on order=%s (expected %s)", order_id, current)
            raise StatusConflict(f"Order {order_id} changed status, reload and retry")

        if target is OrderStatus.ACCEPTED:
            _decrement_stock(db, order.product_id, int(order.quantity or 1))
            log.info("Stock -%s on product=%s for order=%s", order.quantity, order.product_id, order.id)

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Transition failed order=%s %s->%s", order_id, current, target.value)
        raise

    db.refresh(order)
    if order.product is not None:
        db.refresh(order.product)

    log.info("Order %s: %s -> %s by %s", order.id, current, target.value, actor.describe())
    return order
