# shopinpocket/lifecycle/policy.py
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from ..models import Order
from .status import ADMIN_TRANSITIONS, TRANSITIONS, OrderStatus, action_for

SELLER = "seller"
CUSTOMER = "customer"
ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """
    Who is asking. Built by the HTTP layer from a verified identity:
      - seller/admin: from the bearer token
      - customer: only after the order id + contact lookup succeeded
    """

    role: str
    user_id: Optional[int] = None
    contact: Optional[str] = None

    def describe(self) -> str:
        if self.role == CUSTOMER:
            return "customer"
        return f"{self.role}:{self.user_id}"


def _shop_owner_id(order: Order) -> Optional[int]:
    product = order.product
    if product is None or product.shop is None:
        return None
    return product.shop.user_id


def is_party(actor: Actor, order: Order) -> bool:
    if actor.role == ADMIN:
        return True
    if actor.role == SELLER:
        return actor.user_id is not None and _shop_owner_id(order) == actor.user_id
    if actor.role == CUSTOMER:
        return bool(actor.contact) and actor.contact == order.customer_contact
    return False


def _role_targets(role: str, current: OrderStatus) -> FrozenSet[OrderStatus]:
    base = TRANSITIONS.get(current, frozenset())
    if role == SELLER:
        return frozenset(t for t in base if t is not OrderStatus.RECEIVED)
    if role == CUSTOMER:
        return frozenset(t for t in base if t is OrderStatus.RECEIVED)
    if role == ADMIN:
        seller = frozenset(t for t in base if t is not OrderStatus.RECEIVED)
        return seller | ADMIN_TRANSITIONS.get(current, frozenset())
    return frozenset()


def allowed_transitions(actor: Actor, order: Order) -> FrozenSet[OrderStatus]:
    """Statuses `actor` may move `order` to right now. Empty if not a party."""
    if not is_party(actor, order):
        return frozenset()
    try:
        current = OrderStatus(order.status)
    except ValueError:
        return frozenset()
    return _role_targets(actor.role, current)


def allowed_actions(actor: Actor, order: Order) -> List[str]:
    # stable order for clients rendering buttons
    targets = allowed_transitions(actor, order)
    return [action_for(t) for t in OrderStatus if t in targets]
