# shopinpocket/lifecycle/status.py
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional


class OrderStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DELIVERED = "Delivered"
    RECEIVED = "Received"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


# Moves a seller or customer can make. Received/Completed/Rejected end the flow.
TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACCEPTED, OrderStatus.REJECTED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RECEIVED}),
    OrderStatus.RECEIVED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}

# Admin close-out of a mutually confirmed order.
ADMIN_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.RECEIVED: frozenset({OrderStatus.COMPLETED}),
}

TERMINAL_STATES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.RECEIVED, OrderStatus.COMPLETED, OrderStatus.REJECTED}
)

# Counted as revenue
FULFILLED_STATES: FrozenSet[OrderStatus] = frozenset({OrderStatus.RECEIVED, OrderStatus.COMPLETED})

# Action name (as used in URLs) -> target status
ACTIONS: Dict[str, OrderStatus] = {
    "accept": OrderStatus.ACCEPTED,
    "reject": OrderStatus.REJECTED,
    "deliver": OrderStatus.DELIVERED,
    "receive": OrderStatus.RECEIVED,
    "complete": OrderStatus.COMPLETED,
}

# Timestamp column stamped when an order enters the status
TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.RECEIVED: "received_at",
}


def parse_status(raw: str | None) -> Optional[OrderStatus]:
    """Case-insensitive; returns None for empty input or "all"."""
    s = (raw or "").strip().lower()
    if not s or s == "all":
        return None
    for st in OrderStatus:
        if st.value.lower() == s:
            return st
    raise ValueError(f"Unknown order status: {raw}")


def action_for(target: OrderStatus) -> str:
    for name, st in ACTIONS.items():
        if st is target:
            return name
    raise KeyError(target)
