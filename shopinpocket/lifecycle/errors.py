# shopinpocket/lifecycle/errors.py
"""Order lifecycle exceptions.

Raised by the lifecycle functions; the HTTP layer turns them into
status codes (see ``shopinpocket.main``).
"""
from __future__ import annotations


class LifecycleError(Exception):
    status_code = 400
    code = "lifecycle_error"


class OrderNotFound(LifecycleError):
    """No order with that id (or not visible to the caller)."""

    status_code = 404
    code = "order_not_found"


class TransitionForbidden(LifecycleError):
    """The caller is not a party to this order."""

    status_code = 403
    code = "forbidden"


class InvalidTransition(LifecycleError):
    """The requested status is not reachable from the current one for this caller."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move order from {current} to {target}")
        self.current = current
        self.target = target


class StatusConflict(LifecycleError):
    """The order changed status between read and write."""

    status_code = 409
    code = "status_conflict"


class OutOfStock(LifecycleError):
    status_code = 409
    code = "out_of_stock"
