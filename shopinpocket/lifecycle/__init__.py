# shopinpocket/lifecycle/__init__.py
from .errors import (
    InvalidTransition,
    LifecycleError,
    OrderNotFound,
    OutOfStock,
    StatusConflict,
    TransitionForbidden,
)
from .links import (
    find_order_for_contact,
    format_phone_number,
    generate_confirmation_link,
    normalize_contact,
    validate_order_access,
)
from .policy import ADMIN, CUSTOMER, SELLER, Actor, allowed_actions, allowed_transitions, is_party
from .status import ACTIONS, FULFILLED_STATES, TERMINAL_STATES, TRANSITIONS, OrderStatus, parse_status
from .transitions import apply_transition
