from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shopinpocket.db import Base
from shopinpocket.lifecycle import (
    ADMIN,
    CUSTOMER,
    SELLER,
    Actor,
    InvalidTransition,
    OrderNotFound,
    OrderStatus,
    StatusConflict,
    TransitionForbidden,
    allowed_actions,
    allowed_transitions,
    apply_transition,
    parse_status,
)
from shopinpocket.models import Order, Product, Shop, User

NOW = datetime(2026, 3, 14, 9, 30)


def _actor(role: str, seller, order) -> Actor:
    if role == CUSTOMER:
        return Actor(role=CUSTOMER, contact=order.customer_contact)
    return Actor(role=role, user_id=seller.id)


@pytest.mark.parametrize(
    "role,prior,target,stamp",
    [
        (SELLER, OrderStatus.PENDING, OrderStatus.ACCEPTED, None),
        (SELLER, OrderStatus.PENDING, OrderStatus.REJECTED, None),
        (SELLER, OrderStatus.ACCEPTED, OrderStatus.DELIVERED, "delivered_at"),
        (CUSTOMER, OrderStatus.DELIVERED, OrderStatus.RECEIVED, "received_at"),
        (ADMIN, OrderStatus.RECEIVED, OrderStatus.COMPLETED, None),
    ],
)
def test_defined_transitions_set_status_and_timestamp(db, make_seller, make_order, role, prior, target, stamp):
    seller, _, product = make_seller()
    order = make_order(product, status=prior)

    out = apply_transition(db, order.id, target, _actor(role, seller, order), now=NOW)

    assert out.status == target.value
    assert out.updated_at == NOW
    for field in ("delivered_at", "received_at"):
        if field == stamp:
            assert getattr(out, field) == NOW
        else:
            assert getattr(out, field) is None


def test_accept_reduces_stock(db, make_seller, make_order):
    seller, _, product = make_seller(stock=5)
    order = make_order(product, qty=2)

    apply_transition(db, order.id, OrderStatus.ACCEPTED, Actor(role=SELLER, user_id=seller.id))

    assert db.get(Product, product.id).stock == 3


def test_accept_floors_stock_at_zero(db, make_seller, make_order):
    seller, _, product = make_seller(stock=2)
    order = make_order(product, qty=7)

    apply_transition(db, order.id, OrderStatus.ACCEPTED, Actor(role=SELLER, user_id=seller.id))

    assert db.get(Product, product.id).stock == 0


def test_reject_leaves_stock_alone(db, make_seller, make_order):
    seller, _, product = make_seller(stock=4)
    order = make_order(product, qty=3)

    apply_transition(db, order.id, OrderStatus.REJECTED, Actor(role=SELLER, user_id=seller.id))

    assert db.get(Product, product.id).stock == 4


def test_skipping_straight_to_received_is_rejected(db, make_seller, make_order):
    _, _, product = make_seller()
    order = make_order(product)

    with pytest.raises(InvalidTransition):
        apply_transition(db, order.id, OrderStatus.RECEIVED, Actor(role=CUSTOMER, contact=order.customer_contact))

    assert db.get(Order, order.id).status == OrderStatus.PENDING.value


def test_skipping_to_delivered_is_rejected_for_seller(db, make_seller, make_order):
    seller, _, product = make_seller()
    order = make_order(product)

    with pytest.raises(InvalidTransition):
        apply_transition(db, order.id, OrderStatus.DELIVERED, Actor(role=SELLER, user_id=seller.id))


def test_double_accept_fails_and_decrements_once(db, make_seller, make_order):
    seller, _, product = make_seller(stock=5)
    order = make_order(product, qty=1)
    actor = Actor(role=SELLER, user_id=seller.id)

    apply_transition(db, order.id, OrderStatus.ACCEPTED, actor)
    with pytest.raises(InvalidTransition):
        apply_transition(db, order.id, OrderStatus.ACCEPTED, actor)

    assert db.get(Product, product.id).stock == 4


def test_stale_expected_status_is_a_conflict(db, make_seller, make_order):
    seller, _, product = make_seller()
    order = make_order(product, status=OrderStatus.ACCEPTED)

    with pytest.raises(StatusConflict):
        apply_transition(
            db,
            order.id,
            OrderStatus.REJECTED,
            Actor(role=SELLER, user_id=seller.id),
            expected_status=OrderStatus.PENDING,
        )


def test_seller_of_another_shop_cannot_act(db, make_seller, make_order):
    _, _, product = make_seller()
    stranger, _, _ = make_seller(email="other@example.com", slug="other-shop")
    order = make_order(product)

    with pytest.raises(TransitionForbidden):
        apply_transition(db, order.id, OrderStatus.ACCEPTED, Actor(role=SELLER, user_id=stranger.id))


def test_customer_with_wrong_contact_cannot_act(db, make_seller, make_order):
    _, _, product = make_seller()
    order = make_order(product, status=OrderStatus.DELIVERED)

    with pytest.raises(TransitionForbidden):
        apply_transition(db, order.id, OrderStatus.RECEIVED, Actor(role=CUSTOMER, contact="0799999999"))


def test_unknown_order(db):
    with pytest.raises(OrderNotFound):
        apply_transition(db, 404, OrderStatus.ACCEPTED, Actor(role=ADMIN, user_id=1))


@pytest.mark.parametrize("terminal", [OrderStatus.REJECTED, OrderStatus.RECEIVED, OrderStatus.COMPLETED])
def test_terminal_orders_expose_no_actions_to_seller_or_customer(db, make_seller, make_order, terminal):
    seller, _, product = make_seller()
    order = make_order(product, status=terminal)

    assert allowed_actions(Actor(role=SELLER, user_id=seller.id), order) == []
    assert allowed_actions(Actor(role=CUSTOMER, contact=order.customer_contact), order) == []


def test_admin_closes_out_received_orders(db, make_seller, make_order):
    seller, _, product = make_seller()
    admin = Actor(role=ADMIN, user_id=seller.id + 100)

    assert allowed_actions(admin, make_order(product, status=OrderStatus.RECEIVED)) == ["complete"]
    assert allowed_actions(admin, make_order(product, status=OrderStatus.COMPLETED)) == []
    assert allowed_actions(admin, make_order(product, status=OrderStatus.REJECTED)) == []


def test_role_views_of_a_delivered_order(db, make_seller, make_order):
    seller, _, product = make_seller()
    order = make_order(product, status=OrderStatus.DELIVERED)

    assert allowed_transitions(Actor(role=SELLER, user_id=seller.id), order) == frozenset()
    assert allowed_actions(Actor(role=CUSTOMER, contact=order.customer_contact), order) == ["receive"]


def test_pending_actions_for_seller(db, make_seller, make_order):
    seller, _, product = make_seller()
    order = make_order(product)

    assert allowed_actions(Actor(role=SELLER, user_id=seller.id), order) == ["accept", "reject"]


def test_parse_status():
    assert parse_status("pending") is OrderStatus.PENDING
    assert parse_status("DELIVERED") is OrderStatus.DELIVERED
    assert parse_status("all") is None
    assert parse_status("") is None
    with pytest.raises(ValueError):
        parse_status("shipped")


# -------------------
# Cross-session races (file-backed sqlite so sessions use separate connections)
# -------------------
@pytest.fixture()
def file_store(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=eng)
    Session = sessionmaker(bind=eng, autoflush=False, autocommit=False)
    yield Session
    eng.dispose()


def _seed_store(Session, stock: int, quantities) -> tuple:
    with Session() as setup:
        u = User(name="Seller", email="seller@example.com", password_hash="x")
        setup.add(u)
        setup.flush()
        shop = Shop(user_id=u.id, name="Duka", contact_info="", slug="duka")
        setup.add(shop)
        setup.flush()
        p = Product(shop_id=shop.id, name="Kanga", price=Decimal("5000"), stock=stock)
        setup.add(p)
        setup.flush()
        orders = []
        for i, qty in enumerate(quantities):
            o = Order(
                product_id=p.id,
                customer_name="Asha",
                customer_contact=f"071200011{i}",
                delivery_address="Arusha",
                quantity=qty,
                status=OrderStatus.PENDING.value,
            )
            setup.add(o)
            orders.append(o)
        setup.commit()
        return u.id, p.id, [o.id for o in orders]


def test_two_accepts_from_separate_sessions_never_go_negative(file_store):
    """
    Stock 5, two orders of 3 accepted from two sessions that both read the
    product at 5. The second accept must work from the stored stock.
    """
    seller_id, product_id, (first_id, second_id) = _seed_store(file_store, stock=5, quantities=[3, 3])
    actor = Actor(role=SELLER, user_id=seller_id)

    one = file_store()
    two = file_store()
    try:
        assert one.get(Product, product_id).stock == 5
        assert two.get(Product, product_id).stock == 5
        one.get(Order, first_id).product.shop
        two.get(Order, second_id).product.shop

        apply_transition(one, first_id, OrderStatus.ACCEPTED, actor)
        apply_transition(two, second_id, OrderStatus.ACCEPTED, actor)
    finally:
        one.close()
        two.close()

    with file_store() as check:
        assert check.get(Product, product_id).stock == 0
        assert check.get(Order, first_id).status == OrderStatus.ACCEPTED.value
        assert check.get(Order, second_id).status == OrderStatus.ACCEPTED.value


def test_racing_accept_from_stale_session_conflicts(file_store):
    """
    Two sessions read the same Pending order; the second writer must lose
    and must not touch stock.
    """
    seller_id, product_id, (order_id,) = _seed_store(file_store, stock=5, quantities=[3])
    actor = Actor(role=SELLER, user_id=seller_id)

    slow = file_store()
    fast = file_store()
    try:
        stale = slow.get(Order, order_id)
        assert stale.product.shop.user_id == seller_id  # loaded while still Pending

        apply_transition(fast, order_id, OrderStatus.ACCEPTED, actor)

        with pytest.raises(StatusConflict):
            apply_transition(slow, order_id, OrderStatus.ACCEPTED, actor)
    finally:
        slow.close()
        fast.close()

    with file_store() as check:
        assert check.get(Product, product_id).stock == 2
        assert check.get(Order, order_id).status == OrderStatus.ACCEPTED.value
