from __future__ import annotations

import os

# must be set before shopinpocket.db builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopinpocket.db import Base, get_db
from shopinpocket.lifecycle import OrderStatus
from shopinpocket.main import app
from shopinpocket.models import Order, Product, Shop, User


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def _get_db():
        s = TestingSession()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# -------------------
# Direct model builders (unit tests)
# -------------------
@pytest.fixture()
def make_seller(db):
    def _make(email: str = "seller@example.com", slug: str = "duka-la-mama", stock: int = 5, price: str = "1500"):
        u = User(name="Seller", email=email, password_hash="x")
        db.add(u)
        db.flush()
        shop = Shop(user_id=u.id, name="Duka la Mama", contact_info="0712345678", slug=slug)
        db.add(shop)
        db.flush()
        p = Product(shop_id=shop.id, name="Kitenge", price=Decimal(price), stock=stock)
        db.add(p)
        db.commit()
        return u, shop, p

    return _make


@pytest.fixture()
def make_order(db):
    def _make(product: Product, qty: int = 1, status: OrderStatus = OrderStatus.PENDING, contact: str = "0712000111"):
        o = Order(
            product_id=product.id,
            customer_name="Asha",
            customer_contact=contact,
            delivery_address="Kariakoo, Dar es Salaam",
            quantity=qty,
            status=status.value,
        )
        db.add(o)
        db.commit()
        return o

    return _make


# -------------------
# API helpers
# -------------------
def signup_and_login(client: TestClient, email: str, password: str = "secret123", name: str = "User") -> dict:
    r = client.post("/auth/signup", json={"name": name, "email": email, "password": password})
    assert r.status_code == 200, r.text
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture()
def seller_headers(client):
    return signup_and_login(client, "seller@example.com", name="Seller")


@pytest.fixture()
def admin_headers(client):
    return signup_and_login(client, "admin@sip.co.tz", name="Admin")


@pytest.fixture()
def shop_with_product(client, seller_headers):
    r = client.put("/shop", json={"name": "Duka la Mama", "contact_info": "0712345678"}, headers=seller_headers)
    assert r.status_code == 200, r.text
    shop = r.json()
    r = client.post(
        "/shop/products",
        json={"name": "Kitenge", "price": 15000, "stock": 5, "sizes": ["M", "L", "M"]},
        headers=seller_headers,
    )
    assert r.status_code == 201, r.text
    return shop, r.json()


@pytest.fixture()
def place_order(client, shop_with_product):
    shop, product = shop_with_product

    def _place(qty: int = 1, contact: str = "0712000111", product_id: int | None = None):
        r = client.post(
            f"/shops/{shop['slug']}/orders",
            json={
                "product_id": product_id or product["id"],
                "customer_name": "Asha",
                "customer_contact": contact,
                "delivery_address": "Kariakoo, Dar es Salaam",
                "delivery_location": "  ",
                "quantity": qty,
            },
        )
        return r

    return _place
