# shopinpocket/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .db import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, default="user")  # user | admin
    created_at = Column(DateTime, default=datetime.utcnow)

    shop = relationship("Shop", back_populates="owner", uselist=False)


class Shop(Base):
    __tablename__ = "shops"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    contact_info = Column(String, nullable=False, default="")
    slug = Column(String, unique=True, index=True, nullable=False)

    # branding
    logo_url = Column(Text, nullable=True)  # url or data: url
    primary_color = Column(String, nullable=True)
    secondary_color = Column(String, nullable=True)
    accent_color = Column(String, nullable=True)
    font_style = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", back_populates="shop")
    products = relationship("Product", back_populates="shop", cascade="all, delete-orphan")


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False, default=0)  # TZS
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    sizes_json = Column(Text, default="[]")
    colors_json = Column(Text, default="[]")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    shop = relationship("Shop", back_populates="products")
    orders = relationship("Order", back_populates="product")


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    customer_name = Column(String, nullable=False)
    customer_contact = Column(String, nullable=False, index=True)  # phone or email
    delivery_address = Column(Text, nullable=False)
    delivery_location = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    note = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="Pending", index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)
    delivered_at = Column(DateTime, nullable=True)
    received_at = Column(DateTime, nullable=True)

    product = relationship("Product", back_populates="orders")
