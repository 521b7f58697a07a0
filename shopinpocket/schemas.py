# shopinpocket/schemas.py
"""
Request bodies for the HTTP API.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class SignupIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    password: str = Field(..., min_length=6)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class ShopIn(BaseModel):
    name: str = Field(..., min_length=1, description="Shop name")
    description: Optional[str] = None
    contact_info: str = Field("", description="Phone/email shown to customers")
    slug: Optional[str] = Field(None, description="Generated from name when empty")
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    font_style: Optional[str] = None


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, description="Price in TZS")
    description: Optional[str] = None
    image_url: Optional[str] = None
    stock: int = Field(0, ge=0)
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)


class OrderIn(BaseModel):
    product_id: int
    customer_name: str = Field(..., min_length=1)
    customer_contact: str = Field(..., min_length=1, description="Phone or email")
    delivery_address: str = Field(..., min_length=1)
    delivery_location: Optional[str] = None
    quantity: int = Field(1, ge=1)
    note: Optional[str] = None


class TransitionIn(BaseModel):
    # status the client was looking at; stale -> 409
    expected_status: Optional[str] = None


class ConfirmReceivedIn(BaseModel):
    order_id: int
    phone: str
    token: Optional[str] = None
    expected_status: Optional[str] = None
