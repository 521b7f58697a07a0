# shopinpocket/main.py
from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import create_token, hash_password, verify_password
from .config import settings
from .db import Base, engine, get_db
from .deps import is_admin, require_user
from .lifecycle import LifecycleError
from .models import User
from .routes import admin, public, seller
from .schemas import LoginIn, SignupIn
from .serializers import user_json
from .shops import get_shop_for_user

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(
    title="ShopInPocket API",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

Base.metadata.create_all(bind=engine)

app.include_router(seller.router)
app.include_router(public.router)
app.include_router(admin.router)


# -------------------
# Errors
# -------------------
@app.exception_handler(LifecycleError)
def lifecycle_error(request: Request, exc: LifecycleError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc), "code": exc.code})


@app.exception_handler(SQLAlchemyError)
def database_error(request: Request, exc: SQLAlchemyError):
    log.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


# -------------------
# Health
# -------------------
@app.get("/")
def root():
    return {"ok": True, "service": "shopinpocket-api", "currency": settings.currency}


# -------------------
# Auth
# -------------------
@app.post("/auth/signup")
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(status_code=400, detail="Email already exists")

    u = User(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
    )
    db.add(u)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Email already exists")
    db.refresh(u)
    return {"ok": True}


@app.post("/auth/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    u = db.query(User).filter(User.email == payload.email).first()
    if not u or not verify_password(payload.password, u.password_hash):
        raise HTTPException(status_code=401, detail="Bad credentials")
    return {"token": create_token(u.id)}


@app.get("/auth/me")
def me(u: User = Depends(require_user), db: Session = Depends(get_db)):
    out = user_json(u, is_admin=is_admin(u))
    shop = get_shop_for_user(db, u.id)
    # a user with a shop is a seller, everyone else only has customer views
    out["is_seller"] = shop is not None
    out["shop_slug"] = shop.slug if shop else None
    return out
