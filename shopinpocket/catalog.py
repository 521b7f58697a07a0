# shopinpocket/catalog.py
from __future__ import annotations

import json
from typing import Iterable, List

from sqlalchemy import or_
from sqlalchemy.orm import Query

from .models import Product


def load_variants(raw: str | None) -> List[str]:
    try:
        v = json.loads(raw or "[]")
    except json.JSONDecodeError:
        return []
    return [str(x) for x in v] if isinstance(v, list) else []


def dump_variants(values: Iterable[str] | None) -> str:
    """Trimmed, non-empty, first occurrence kept."""
    out: List[str] = []
    for raw in values or []:
        s = str(raw or "").strip()
        if s and s not in out:
            out.append(s)
    return json.dumps(out, ensure_ascii=False)


def in_stock(product: Product) -> bool:
    return (product.stock or 0) > 0


def search_products(q: Query, term: str | None) -> Query:
    term = (term or "").strip()
    if not term:
        return q
    like = f"%{term}%"
    return q.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
