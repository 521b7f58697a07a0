from __future__ import annotations

import os
from pathlib import Path

from shopinpocket.db import Base, SessionLocal, engine
from shopinpocket.models import Shop
from shopinpocket.shops import shop_qr_png, shop_url

# Public address the QR codes point at
BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

OUT_DIR = Path(os.getenv("QR_OUT_DIR", str(Path(__file__).resolve().parents[1] / "qrcodes")))


def main() -> None:
    Base.metadata.create_all(bind=engine)
    OUT_DIR.mkdir(parents=True, exist_ok=True)

    db = SessionLocal()
    try:
        shops = db.query(Shop).order_by(Shop.id.asc()).all()
        if not shops:
            raise SystemExit("No shops in the database yet")

        made = 0
        for shop in shops:
            url = shop_url(BASE_URL, shop.slug)
            out_path = OUT_DIR / f"{shop.slug}.png"
            out_path.write_bytes(shop_qr_png(url))

            print(f"OK  {shop.slug}  ->  {out_path}  ({url})")
            made += 1
    finally:
        db.close()

    print(f"\nDone. Generated {made} QR codes in: {OUT_DIR}")


if __name__ == "__main__":
    main()
