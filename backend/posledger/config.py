# backend/posledger/config.py
from __future__ import annotations
import os
from decimal import Decimal


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/posledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///posledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Currency every price and transaction total is stored in
    BASE_CURRENCY = os.environ.get("BASE_CURRENCY", "BS")

    # Percent applied to lines flagged includes_tax
    TAX_RATE_PERCENT = Decimal(os.environ.get("TAX_RATE_PERCENT", "10"))

    # Receipt images larger than this are rejected (1 MiB)
    MAX_RECEIPT_IMAGE_BYTES = int(os.environ.get("MAX_RECEIPT_IMAGE_BYTES", str(1024 * 1024)))

    # Items at or below this quantity show up in the low-stock summary
    LOW_STOCK_THRESHOLD = Decimal(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

    # Front-end origins allowed to call the JSON API (comma separated)
    CORS_ALLOWED_ORIGINS = frozenset(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    )
