# backend/counterpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/counterpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///counterpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Every table row is scoped to this namespace (one shop per namespace)
    APP_NAMESPACE = os.environ.get("APP_NAMESPACE", "default-app-id")

    # Flat VAT rate in basis points (1800 = 18%)
    VAT_RATE_BPS = int(os.environ.get("VAT_RATE_BPS", "1800"))

    DEFAULT_INVOICE_PREFIX = os.environ.get("DEFAULT_INVOICE_PREFIX", "FAC-")
    INVOICE_NUMBER_PAD = 5

    # Optimistic-conflict retry policy for sale and payment transactions
    TRANSACTION_ATTEMPTS = int(os.environ.get("TRANSACTION_ATTEMPTS", "5"))
    TRANSACTION_BACKOFF_BASE = float(os.environ.get("TRANSACTION_BACKOFF_BASE", "0.05"))
