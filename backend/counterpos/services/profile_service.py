# Overview: Company profile singleton access and invoice number formatting.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CompanyProfile
from ..time_utils import epoch_millis
from .tenant_service import current_namespace

PROFILE_MUTABLE_FIELDS = {
    "name",
    "address",
    "phone",
    "logo",
    "invoice_prefix",
    "refund_prefix",
    "deposit_prefix",
    "invoice_footer_message",
}


def format_invoice_id(prefix: str | None, number: int, pad: int | None = None) -> str:
    """FAC- + 42 -> FAC-00042"""
    if pad is None:
        pad = current_app.config.get("INVOICE_NUMBER_PAD", 5)
    if not prefix:
        prefix = current_app.config.get("DEFAULT_INVOICE_PREFIX", "FAC-")
    return f"{prefix}{str(number).zfill(pad)}"


def format_deposit_receipt_id(prefix: str | None, customer_id: int, deposited_at: datetime) -> str:
    """DEP- + customer 7 at ...:13.482 -> DEP-00073482 (last 4 digits of the epoch millis)."""
    if not prefix:
        prefix = "DEP-"
    return f"{prefix}{str(customer_id).zfill(4)}{str(epoch_millis(deposited_at))[-4:]}"


def get_profile(namespace: str | None = None) -> CompanyProfile | None:
    namespace = namespace or current_namespace()
    return db.session.query(CompanyProfile).filter_by(namespace=namespace).first()


def ensure_profile(namespace: str | None = None) -> CompanyProfile:
    """
    Return the namespace's profile, creating it with shop defaults on
    first access. Commits when it creates.
    """
    namespace = namespace or current_namespace()
    profile = get_profile(namespace)
    if profile is not None:
        return profile

    profile = CompanyProfile(
        namespace=namespace,
        name="Sofalia Goma",
        address="Dakar - Sénégal",
        phone="+221776523381",
        invoice_prefix=current_app.config.get("DEFAULT_INVOICE_PREFIX", "FAC-"),
        refund_prefix="REM-",
        deposit_prefix="DEP-",
        invoice_footer_message="Merci pour votre achat !",
        last_invoice_number=0,
    )
    db.session.add(profile)
    try:
        db.session.commit()
    except IntegrityError:
        # Another worker created it first
        db.session.rollback()
        return get_profile(namespace)
    return profile


def update_profile(patch: dict) -> dict:
    """Apply preference changes. The invoice counter is never writable here."""
    profile = ensure_profile()
    for key, value in patch.items():
        if key not in PROFILE_MUTABLE_FIELDS:
            continue
        setattr(profile, key, value)
    db.session.commit()
    return profile.to_dict()
