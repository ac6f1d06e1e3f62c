from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z


class CompanyProfile(db.Model):
    """
    Per-namespace singleton: shop identity, document prefixes and the
    invoice counter.

    last_invoice_number is the only source of truth for invoice numbering.
    It is advanced with an in-database increment inside the sale
    transaction (see sales_service._allocate_invoice_number), never by
    read-modify-write in Python.
    """
    __tablename__ = "company_profiles"
    __table_args__ = (
        db.UniqueConstraint("namespace", name="uq_company_profiles_namespace"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    namespace = db.Column(db.String(64), nullable=False)

    name = db.Column(db.String(255), nullable=False, default="Sofalia Goma")
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    logo = db.Column(db.String(512), nullable=True)

    invoice_prefix = db.Column(db.String(16), nullable=False, default="FAC-")
    refund_prefix = db.Column(db.String(16), nullable=False, default="REM-")
    deposit_prefix = db.Column(db.String(16), nullable=False, default="DEP-")
    invoice_footer_message = db.Column(db.String(255), nullable=True)

    last_invoice_number = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "logo": self.logo,
            "invoice_prefix": self.invoice_prefix,
            "refund_prefix": self.refund_prefix,
            "deposit_prefix": self.deposit_prefix,
            "invoice_footer_message": self.invoice_footer_message,
            "last_invoice_number": self.last_invoice_number,
            "updated_at": to_utc_z(self.updated_at),
        }
