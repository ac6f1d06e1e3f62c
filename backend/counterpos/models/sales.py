from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z


SALE_STATUS_COMPLETED = "Completed"
SALE_STATUS_CREDIT = "Credit"
SALE_STATUS_PARTIALLY_RETURNED = "PartiallyReturned"
SALE_STATUS_RETURNED = "Returned"

SALE_STATUSES = [
    SALE_STATUS_COMPLETED,
    SALE_STATUS_CREDIT,
    SALE_STATUS_PARTIALLY_RETURNED,
    SALE_STATUS_RETURNED,
]


class Sale(db.Model):
    """
    Committed sale document.

    Created only by sales_service.submit_sale. items, customer_name and the
    amounts are snapshots taken at sale time. After creation only
    paid_amount and status change, and only toward fully paid (see
    payment_service.apply_payment).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("namespace", "invoice_id", name="uq_sales_namespace_invoice"),
        db.Index("ix_sales_namespace_status_date", "namespace", "status", "sale_date"),
        db.Index("ix_sales_customer", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    namespace = db.Column(db.String(64), nullable=False, index=True)

    # Human-readable invoice number (e.g., "FAC-00042")
    invoice_id = db.Column(db.String(64), nullable=False)
    invoice_number = db.Column(db.Integer, nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)

    payment_type = db.Column(db.String(32), nullable=False, index=True)
    items = db.Column(db.JSON, nullable=False)

    total_price = db.Column(db.Integer, nullable=False)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)
    vat_amount = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(32), nullable=False, default=SALE_STATUS_COMPLETED)
    paid_amount = db.Column(db.Integer, nullable=False, default=0)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)
    user_id = db.Column(db.String(128), nullable=True)
    user_pseudo = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_balance(self) -> int:
        return max(self.total_price - (self.paid_amount or 0), 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "payment_type": self.payment_type,
            "items": list(self.items or []),
            "total_price": self.total_price,
            "discount_amount": self.discount_amount,
            "vat_amount": self.vat_amount,
            "status": self.status,
            "paid_amount": self.paid_amount,
            "remaining_balance": self.remaining_balance,
            "sale_date": to_utc_z(self.sale_date),
            "user_id": self.user_id,
            "user_pseudo": self.user_pseudo,
            "version_id": self.version_id,
        }


class Payment(db.Model):
    """
    Append-only ledger of payments made against credit sales.

    IMMUTABLE: Records are never updated or deleted.
    invoice_id and customer_name are copied from the sale for reporting.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_sale_date", "sale_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    namespace = db.Column(db.String(64), nullable=False, index=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    invoice_id = db.Column(db.String(64), nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)

    amount = db.Column(db.Integer, nullable=False)
    payment_type = db.Column(db.String(32), nullable=False, index=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "invoice_id": self.invoice_id,
            "customer_name": self.customer_name,
            "amount": self.amount,
            "payment_type": self.payment_type,
            "payment_date": to_utc_z(self.payment_date),
        }
