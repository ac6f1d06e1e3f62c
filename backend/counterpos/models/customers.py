from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer account with a prepaid balance.

    balance is prepaid credit in minor currency units. It must never go
    below zero; the services check this before every debit (there is no
    database CHECK constraint).
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_namespace_name", "namespace", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    namespace = db.Column(db.String(64), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    nickname = db.Column(db.String(128), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    balance = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "nickname": self.nickname,
            "address": self.address,
            "email": self.email,
            "phone": self.phone,
            "balance": self.balance,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
