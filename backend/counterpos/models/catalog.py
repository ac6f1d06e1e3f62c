from __future__ import annotations

import enum

from ..extensions import db
from counterpos.time_utils import to_utc_z


class ProductType(str, enum.Enum):
    """
    Closed set of product shapes.

    SIMPLE: one stock counter on the product row (quantity).
    VARIANT: no top-level counter; stock lives in each variants[] entry.
    PACK: no counter at all; stock is derived from pack_items[] children.
    """
    SIMPLE = "simple"
    VARIANT = "variant"
    PACK = "pack"


class Category(db.Model):
    """Product category with one optional level of parent."""
    __tablename__ = "categories"
    __table_args__ = (
        db.Index("ix_categories_namespace_name", "namespace", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    namespace = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    parent = db.relationship("Category", remote_side=[id], backref=db.backref("children", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Catalog product (simple, variant or pack).

    STOCK LAYOUT:
    - simple:  price, quantity, reorder_threshold
    - variant: base_price, variants = [{id, name, price_modifier, quantity, reorder_threshold}]
    - pack:    price, pack_items = [{product_id, name, quantity, variant: {id, name} | None}]

    variants and pack_items are JSON lists. They are always replaced as a
    whole (never mutated in place) so the ORM sees the change and bumps
    version_id.

    CONCURRENCY: version_id_col gives optimistic conflict detection. A sale
    that read this row and then decrements it fails with StaleDataError if
    another writer committed in between.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_namespace_name", "namespace", "name"),
        db.Index("ix_products_namespace_type", "namespace", "product_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    namespace = db.Column(db.String(64), nullable=False, index=True)

    product_type = db.Column(db.String(16), nullable=False, default=ProductType.SIMPLE.value)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    # simple + pack
    price = db.Column(db.Integer, nullable=True)
    # simple only
    quantity = db.Column(db.Integer, nullable=True)
    reorder_threshold = db.Column(db.Integer, nullable=False, default=0)

    # variant only
    base_price = db.Column(db.Integer, nullable=True)
    variants = db.Column(db.JSON, nullable=True)

    # pack only
    pack_items = db.Column(db.JSON, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def kind(self) -> ProductType:
        return ProductType(self.product_type)

    def find_variant(self, variant_id: str) -> dict | None:
        for variant in self.variants or []:
            if variant.get("id") == variant_id:
                return variant
        return None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "product_type": self.product_type,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "image_url": self.image_url,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        kind = self.kind
        if kind is ProductType.SIMPLE:
            data.update(
                price=self.price,
                quantity=self.quantity,
                reorder_threshold=self.reorder_threshold,
            )
        elif kind is ProductType.VARIANT:
            data.update(
                base_price=self.base_price,
                variants=list(self.variants or []),
            )
        elif kind is ProductType.PACK:
            data.update(
                price=self.price,
                pack_items=list(self.pack_items or []),
            )
        return data
