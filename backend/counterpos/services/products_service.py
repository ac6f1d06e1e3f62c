# backend/counterpos/services/products_service.py
"""
Products Service

Catalog CRUD for the three product shapes plus the low-stock report.

CATALOG INVARIANTS (enforced on every create/update):
- product_type is fixed at creation.
- variant products carry >= 1 variant, each with a unique id; no top-level
  quantity or price.
- pack products carry >= 1 pack item; every item points at an existing
  simple or variant product (never a pack, never itself) with quantity > 0;
  variant children must name one of their variants. No category.
- A product (or variant) referenced by a pack cannot be deleted out from
  under it.
"""
from __future__ import annotations

import uuid

from ..extensions import db
from ..models import Category, Product, ProductType
from ..validation import ConflictError, ValidationError, coerce_int
from .errors import NotFoundError
from .tenant_service import current_namespace

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "category_id",
    "image_url",
    "price",
    "quantity",
    "reorder_threshold",
    "base_price",
}

# Fields that only make sense for one shape; cleared for the others.
TYPE_FIELDS = {
    ProductType.SIMPLE: {"price", "quantity", "reorder_threshold", "category_id"},
    ProductType.VARIANT: {"base_price", "category_id"},
    ProductType.PACK: {"price"},
}


def infer_product_type(payload: dict) -> ProductType:
    raw = payload.get("product_type")
    if raw:
        try:
            return ProductType(raw)
        except ValueError:
            raise ValidationError(
                f"Invalid product_type: {raw}. Must be one of {[t.value for t in ProductType]}"
            )
    if payload.get("pack_items"):
        return ProductType.PACK
    if payload.get("variants"):
        return ProductType.VARIANT
    return ProductType.SIMPLE


def _require_category(category_id: int | None) -> None:
    if category_id is None:
        return
    exists = (
        db.session.query(Category.id)
        .filter_by(id=category_id, namespace=current_namespace())
        .first()
    )
    if exists is None:
        raise ValidationError(f"Category {category_id} not found")


def normalize_variants(raw_variants, existing: list[dict] | None = None) -> list[dict]:
    """
    Validate a client variant list. Entries keep their id when they have
    one (so stock history lines up); new entries get a fresh uuid hex id.
    """
    if not isinstance(raw_variants, list) or not raw_variants:
        raise ValidationError("variants must be a non-empty list")

    known_ids = {v.get("id") for v in existing or []}
    seen: set[str] = set()
    result = []
    for raw in raw_variants:
        if not isinstance(raw, dict):
            raise ValidationError("Each variant must be an object")
        name = str(raw.get("name") or "").strip()
        if not name:
            raise ValidationError("Variant name is required")

        variant_id = raw.get("id")
        if variant_id and existing is not None and variant_id not in known_ids:
            raise ValidationError(f"Unknown variant id {variant_id}")
        variant_id = variant_id or uuid.uuid4().hex
        if variant_id in seen:
            raise ValidationError(f"Duplicate variant id {variant_id}")
        seen.add(variant_id)

        quantity = coerce_int(raw.get("quantity", 0), "variant quantity")
        threshold = coerce_int(raw.get("reorder_threshold", 0) or 0, "variant reorder_threshold")
        if quantity < 0 or threshold < 0:
            raise ValidationError("Variant quantity and reorder_threshold must be >= 0")

        result.append({
            "id": variant_id,
            "name": name,
            "price_modifier": coerce_int(raw.get("price_modifier", 0) or 0, "price_modifier"),
            "quantity": quantity,
            "reorder_threshold": threshold,
        })
    return result


def normalize_pack_items(raw_items, pack_id: int | None = None) -> list[dict]:
    """
    Validate a pack bill of materials against the stored catalog.
    Packs of packs are rejected here so sale-time expansion stays one level deep.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("pack_items must be a non-empty list")

    namespace = current_namespace()
    result = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError("Each pack item must be an object")
        child_id = coerce_int(raw.get("product_id"), "pack item product_id")
        quantity = coerce_int(raw.get("quantity"), "pack item quantity")
        if quantity <= 0:
            raise ValidationError("Pack item quantity must be > 0")
        if pack_id is not None and child_id == pack_id:
            raise ValidationError("A pack cannot contain itself")

        child = db.session.query(Product).filter_by(id=child_id, namespace=namespace).first()
        if child is None:
            raise ValidationError(f"Pack item product {child_id} not found")
        if child.kind is ProductType.PACK:
            raise ValidationError(f"{child.name} is a pack; packs cannot contain packs")

        variant_id = raw.get("variant_id") or (raw.get("variant") or {}).get("id")
        variant_ref = None
        name = child.name
        if child.kind is ProductType.VARIANT:
            if not variant_id:
                raise ValidationError(f"A variant of {child.name} must be chosen")
            variant = child.find_variant(variant_id)
            if variant is None:
                raise ValidationError(f"Variant {variant_id} not found for {child.name}")
            variant_ref = {"id": variant["id"], "name": variant["name"]}
            name = f"{child.name} - {variant['name']}"
        elif variant_id:
            raise ValidationError(f"{child.name} has no variants")

        result.append({
            "product_id": child.id,
            "name": name,
            "quantity": quantity,
            "variant": variant_ref,
        })
    return result


def apply_product_patch(p: Product, patch: dict) -> None:
    allowed = TYPE_FIELDS[p.kind] | {"name", "description", "image_url"}
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k not in allowed:
            raise ValidationError(f"{k} does not apply to {p.product_type} products")
        setattr(p, k, v)


def _packs_using(product_id: int) -> list[tuple[Product, dict]]:
    """(pack, pack_item) pairs that reference product_id."""
    packs = (
        db.session.query(Product)
        .filter_by(namespace=current_namespace(), product_type=ProductType.PACK.value)
        .all()
    )
    found = []
    for pack in packs:
        for item in pack.pack_items or []:
            if int(item["product_id"]) == product_id:
                found.append((pack, item))
    return found


def list_products(
    *,
    category_id: int | None = None,
    product_type: str | None = None,
    search: str | None = None,
) -> dict:
    q = db.session.query(Product).filter(Product.namespace == current_namespace())
    if category_id is not None:
        q = q.filter(Product.category_id == category_id)
    if product_type:
        q = q.filter(Product.product_type == product_type)
    if search:
        q = q.filter(Product.name.ilike(f"%{search.strip()}%"))
    products = q.order_by(Product.name.asc(), Product.id.asc()).all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(product_id: int) -> Product:
    p = (
        db.session.query(Product)
        .filter_by(id=product_id, namespace=current_namespace())
        .first()
    )
    if p is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return p


def create_product(*, patch: dict, variants=None, pack_items=None, product_type: ProductType) -> dict:
    """
    Create product using a validated patch dict plus the structural lists
    for its shape.
    """
    p = Product(namespace=current_namespace(), product_type=product_type.value)

    if product_type is ProductType.SIMPLE:
        if patch.get("price") is None:
            raise ValidationError("price is required for simple products")
        patch.setdefault("quantity", 0)
    elif product_type is ProductType.VARIANT:
        if patch.get("base_price") is None:
            raise ValidationError("base_price is required for variant products")
        p.variants = normalize_variants(variants)
    elif product_type is ProductType.PACK:
        if patch.get("price") is None:
            raise ValidationError("price is required for pack products")
        p.pack_items = normalize_pack_items(pack_items)

    _require_category(patch.get("category_id"))
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict, variants=None, pack_items=None) -> dict:
    p = get_product(product_id)

    if "category_id" in patch:
        _require_category(patch["category_id"])
    apply_product_patch(p, patch)

    if variants is not None:
        if p.kind is not ProductType.VARIANT:
            raise ValidationError("variants only apply to variant products")
        new_variants = normalize_variants(variants, existing=p.variants)
        kept_ids = {v["id"] for v in new_variants}
        for pack, item in _packs_using(p.id):
            ref = (item.get("variant") or {}).get("id")
            if ref and ref not in kept_ids:
                raise ConflictError(f"Variant {item['name']} is used by pack {pack.name}")
        p.variants = new_variants

    if pack_items is not None:
        if p.kind is not ProductType.PACK:
            raise ValidationError("pack_items only apply to pack products")
        p.pack_items = normalize_pack_items(pack_items, pack_id=p.id)

    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int) -> bool:
    p = (
        db.session.query(Product)
        .filter_by(id=product_id, namespace=current_namespace())
        .first()
    )
    if not p:
        return False

    users = _packs_using(p.id)
    if users:
        names = ", ".join(sorted({pack.name for pack, _item in users}))
        raise ConflictError(f"{p.name} is used by pack(s): {names}")

    db.session.delete(p)
    db.session.commit()
    return True


def low_stock_report() -> list[dict]:
    """
    Simple products and variants with 0 < quantity <= reorder_threshold.
    Out-of-stock counters (0) are not listed.
    """
    products = (
        db.session.query(Product)
        .filter(Product.namespace == current_namespace())
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    entries = []
    for p in products:
        kind = p.kind
        if kind is ProductType.SIMPLE:
            qty = p.quantity or 0
            threshold = p.reorder_threshold or 0
            if 0 < qty <= threshold:
                entries.append({
                    "id": str(p.id),
                    "product_id": p.id,
                    "variant_id": None,
                    "name": p.name,
                    "quantity": qty,
                    "reorder_threshold": threshold,
                })
        elif kind is ProductType.VARIANT:
            for v in p.variants or []:
                qty = v.get("quantity") or 0
                threshold = v.get("reorder_threshold") or 0
                if 0 < qty <= threshold:
                    entries.append({
                        "id": f"{p.id}-{v['id']}",
                        "product_id": p.id,
                        "variant_id": v["id"],
                        "name": f"{p.name} - {v['name']}",
                        "quantity": qty,
                        "reorder_threshold": threshold,
                    })
        elif kind is ProductType.PACK:
            continue
    return entries


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories() -> list[dict]:
    rows = (
        db.session.query(Category)
        .filter_by(namespace=current_namespace())
        .order_by(Category.name.asc(), Category.id.asc())
        .all()
    )
    return [c.to_dict() for c in rows]


def _validate_parent(parent_id: int | None, category_id: int | None = None) -> None:
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise ValidationError("A category cannot be its own parent")
    parent = (
        db.session.query(Category)
        .filter_by(id=parent_id, namespace=current_namespace())
        .first()
    )
    if parent is None:
        raise ValidationError(f"Parent category {parent_id} not found")
    if parent.parent_id is not None:
        raise ValidationError("Sub-categories cannot have sub-categories")


def create_category(*, patch: dict) -> dict:
    _validate_parent(patch.get("parent_id"))
    c = Category(namespace=current_namespace(), name=patch["name"], parent_id=patch.get("parent_id"))
    db.session.add(c)
    db.session.commit()
    return c.to_dict()


def update_category(*, category_id: int, patch: dict) -> dict | None:
    c = (
        db.session.query(Category)
        .filter_by(id=category_id, namespace=current_namespace())
        .first()
    )
    if c is None:
        return None
    if "parent_id" in patch:
        _validate_parent(patch["parent_id"], category_id=c.id)
        if patch["parent_id"] is not None and c.children:
            raise ConflictError("A category with sub-categories cannot become a sub-category")
        c.parent_id = patch["parent_id"]
    if "name" in patch:
        c.name = patch["name"]
    db.session.commit()
    return c.to_dict()


def delete_category(*, category_id: int) -> bool:
    c = (
        db.session.query(Category)
        .filter_by(id=category_id, namespace=current_namespace())
        .first()
    )
    if c is None:
        return False
    if c.children:
        raise ConflictError("Category has sub-categories")
    if c.products:
        raise ConflictError("Category still has products")
    db.session.delete(c)
    db.session.commit()
    return True
