# backend/counterpos/routes/products.py
"""
Catalog routes: categories and products.

Products come in three shapes (simple, variant, pack). The scalar fields
go through validate_payload against PRODUCT_POLICY; the structural lists
(variants, pack_items) are validated by products_service.

All reads and writes are scoped to the request namespace.
"""
from flask import Blueprint, jsonify, request

from ..decorators import handle_pos_errors
from ..models import Category, Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name"},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "parent_id"},
    required_on_create={"name"},
)

# Keys handled outside validate_payload
STRUCTURAL_KEYS = ("product_type", "variants", "pack_items")

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def _split_product_payload(payload) -> tuple[dict, dict]:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    scalars = {k: v for k, v in payload.items() if k not in STRUCTURAL_KEYS}
    structural = {k: payload[k] for k in STRUCTURAL_KEYS if k in payload}
    return scalars, structural


# =============================================================================
# CATEGORIES
# =============================================================================

@categories_bp.get("")
@handle_pos_errors("Failed to list categories")
def list_categories():
    return jsonify({"items": products_service.list_categories()})


@categories_bp.post("")
@handle_pos_errors("Failed to create category")
def create_category():
    payload = request.get_json(silent=True)
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    return jsonify(products_service.create_category(patch=patch)), 201


@categories_bp.put("/<int:category_id>")
@handle_pos_errors("Failed to update category")
def update_category(category_id: int):
    payload = request.get_json(silent=True)
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    result = products_service.update_category(category_id=category_id, patch=patch)
    if result is None:
        return jsonify({"error": "Category not found"}), 404
    return jsonify(result)


@categories_bp.delete("/<int:category_id>")
@handle_pos_errors("Failed to delete category")
def delete_category(category_id: int):
    if not products_service.delete_category(category_id=category_id):
        return jsonify({"error": "Category not found"}), 404
    return "", 204


# =============================================================================
# PRODUCTS
# =============================================================================

@products_bp.get("")
@handle_pos_errors("Failed to list products")
def list_products():
    """
    Query params:
    - category_id: int (optional)
    - product_type: simple | variant | pack (optional)
    - q: name search (optional)
    """
    result = products_service.list_products(
        category_id=request.args.get("category_id", type=int),
        product_type=request.args.get("product_type"),
        search=request.args.get("q"),
    )
    return jsonify(result)


@products_bp.get("/reorder")
@handle_pos_errors("Failed to build low-stock report")
def reorder_report():
    items = products_service.low_stock_report()
    return jsonify({"items": items, "count": len(items)})


@products_bp.get("/<int:product_id>")
@handle_pos_errors("Failed to load product")
def get_product(product_id: int):
    return jsonify(products_service.get_product(product_id).to_dict())


@products_bp.post("")
@handle_pos_errors("Failed to create product")
def create_product():
    """
    Request body:
    {
        "product_type": "simple" | "variant" | "pack",   (inferred when omitted)
        "name": "...",
        "price": 1500,                 (simple, pack)
        "quantity": 10,                (simple)
        "base_price": 2000,            (variant)
        "variants": [{"name", "price_modifier", "quantity", "reorder_threshold"}],
        "pack_items": [{"product_id", "quantity", "variant_id"}]
    }
    """
    scalars, structural = _split_product_payload(request.get_json(silent=True))
    product_type = products_service.infer_product_type(structural)
    patch = validate_payload(model=Product, payload=scalars, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    result = products_service.create_product(
        patch=patch,
        variants=structural.get("variants"),
        pack_items=structural.get("pack_items"),
        product_type=product_type,
    )
    return jsonify(result), 201


@products_bp.put("/<int:product_id>")
@handle_pos_errors("Failed to update product")
def update_product(product_id: int):
    scalars, structural = _split_product_payload(request.get_json(silent=True))
    existing = products_service.get_product(product_id)
    requested_type = structural.get("product_type")
    if requested_type and requested_type != existing.product_type:
        raise ValidationError("product_type cannot be changed")

    patch = validate_payload(model=Product, payload=scalars, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    result = products_service.update_product(
        product_id=product_id,
        patch=patch,
        variants=structural.get("variants"),
        pack_items=structural.get("pack_items"),
    )
    return jsonify(result)


@products_bp.delete("/<int:product_id>")
@handle_pos_errors("Failed to delete product")
def delete_product(product_id: int):
    if not products_service.delete_product(product_id=product_id):
        return jsonify({"error": "Product not found"}), 404
    return "", 204
