# backend/counterpos/routes/cart.py
"""
Cart quote endpoint.

The cart itself lives on the client; this prices a cart payload from the
stored catalog and returns the lines and totals the sale would record.
Nothing is written.
"""
from flask import Blueprint, current_app, jsonify, request

from ..decorators import handle_pos_errors
from ..services.cart_service import DISCOUNT_PERCENTAGE, build_cart
from ..validation import ValidationError

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def read_totals_options(data: dict) -> dict:
    """discount_type / discount_value / apply_vat from a request body."""
    apply_vat = data.get("apply_vat", False)
    if not isinstance(apply_vat, bool):
        raise ValidationError("apply_vat must be a boolean")
    return {
        "discount_type": data.get("discount_type") or DISCOUNT_PERCENTAGE,
        "discount_value": data.get("discount_value") or 0,
        "apply_vat": apply_vat,
        "vat_rate_bps": current_app.config["VAT_RATE_BPS"],
    }


@cart_bp.post("/quote")
@handle_pos_errors("Failed to quote cart")
def quote():
    """
    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2, "variant_id": null}],
        "discount_type": "percentage" | "fixed",
        "discount_value": 10,
        "apply_vat": true
    }
    """
    data = request.get_json(silent=True) or {}
    cart = build_cart(data.get("items") or [])
    totals = cart.totals(**read_totals_options(data))
    return jsonify({"cart": cart.to_dict(), "totals": totals.to_dict()})
