# backend/counterpos/routes/sales.py
"""
Sales routes.

POST /api/sales prices the cart server-side, then commits it through
sales_service.submit_sale: stock decrements, balance debit, invoice
number and the Sale row land together or not at all.
"""
from flask import Blueprint, jsonify, request

from ..decorators import handle_pos_errors
from ..models.sales import SALE_STATUSES
from ..services import sales_service
from ..services.cart_service import build_cart
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, coerce_int
from .cart import read_totals_options

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _date_arg(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


@sales_bp.post("")
@handle_pos_errors("Failed to submit sale")
def submit_sale():
    """
    Request body:
    {
        "customer_id": 3,
        "payment_type": "CASH" | "WAVE" | "ORANGE_MONEY" | "CREDIT" | "CUSTOMER_BALANCE",
        "items": [{"product_id": 1, "quantity": 2, "variant_id": null}],
        "discount_type": "percentage" | "fixed",
        "discount_value": 10,
        "apply_vat": false,
        "user_id": "u-1",          (optional)
        "user_pseudo": "awa"       (optional)
    }

    Returns:
        201: invoice view-model {sale, customer, company, footer}
        400: validation, insufficient stock or balance
        404: customer/product/variant missing
        409: concurrent writers exhausted the retries
    """
    data = request.get_json(silent=True) or {}
    if "customer_id" not in data:
        raise ValidationError("customer_id is required")
    customer_id = coerce_int(data["customer_id"], "customer_id")
    payment_type = data.get("payment_type")
    if not payment_type:
        raise ValidationError("payment_type is required")

    cart = build_cart(data.get("items") or [])
    totals = cart.totals(**read_totals_options(data))

    sale = sales_service.submit_sale(
        cart,
        customer_id,
        payment_type,
        totals,
        user_id=data.get("user_id"),
        user_pseudo=data.get("user_pseudo"),
    )
    return jsonify(sales_service.build_invoice(sale)), 201


@sales_bp.get("")
@handle_pos_errors("Failed to list sales")
def list_sales():
    """
    Query params:
    - status: Completed | Credit | PartiallyReturned | Returned
    - customer_id: int
    - from, to: ISO-8601 datetimes (inclusive)
    """
    status = request.args.get("status")
    if status and status not in SALE_STATUSES:
        raise ValidationError(f"Invalid status: {status}. Must be one of {list(SALE_STATUSES)}")

    sales = sales_service.list_sales(
        status=status,
        customer_id=request.args.get("customer_id", type=int),
        date_from=_date_arg("from"),
        date_to=_date_arg("to"),
    )
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/credit")
@handle_pos_errors("Failed to list credit sales")
def list_credit_sales():
    sales = sales_service.list_credit_sales(customer_id=request.args.get("customer_id", type=int))
    return jsonify({
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "outstanding": sum(s.remaining_balance for s in sales),
    })


@sales_bp.get("/<int:sale_id>")
@handle_pos_errors("Failed to load sale")
def get_sale(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    return jsonify(sales_service.build_invoice(sale))
