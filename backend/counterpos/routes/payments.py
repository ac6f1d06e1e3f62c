# backend/counterpos/routes/payments.py
"""
Payment routes for credit sales.

Payments never touch stock. Each POST appends one Payment row and
advances the sale's paid_amount; the sale flips to Completed once fully
paid.
"""
from flask import Blueprint, jsonify, request

from ..decorators import handle_pos_errors
from ..services import payment_service
from ..services.errors import InvalidAmountError
from ..validation import ValidationError, coerce_int

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@handle_pos_errors("Failed to add payment")
def add_payment():
    """
    Request body:
    {
        "sale_id": 12,
        "amount": 4000,
        "payment_type": "CASH" | "WAVE" | "ORANGE_MONEY" | "CUSTOMER_BALANCE"
    }

    Returns:
        201: payment receipt {payment, customer, remaining_balance, sale_status, company}
    """
    data = request.get_json(silent=True) or {}
    if not all(data.get(k) is not None for k in ("sale_id", "amount", "payment_type")):
        raise ValidationError("sale_id, amount, and payment_type required")

    sale_id = coerce_int(data["sale_id"], "sale_id")
    try:
        amount = coerce_int(data["amount"], "amount")
    except ValidationError as e:
        raise InvalidAmountError(str(e))

    payment = payment_service.apply_payment(sale_id, amount, data["payment_type"])
    return jsonify(payment_service.build_payment_receipt(payment)), 201


@payments_bp.get("")
@handle_pos_errors("Failed to list payments")
def list_payments():
    payments = payment_service.list_payments(sale_id=request.args.get("sale_id", type=int))
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})
