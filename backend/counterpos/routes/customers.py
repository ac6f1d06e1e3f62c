# backend/counterpos/routes/customers.py
"""
Customer routes.

balance is not writable through create/update; it only moves through
deposits, balance-funded sales and balance-funded payments.
"""
from flask import Blueprint, jsonify, request

from ..decorators import handle_pos_errors
from ..models import Customer
from ..services import customers_service
from ..services.errors import InvalidAmountError
from ..validation import ModelValidationPolicy, ValidationError, coerce_int, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=set(customers_service.CUSTOMER_MUTABLE_FIELDS),
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@handle_pos_errors("Failed to list customers")
def list_customers():
    items = customers_service.list_customers(search=request.args.get("q"))
    return jsonify({"items": items, "count": len(items)})


@customers_bp.get("/<int:customer_id>")
@handle_pos_errors("Failed to load customer")
def get_customer(customer_id: int):
    return jsonify(customers_service.get_customer(customer_id).to_dict())


@customers_bp.post("")
@handle_pos_errors("Failed to create customer")
def create_customer():
    payload = request.get_json(silent=True)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    return jsonify(customers_service.create_customer(patch=patch)), 201


@customers_bp.put("/<int:customer_id>")
@handle_pos_errors("Failed to update customer")
def update_customer(customer_id: int):
    payload = request.get_json(silent=True)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    return jsonify(customers_service.update_customer(customer_id=customer_id, patch=patch))


@customers_bp.delete("/<int:customer_id>")
@handle_pos_errors("Failed to delete customer")
def delete_customer(customer_id: int):
    if not customers_service.delete_customer(customer_id=customer_id):
        return jsonify({"error": "Customer not found"}), 404
    return "", 204


@customers_bp.post("/<int:customer_id>/deposits")
@handle_pos_errors("Failed to record deposit")
def record_deposit(customer_id: int):
    """
    Request body: {"amount": 5000}

    Returns 201 with the deposit receipt.
    """
    data = request.get_json(silent=True) or {}
    if "amount" not in data:
        raise ValidationError("amount is required")
    try:
        amount = coerce_int(data["amount"], "amount")
    except ValidationError as e:
        raise InvalidAmountError(str(e))
    receipt = customers_service.record_deposit(customer_id, amount)
    return jsonify(receipt), 201
