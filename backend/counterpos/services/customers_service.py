# Overview: Service-layer operations for customers and prepaid deposits.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, Sale
from counterpos.time_utils import utcnow, to_utc_z
from ..validation import ConflictError
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .errors import InvalidAmountError, NotFoundError
from .profile_service import ensure_profile, format_deposit_receipt_id
from .tenant_service import current_namespace

# balance only moves through deposits, sales and payments.
CUSTOMER_MUTABLE_FIELDS = {"name", "nickname", "address", "email", "phone"}


def apply_customer_patch(c: Customer, patch: dict) -> None:
    for k, v in patch.items():
        if k not in CUSTOMER_MUTABLE_FIELDS:
            continue
        setattr(c, k, v)


def list_customers(search: str | None = None) -> list[dict]:
    q = db.session.query(Customer).filter(Customer.namespace == current_namespace())
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(Customer.name.ilike(term) | Customer.nickname.ilike(term) | Customer.phone.ilike(term))
    return [c.to_dict() for c in q.order_by(Customer.name.asc(), Customer.id.asc()).all()]


def get_customer(customer_id: int) -> Customer:
    c = (
        db.session.query(Customer)
        .filter_by(id=customer_id, namespace=current_namespace())
        .first()
    )
    if c is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return c


def create_customer(*, patch: dict) -> dict:
    c = Customer(namespace=current_namespace(), balance=0)
    apply_customer_patch(c, patch)
    db.session.add(c)
    db.session.commit()
    return c.to_dict()


def update_customer(*, customer_id: int, patch: dict) -> dict:
    c = get_customer(customer_id)
    apply_customer_patch(c, patch)
    db.session.commit()
    return c.to_dict()


def delete_customer(*, customer_id: int) -> bool:
    c = (
        db.session.query(Customer)
        .filter_by(id=customer_id, namespace=current_namespace())
        .first()
    )
    if c is None:
        return False
    # Sales keep a foreign key to the customer; history must stay resolvable.
    has_sales = db.session.query(Sale.id).filter_by(customer_id=c.id).first() is not None
    if has_sales:
        raise ConflictError("Customer has sales and cannot be deleted")
    db.session.delete(c)
    db.session.commit()
    return True


def record_deposit(customer_id: int, amount: int) -> dict:
    """
    Credit a customer's prepaid balance.

    Returns a deposit receipt view-model:
        {"receipt_id", "customer", "amount", "deposit_date", "company"}

    Raises:
        InvalidAmountError: amount not a positive whole number
        NotFoundError: customer missing
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError("Deposit amount must be a positive whole number")

    namespace = current_namespace()

    def _op() -> Customer:
        begin_write_transaction()
        customer = lock_for_update(
            db.session.query(Customer).filter_by(id=customer_id, namespace=namespace)
        ).first()
        if customer is None:
            raise NotFoundError("Customer not found", details={"customer_id": customer_id})
        customer.balance = (customer.balance or 0) + amount
        db.session.commit()
        return customer

    customer = run_with_retry(_op)
    current_app.logger.info("Deposit of %s credited to customer %s", amount, customer.id)

    profile = ensure_profile(namespace)
    deposited_at = utcnow()
    return {
        "receipt_id": format_deposit_receipt_id(profile.deposit_prefix, customer.id, deposited_at),
        "customer": customer.to_dict(),
        "amount": amount,
        "deposit_date": to_utc_z(deposited_at),
        "company": profile.to_dict(),
    }
