# Overview: Service-layer operations for payments against credit sales; encapsulates business logic and database work.

"""
Payment Processing Service

WHY: Credit sales are paid off over time. Each payment appends an
immutable Payment row, advances the sale's paid_amount (never past
total_price) and, when paid from the customer's prepaid balance, debits
that balance.

DESIGN PRINCIPLES:
- Payments never touch stock.
- Amount rules: 0 < amount <= remaining balance of the sale, and
  amount <= customer balance when balance-funded.
- Runs as a read-validate-write transaction, like a sale: the sale and
  customer are re-read inside the transaction and version-checked on
  write, so two terminals paying the same sale cannot both apply.
- Immutable ledger: Payment rows are never updated or deleted.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, Payment, Sale
from ..models.sales import SALE_STATUS_COMPLETED, SALE_STATUS_CREDIT
from counterpos.time_utils import utcnow
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .errors import InsufficientBalanceError, InvalidAmountError, NotFoundError, PosError
from .profile_service import ensure_profile
from .tenant_service import current_namespace


class PaymentError(PosError):
    """Raised for payment operation errors (bad payment type, sale not payable)."""


# =============================================================================
# PAYMENT TYPES (CONSTANTS)
# =============================================================================

PAYMENT_CASH = "CASH"
PAYMENT_WAVE = "WAVE"
PAYMENT_ORANGE_MONEY = "ORANGE_MONEY"
PAYMENT_CREDIT = "CREDIT"                      # deferred: sale recorded as Credit
PAYMENT_CUSTOMER_BALANCE = "CUSTOMER_BALANCE"  # drawn from the customer's prepaid balance

VALID_PAYMENT_TYPES = [
    PAYMENT_CASH,
    PAYMENT_WAVE,
    PAYMENT_ORANGE_MONEY,
    PAYMENT_CREDIT,
    PAYMENT_CUSTOMER_BALANCE,
]

# A payment against a credit sale must bring money in; deferring again makes no sense.
VALID_SETTLEMENT_TYPES = [t for t in VALID_PAYMENT_TYPES if t != PAYMENT_CREDIT]


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError("Payment amount must be a whole number")
    if amount <= 0:
        raise InvalidAmountError("Payment amount must be positive")


def apply_payment(sale_id: int, amount: int, payment_type: str) -> Payment:
    """
    Apply a payment to a credit sale.

    Args:
        sale_id: Sale being paid
        amount: Amount paid (minor units)
        payment_type: one of VALID_SETTLEMENT_TYPES

    Returns:
        Payment record

    Raises:
        InvalidAmountError: amount <= 0 or above the sale's remaining balance
        InsufficientBalanceError: balance-funded and customer balance too low
        NotFoundError: sale or customer missing
        PaymentError: invalid payment type or sale not open for payment
        ConflictAbortError: concurrent writers exhausted the retries
    """
    if payment_type not in VALID_SETTLEMENT_TYPES:
        raise PaymentError(
            f"Invalid payment type: {payment_type}. Must be one of {VALID_SETTLEMENT_TYPES}"
        )
    _check_amount(amount)

    namespace = current_namespace()

    def _op() -> Payment:
        begin_write_transaction()

        sale = lock_for_update(
            db.session.query(Sale).filter_by(id=sale_id, namespace=namespace)
        ).first()
        if sale is None:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})

        remaining = sale.total_price - (sale.paid_amount or 0)
        if remaining <= 0:
            raise InvalidAmountError(
                "Sale has no remaining balance due",
                details={"remaining_balance": 0},
            )
        if sale.status != SALE_STATUS_CREDIT:
            raise PaymentError(f"Cannot add payment to sale with status {sale.status}")
        if amount > remaining:
            raise InvalidAmountError(
                "Payment amount cannot exceed the remaining balance",
                details={"remaining_balance": remaining, "amount": amount},
            )

        customer = None
        if payment_type == PAYMENT_CUSTOMER_BALANCE:
            customer = lock_for_update(
                db.session.query(Customer).filter_by(id=sale.customer_id, namespace=namespace)
            ).first()
            if customer is None:
                raise NotFoundError("Customer not found", details={"customer_id": sale.customer_id})
            if (customer.balance or 0) < amount:
                raise InsufficientBalanceError(
                    "Insufficient customer balance",
                    details={"balance": customer.balance or 0, "required": amount},
                )

        new_paid = min((sale.paid_amount or 0) + amount, sale.total_price)
        fully_paid = new_paid >= sale.total_price

        if customer is not None:
            customer.balance = (customer.balance or 0) - amount

        payment = Payment(
            namespace=namespace,
            sale_id=sale.id,
            invoice_id=sale.invoice_id,
            customer_name=sale.customer_name,
            amount=amount,
            payment_type=payment_type,
            payment_date=utcnow(),
        )
        db.session.add(payment)

        sale.paid_amount = new_paid
        sale.status = SALE_STATUS_COMPLETED if fully_paid else SALE_STATUS_CREDIT

        db.session.commit()
        return payment

    payment = run_with_retry(_op)
    current_app.logger.info(
        "Payment %s applied to %s: amount=%s type=%s",
        payment.id, payment.invoice_id, payment.amount, payment.payment_type,
    )
    return payment


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

def list_payments(sale_id: int | None = None) -> list[Payment]:
    """Newest first."""
    q = db.session.query(Payment).filter(Payment.namespace == current_namespace())
    if sale_id is not None:
        q = q.filter(Payment.sale_id == sale_id)
    return q.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()


def build_payment_receipt(payment: Payment) -> dict:
    """Receipt view-model: payment, customer, what is still owed, shop profile."""
    sale = db.session.get(Sale, payment.sale_id)
    customer = db.session.get(Customer, sale.customer_id) if sale else None
    profile = ensure_profile(payment.namespace)
    return {
        "payment": payment.to_dict(),
        "customer": customer.to_dict() if customer else None,
        "remaining_balance": sale.remaining_balance if sale else None,
        "sale_status": sale.status if sale else None,
        "company": profile.to_dict(),
    }
