"""
Sales Service - atomic cart checkout

WHY: A sale touches several documents at once: product stock counters,
the customer's prepaid balance, the invoice counter and the new sale row.
They must commit together or not at all, and concurrent checkouts must
never oversell a counter or share an invoice number.

PROTOCOL (one database transaction, re-run from scratch on conflict):
1. READ     profile row (locked), customer, every cart product, then one
            deduplicated wave of pack children. Never deeper.
2. VALIDATE stock for the whole cart (summed per counter) and, for
            balance-funded payment, the customer's balance. Any failure
            raises before a single attribute is written.
3. WRITE    decrements, balance debit, invoice number (in-database
            increment), sale row. Commit.

Conflicts (StaleDataError from version_id checks, SQLite lock errors,
invoice uniqueness) roll back and retry; see concurrency.run_with_retry.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import CompanyProfile, Customer, Product, Sale
from ..models.sales import SALE_STATUS_COMPLETED, SALE_STATUS_CREDIT
from counterpos.time_utils import utcnow
from .cart_service import Cart, CartLine, SaleTotals
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .errors import InsufficientBalanceError, NotFoundError, PosError
from .payment_service import PAYMENT_CREDIT, PAYMENT_CUSTOMER_BALANCE, VALID_PAYMENT_TYPES
from .profile_service import ensure_profile, format_invoice_id
from .stock_service import apply_decrements, check_sufficiency, pack_child_ids, resolve_consumption
from .tenant_service import current_namespace


class SaleError(PosError):
    """Raised for sale precondition errors (empty cart, bad payment type, bad totals)."""


def _load_products(product_ids: set[int], namespace: str) -> dict[int, Product]:
    if not product_ids:
        return {}
    rows = (
        db.session.query(Product)
        .filter(Product.namespace == namespace, Product.id.in_(product_ids))
        .all()
    )
    return {p.id: p for p in rows}


def _allocate_invoice_number(profile: CompanyProfile) -> int:
    """
    Advance last_invoice_number with UPDATE ... SET n = n + 1 and read it
    back, inside the caller's transaction.
    """
    db.session.execute(
        update(CompanyProfile)
        .where(CompanyProfile.id == profile.id)
        .values(last_invoice_number=CompanyProfile.last_invoice_number + 1)
        .execution_options(synchronize_session=False)
    )
    number = (
        db.session.query(CompanyProfile.last_invoice_number)
        .filter(CompanyProfile.id == profile.id)
        .scalar()
    )
    return int(number)


def _validate_request(lines: list[CartLine], payment_type: str, totals: SaleTotals) -> None:
    if not lines:
        raise SaleError("Cannot submit a sale with an empty cart")

    if payment_type not in VALID_PAYMENT_TYPES:
        raise SaleError(
            f"Invalid payment type: {payment_type}. Must be one of {VALID_PAYMENT_TYPES}"
        )

    for line in lines:
        if line.quantity <= 0:
            raise SaleError(f"Invalid quantity for {line.name}", details={"cart_id": line.cart_id})

    if totals.total_price < 0 or totals.discount_amount < 0 or totals.vat_amount < 0:
        raise SaleError("Sale totals cannot be negative", details=totals.to_dict())


def _snapshot_items(lines: list[CartLine]) -> list[dict]:
    return [
        {
            "product_id": line.product_id,
            "product_name": line.name,
            "quantity": line.quantity,
            "unit_price": line.price,
            "subtotal": line.subtotal,
            "variant": line.variant,
        }
        for line in lines
    ]


def submit_sale(
    cart: Cart | list[CartLine],
    customer_id: int,
    payment_type: str,
    totals: SaleTotals,
    *,
    user_id: str | None = None,
    user_pseudo: str | None = None,
) -> Sale:
    """
    Commit a cart as a sale, or raise without changing anything.
    A Cart passed in is emptied once the sale commits.

    Raises:
        SaleError: empty cart, unknown payment type, negative totals
        NotFoundError: customer, product, pack component or variant missing
        InsufficientStockError: some counter cannot cover the cart
        InsufficientBalanceError: balance-funded sale above customer balance
        ConflictAbortError: concurrent writers exhausted the retries
    """
    lines = list(cart)
    _validate_request(lines, payment_type, totals)

    namespace = current_namespace()
    ensure_profile(namespace)

    def _op() -> Sale:
        begin_write_transaction()

        # --- READ ---
        profile = lock_for_update(
            db.session.query(CompanyProfile).filter_by(namespace=namespace)
        ).first()
        if profile is None:
            raise NotFoundError("Company profile not found")

        customer = (
            db.session.query(Customer)
            .filter_by(id=customer_id, namespace=namespace)
            .first()
        )
        if customer is None:
            raise NotFoundError("Customer not found", details={"customer_id": customer_id})

        products = _load_products({line.product_id for line in lines}, namespace)
        child_ids: set[int] = set()
        for product in products.values():
            child_ids |= pack_child_ids(product)
        products.update(_load_products(child_ids - products.keys(), namespace))

        # --- VALIDATE ---
        decrements = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise NotFoundError(
                    f"Product {line.name} not found",
                    details={"product_id": line.product_id},
                )
            decrements.extend(
                resolve_consumption(product, line.quantity, line.variant_id, products, label=line.name)
            )
        check_sufficiency(decrements, products)

        if payment_type == PAYMENT_CUSTOMER_BALANCE:
            balance = customer.balance or 0
            if balance < totals.total_price:
                raise InsufficientBalanceError(
                    "Insufficient customer balance",
                    details={"balance": balance, "required": totals.total_price},
                )

        # --- WRITE ---
        apply_decrements(decrements, products)

        if payment_type == PAYMENT_CUSTOMER_BALANCE:
            customer.balance = (customer.balance or 0) - totals.total_price

        invoice_number = _allocate_invoice_number(profile)
        status = SALE_STATUS_CREDIT if payment_type == PAYMENT_CREDIT else SALE_STATUS_COMPLETED

        sale = Sale(
            namespace=namespace,
            invoice_id=format_invoice_id(profile.invoice_prefix, invoice_number),
            invoice_number=invoice_number,
            customer_id=customer.id,
            customer_name=customer.name,
            payment_type=payment_type,
            items=_snapshot_items(lines),
            total_price=totals.total_price,
            discount_amount=totals.discount_amount,
            vat_amount=totals.vat_amount,
            status=status,
            paid_amount=totals.total_price if status == SALE_STATUS_COMPLETED else 0,
            sale_date=utcnow(),
            user_id=user_id,
            user_pseudo=user_pseudo,
        )
        db.session.add(sale)
        db.session.commit()
        return sale

    sale = run_with_retry(_op)
    if isinstance(cart, Cart):
        cart.clear()
    current_app.logger.info(
        "Sale %s committed: customer=%s total=%s status=%s",
        sale.invoice_id, sale.customer_id, sale.total_price, sale.status,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = (
        db.session.query(Sale)
        .filter_by(id=sale_id, namespace=current_namespace())
        .first()
    )
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(
    *,
    status: str | None = None,
    customer_id: int | None = None,
    date_from=None,
    date_to=None,
) -> list[Sale]:
    """Newest first. date_from / date_to are inclusive UTC-naive datetimes."""
    q = db.session.query(Sale).filter(Sale.namespace == current_namespace())
    if status:
        q = q.filter(Sale.status == status)
    if customer_id is not None:
        q = q.filter(Sale.customer_id == customer_id)
    if date_from is not None:
        q = q.filter(Sale.sale_date >= date_from)
    if date_to is not None:
        q = q.filter(Sale.sale_date <= date_to)
    return q.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


def list_credit_sales(customer_id: int | None = None) -> list[Sale]:
    return list_sales(status=SALE_STATUS_CREDIT, customer_id=customer_id)


def build_invoice(sale: Sale) -> dict:
    """Invoice view-model: the sale, its customer and the shop profile."""
    customer = db.session.get(Customer, sale.customer_id)
    if customer is None:
        raise NotFoundError("Customer for this sale no longer exists", details={"sale_id": sale.id})
    profile = ensure_profile(sale.namespace)
    return {
        "sale": sale.to_dict(),
        "customer": customer.to_dict(),
        "company": profile.to_dict(),
        "footer": profile.invoice_footer_message,
    }
