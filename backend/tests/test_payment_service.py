import pytest

from counterpos.models.sales import SALE_STATUS_COMPLETED, SALE_STATUS_CREDIT
from counterpos.services import payment_service, sales_service
from counterpos.services.cart_service import build_cart
from counterpos.services.errors import InsufficientBalanceError, InvalidAmountError, NotFoundError
from counterpos.services.products_service import get_product
from counterpos.services.payment_service import (
    PAYMENT_CASH,
    PAYMENT_CREDIT,
    PAYMENT_CUSTOMER_BALANCE,
    PAYMENT_WAVE,
    PaymentError,
)


@pytest.fixture
def credit_sale(profile, make_simple, make_customer):
    """A 10000 credit sale for a customer with 3000 prepaid."""
    p = make_simple(price=10000, quantity=5)
    customer = make_customer(balance=3000)
    cart = build_cart([{"product_id": p.id, "quantity": 1}])
    sale = sales_service.submit_sale(cart, customer.id, PAYMENT_CREDIT, cart.totals())
    return sale


def test_payments_converge_to_completed(credit_sale):
    first = payment_service.apply_payment(credit_sale.id, 4000, PAYMENT_CASH)
    assert first.invoice_id == credit_sale.invoice_id
    assert credit_sale.paid_amount == 4000
    assert credit_sale.status == SALE_STATUS_CREDIT

    payment_service.apply_payment(credit_sale.id, 6000, PAYMENT_WAVE)
    assert credit_sale.paid_amount == 10000
    assert credit_sale.status == SALE_STATUS_COMPLETED
    assert credit_sale.remaining_balance == 0

    with pytest.raises(InvalidAmountError):
        payment_service.apply_payment(credit_sale.id, 1, PAYMENT_CASH)

    assert len(payment_service.list_payments(sale_id=credit_sale.id)) == 2


def test_payment_cannot_exceed_remaining(credit_sale):
    with pytest.raises(InvalidAmountError) as exc:
        payment_service.apply_payment(credit_sale.id, 12000, PAYMENT_CASH)

    assert exc.value.details["remaining_balance"] == 10000
    assert credit_sale.paid_amount == 0
    assert payment_service.list_payments() == []


@pytest.mark.parametrize("amount", [0, -500])
def test_non_positive_amount_rejected(credit_sale, amount):
    with pytest.raises(InvalidAmountError):
        payment_service.apply_payment(credit_sale.id, amount, PAYMENT_CASH)


def test_credit_is_not_a_settlement_type(credit_sale):
    with pytest.raises(PaymentError):
        payment_service.apply_payment(credit_sale.id, 1000, PAYMENT_CREDIT)


def test_paid_sale_rejects_payment(profile, make_simple, make_customer):
    p = make_simple(price=2000)
    cart = build_cart([{"product_id": p.id, "quantity": 1}])
    sale = sales_service.submit_sale(cart, make_customer().id, PAYMENT_CASH, cart.totals())

    with pytest.raises(InvalidAmountError):
        payment_service.apply_payment(sale.id, 100, PAYMENT_CASH)


def test_unknown_sale(db_session):
    with pytest.raises(NotFoundError):
        payment_service.apply_payment(424242, 100, PAYMENT_CASH)


def test_balance_funded_payment(credit_sale):
    customer = credit_sale.customer

    payment_service.apply_payment(credit_sale.id, 2000, PAYMENT_CUSTOMER_BALANCE)
    assert customer.balance == 1000
    assert credit_sale.paid_amount == 2000

    with pytest.raises(InsufficientBalanceError):
        payment_service.apply_payment(credit_sale.id, 2000, PAYMENT_CUSTOMER_BALANCE)

    assert customer.balance == 1000
    assert credit_sale.paid_amount == 2000


def test_payment_does_not_touch_stock(credit_sale):
    product_id = credit_sale.items[0]["product_id"]
    before = get_product(product_id).quantity
    payment_service.apply_payment(credit_sale.id, 5000, PAYMENT_CASH)
    assert get_product(product_id).quantity == before


def test_payment_receipt(credit_sale):
    payment = payment_service.apply_payment(credit_sale.id, 4000, PAYMENT_CASH)

    receipt = payment_service.build_payment_receipt(payment)

    assert receipt["payment"]["amount"] == 4000
    assert receipt["remaining_balance"] == 6000
    assert receipt["sale_status"] == SALE_STATUS_CREDIT
    assert receipt["customer"]["id"] == credit_sale.customer_id
    assert receipt["company"]["invoice_prefix"] == "FAC-"
