import pytest

from counterpos.models import Product, ProductType
from counterpos.services.cart_service import (
    DISCOUNT_FIXED,
    DISCOUNT_PERCENTAGE,
    Cart,
    build_cart,
    compute_totals,
    make_cart_id,
)
from counterpos.services.errors import NotFoundError
from counterpos.validation import ValidationError


def _simple(pid=1, price=1000):
    return Product(id=pid, product_type=ProductType.SIMPLE.value, name=f"P{pid}", price=price, quantity=10)


def _variant(pid=2):
    return Product(
        id=pid,
        product_type=ProductType.VARIANT.value,
        name="Pagne",
        base_price=2000,
        variants=[
            {"id": "v1", "name": "Rouge", "price_modifier": 0, "quantity": 5},
            {"id": "v2", "name": "Bleu", "price_modifier": 500, "quantity": 5},
        ],
    )


def test_adding_same_product_merges_lines():
    cart = Cart()
    p = _simple()
    cart.add(p, 2)
    cart.add(p, 3)

    assert len(cart) == 1
    assert cart.lines[0].quantity == 5
    assert cart.lines[0].cart_id == "1"
    assert cart.subtotal == 5000


def test_variants_are_separate_lines_priced_from_base():
    cart = Cart()
    p = _variant()
    cart.add(p, 1, p.find_variant("v1"))
    cart.add(p, 2, p.find_variant("v2"))
    cart.add(p, 1, p.find_variant("v2"))

    assert len(cart) == 2
    red = cart.get(make_cart_id(2, "v1"))
    blue = cart.get(make_cart_id(2, "v2"))
    assert red.price == 2000
    assert red.name == "Pagne - Rouge"
    assert blue.price == 2500
    assert blue.quantity == 3
    assert blue.variant == {"id": "v2", "name": "Bleu"}


def test_variant_product_requires_variant():
    with pytest.raises(ValidationError):
        Cart().add(_variant(), 1)


def test_set_quantity_clamps_and_removes():
    cart = Cart()
    cart.add(_simple(), 4)

    assert cart.set_quantity("1", 2).quantity == 2
    assert cart.set_quantity("1", -3) is None
    assert len(cart) == 0

    with pytest.raises(NotFoundError):
        cart.set_quantity("1", 1)


def test_discount_and_vat_arithmetic():
    totals = compute_totals(10000, discount_type=DISCOUNT_PERCENTAGE, discount_value=10, apply_vat=True)

    assert totals.discount_amount == 1000
    assert totals.vat_amount == 1620
    assert totals.total_price == 10620


def test_totals_without_vat_or_discount():
    totals = compute_totals(10000)
    assert totals.to_dict() == {
        "subtotal": 10000,
        "discount_amount": 0,
        "vat_amount": 0,
        "total_price": 10000,
    }


def test_percentage_rounds_half_up():
    # 5% of 999 = 49.95
    totals = compute_totals(999, discount_type=DISCOUNT_PERCENTAGE, discount_value=5)
    assert totals.discount_amount == 50
    assert totals.total_price == 949


def test_fixed_discount():
    totals = compute_totals(5000, discount_type=DISCOUNT_FIXED, discount_value=1500, apply_vat=True)
    assert totals.discount_amount == 1500
    assert totals.vat_amount == 630
    assert totals.total_price == 4130


@pytest.mark.parametrize("kwargs", [
    {"discount_type": DISCOUNT_FIXED, "discount_value": 6000},
    {"discount_type": DISCOUNT_PERCENTAGE, "discount_value": 101},
    {"discount_type": DISCOUNT_PERCENTAGE, "discount_value": -1},
    {"discount_type": "bogus", "discount_value": 1},
    {"discount_type": DISCOUNT_PERCENTAGE, "discount_value": "NaN"},
    {"discount_type": DISCOUNT_PERCENTAGE, "discount_value": float("nan")},
    {"discount_type": DISCOUNT_FIXED, "discount_value": "Infinity"},
    {"discount_type": DISCOUNT_FIXED, "discount_value": "-Infinity"},
    {"discount_type": DISCOUNT_PERCENTAGE, "discount_value": "abc"},
])
def test_invalid_discounts_rejected(kwargs):
    with pytest.raises(ValidationError):
        compute_totals(5000, **kwargs)


def test_build_cart_prices_from_catalog(db_session, make_simple, make_variant_product):
    soap = make_simple(price=750)
    cloth = make_variant_product()

    cart = build_cart([
        {"product_id": soap.id, "quantity": 2},
        {"product_id": soap.id, "quantity": "1"},
        {"product_id": cloth.id, "quantity": 1, "variant_id": "v2"},
    ])

    assert len(cart) == 2
    assert cart.get(str(soap.id)).quantity == 3
    assert cart.subtotal == 3 * 750 + 2500


def test_build_cart_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        build_cart([{"product_id": 999, "quantity": 1}])


def test_build_cart_unknown_variant(db_session, make_variant_product):
    cloth = make_variant_product()
    with pytest.raises(NotFoundError):
        build_cart([{"product_id": cloth.id, "quantity": 1, "variant_id": "nope"}])
