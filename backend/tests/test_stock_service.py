import pytest

from counterpos.models import Product, ProductType
from counterpos.services.errors import InsufficientStockError, NotFoundError
from counterpos.services.stock_service import (
    CounterRef,
    InvalidProductError,
    apply_decrements,
    check_sufficiency,
    pack_child_ids,
    resolve_consumption,
)


@pytest.fixture
def catalog():
    a = Product(id=1, product_type=ProductType.SIMPLE.value, name="A", price=500, quantity=10)
    b = Product(
        id=2,
        product_type=ProductType.VARIANT.value,
        name="B",
        base_price=1000,
        variants=[
            {"id": "v1", "name": "Small", "price_modifier": 0, "quantity": 5},
            {"id": "v2", "name": "Large", "price_modifier": 200, "quantity": 7},
        ],
    )
    pack = Product(
        id=3,
        product_type=ProductType.PACK.value,
        name="Combo",
        price=1800,
        pack_items=[
            {"product_id": 1, "name": "A", "quantity": 2, "variant": None},
            {"product_id": 2, "name": "B - Small", "quantity": 1, "variant": {"id": "v1", "name": "Small"}},
        ],
    )
    return {1: a, 2: b, 3: pack}


def test_pack_expands_one_level(catalog):
    decrements = resolve_consumption(catalog[3], 3, None, catalog)

    by_counter = {d.counter: d.quantity for d in decrements}
    assert by_counter == {CounterRef(1): 6, CounterRef(2, "v1"): 3}
    assert decrements[0].label == "A (pack Combo)"


def test_pack_child_ids(catalog):
    assert pack_child_ids(catalog[3]) == {1, 2}
    assert pack_child_ids(catalog[1]) == set()


def test_apply_decrements_rebuilds_variant_list(catalog):
    before = catalog[2].variants
    decrements = resolve_consumption(catalog[3], 3, None, catalog)

    touched = apply_decrements(decrements, catalog)

    assert touched == {1, 2}
    assert catalog[1].quantity == 4
    assert catalog[2].variants is not before
    assert catalog[2].find_variant("v1")["quantity"] == 2
    assert catalog[2].find_variant("v2")["quantity"] == 7
    # Stored dicts untouched
    assert before[0]["quantity"] == 5


def test_sufficiency_checked_on_combined_demand(catalog):
    # 2 A directly + 2 packs (4 A) = 6 <= 10; a third pack pushes it to 12
    decrements = resolve_consumption(catalog[1], 6, None, catalog)
    decrements += resolve_consumption(catalog[3], 3, None, catalog)

    with pytest.raises(InsufficientStockError) as exc:
        check_sufficiency(decrements, catalog)

    assert exc.value.details["product_id"] == 1
    assert exc.value.details["requested_quantity"] == 12
    assert exc.value.details["on_hand"] == 10
    assert "Insufficient stock for A" in exc.value.message


def test_missing_variant(catalog):
    with pytest.raises(NotFoundError):
        resolve_consumption(catalog[2], 1, "nope", catalog)
    with pytest.raises(NotFoundError):
        resolve_consumption(catalog[2], 1, None, catalog)


def test_missing_pack_component(catalog):
    del catalog[1]
    with pytest.raises(NotFoundError) as exc:
        resolve_consumption(catalog[3], 1, None, catalog)
    assert exc.value.message == "Pack component A not found"


def test_pack_inside_pack_rejected(catalog):
    outer = Product(
        id=4,
        product_type=ProductType.PACK.value,
        name="Mega",
        price=5000,
        pack_items=[{"product_id": 3, "name": "Combo", "quantity": 1, "variant": None}],
    )
    catalog[4] = outer
    with pytest.raises(InvalidProductError):
        resolve_consumption(outer, 1, None, catalog)
