# Overview: Stock resolution; turns cart consumption into counter decrements for simple, variant and pack products.

"""
Stock Resolution

A "counter" is one stored stock quantity:
- a simple product's quantity column, or
- one entry of a variant product's variants[] list.

Packs have no counter. Consuming q packs consumes pack_item.quantity * q of
every child counter named in pack_items[]. Expansion is exactly one level
deep: a child must be simple or variant (packs-of-packs are rejected when
the pack is saved, and again here).

USAGE (inside a transaction that already loaded every product involved):

    decrements = []
    for line in lines:
        decrements += resolve_consumption(products[line.product_id], line.quantity,
                                          line.variant_id, products, label=line.name)
    check_sufficiency(decrements, products)   # raises, writes nothing
    apply_decrements(decrements, products)    # mutates ORM objects only

Sufficiency is checked on the summed demand per counter, so two cart lines
draining the same counter cannot jointly oversell it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from ..models import Product, ProductType
from .errors import InsufficientStockError, NotFoundError, PosError


class InvalidProductError(PosError):
    """Product data breaks a catalog invariant (e.g. pack inside a pack)."""


@dataclass(frozen=True)
class CounterRef:
    product_id: int
    variant_id: str | None = None


@dataclass(frozen=True)
class StockDecrement:
    counter: CounterRef
    quantity: int
    label: str


def pack_child_ids(product: Product) -> set[int]:
    """Child product ids referenced by a pack (empty for other types)."""
    if product.kind is not ProductType.PACK:
        return set()
    return {int(item["product_id"]) for item in product.pack_items or []}


def _leaf_decrement(product: Product, variant_id: str | None, quantity: int, label: str) -> StockDecrement:
    kind = product.kind
    if kind is ProductType.SIMPLE:
        if variant_id:
            raise NotFoundError(
                f"Variant not found for {label}",
                details={"product_id": product.id, "variant_id": variant_id},
            )
        return StockDecrement(CounterRef(product.id), quantity, label)

    if kind is ProductType.VARIANT:
        if not variant_id or product.find_variant(variant_id) is None:
            raise NotFoundError(
                f"Variant not found for {label}",
                details={"product_id": product.id, "variant_id": variant_id},
            )
        return StockDecrement(CounterRef(product.id, variant_id), quantity, label)

    if kind is ProductType.PACK:
        raise InvalidProductError(
            f"{product.name} is a pack and cannot be a pack component",
            details={"product_id": product.id},
        )

    raise InvalidProductError(f"Unknown product type {product.product_type!r}")


def resolve_consumption(
    product: Product,
    quantity: int,
    variant_id: str | None,
    products: Mapping[int, Product],
    *,
    label: str | None = None,
) -> list[StockDecrement]:
    """
    Expand the consumption of `quantity` units of `product` into counter
    decrements. Pack children are looked up in `products`.

    Raises NotFoundError for missing children or variants and
    InvalidProductError for nested packs. Does not check availability.
    """
    label = label or product.name
    kind = product.kind

    if kind in (ProductType.SIMPLE, ProductType.VARIANT):
        return [_leaf_decrement(product, variant_id, quantity, label)]

    if kind is ProductType.PACK:
        decrements = []
        for item in product.pack_items or []:
            child_id = int(item["product_id"])
            child_name = item.get("name") or str(child_id)
            child = products.get(child_id)
            if child is None:
                raise NotFoundError(
                    f"Pack component {child_name} not found",
                    details={"pack_id": product.id, "product_id": child_id},
                )
            child_variant = (item.get("variant") or {}).get("id")
            per_pack = int(item.get("quantity") or 0)
            decrements.append(
                _leaf_decrement(child, child_variant, per_pack * quantity, f"{child_name} (pack {product.name})")
            )
        return decrements

    raise InvalidProductError(f"Unknown product type {product.product_type!r}")


def available_quantity(product: Product, variant_id: str | None = None) -> int:
    kind = product.kind
    if kind is ProductType.SIMPLE:
        return int(product.quantity or 0)
    if kind is ProductType.VARIANT:
        variant = product.find_variant(variant_id) if variant_id else None
        if variant is None:
            raise NotFoundError(
                f"Variant not found for {product.name}",
                details={"product_id": product.id, "variant_id": variant_id},
            )
        return int(variant.get("quantity") or 0)
    if kind is ProductType.PACK:
        raise InvalidProductError(f"{product.name} is a pack and has no stock counter")
    raise InvalidProductError(f"Unknown product type {product.product_type!r}")


def _aggregate(decrements: Iterable[StockDecrement]) -> dict[CounterRef, tuple[int, str]]:
    totals: dict[CounterRef, tuple[int, str]] = {}
    for dec in decrements:
        qty, label = totals.get(dec.counter, (0, dec.label))
        totals[dec.counter] = (qty + dec.quantity, label)
    return totals


def check_sufficiency(decrements: Iterable[StockDecrement], products: Mapping[int, Product]) -> None:
    """Raise InsufficientStockError for the first counter that cannot cover its total demand."""
    for counter, (requested, label) in _aggregate(decrements).items():
        on_hand = available_quantity(products[counter.product_id], counter.variant_id)
        if on_hand < requested:
            raise InsufficientStockError(
                f"Insufficient stock for {label}",
                details={
                    "product_id": counter.product_id,
                    "variant_id": counter.variant_id,
                    "requested_quantity": requested,
                    "on_hand": on_hand,
                },
            )


def apply_decrements(decrements: Iterable[StockDecrement], products: Mapping[int, Product]) -> set[int]:
    """
    Apply decrements to the loaded ORM objects. Returns the ids of the
    products touched.

    Variant lists are rebuilt from copies and reassigned whole; mutating
    the stored dicts in place would hide the change from the ORM.
    """
    touched: set[int] = set()
    for counter, (qty, _label) in _aggregate(decrements).items():
        product = products[counter.product_id]
        if counter.variant_id is None:
            product.quantity = int(product.quantity or 0) - qty
        else:
            new_variants = []
            for variant in product.variants or []:
                entry = dict(variant)
                if entry.get("id") == counter.variant_id:
                    entry["quantity"] = int(entry.get("quantity") or 0) - qty
                new_variants.append(entry)
            product.variants = new_variants
        touched.add(product.id)
    return touched
