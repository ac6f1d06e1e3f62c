# Overview: Transient cart model; line merging and derived sale totals.

"""
Cart Service

Carts are ephemeral (never persisted). A cart is built from the products a
cashier selects and handed to sales_service.submit_sale.

- cart_id is the product id, or "<product_id>-<variant_id>" for a variant.
  Adding a line whose cart_id already exists sums the quantities.
- Totals are derived on demand and never stored on the cart.
- Money is integer minor units; percentage math rounds half-up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import Product, ProductType
from .errors import NotFoundError
from .tenant_service import current_namespace
from ..validation import ValidationError, coerce_int

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = [DISCOUNT_PERCENTAGE, DISCOUNT_FIXED]


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def make_cart_id(product_id: int, variant_id: str | None = None) -> str:
    return f"{product_id}-{variant_id}" if variant_id else str(product_id)


@dataclass
class CartLine:
    cart_id: str
    product_id: int
    name: str
    price: int
    quantity: int
    variant: dict | None = None

    @property
    def variant_id(self) -> str | None:
        return (self.variant or {}).get("id")

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "cart_id": self.cart_id,
            "product_id": self.product_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "variant": self.variant,
            "subtotal": self.subtotal,
        }


@dataclass(frozen=True)
class SaleTotals:
    subtotal: int
    discount_amount: int
    vat_amount: int
    total_price: int

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "vat_amount": self.vat_amount,
            "total_price": self.total_price,
        }


@dataclass
class Cart:
    lines: list[CartLine] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)

    def get(self, cart_id: str) -> CartLine | None:
        for line in self.lines:
            if line.cart_id == cart_id:
                return line
        return None

    def add(self, product: Product, quantity: int, variant: dict | None = None) -> CartLine:
        """
        Add `quantity` of a product (or one of its variants) to the cart.

        Variant lines are priced base_price + price_modifier; simple and pack
        lines use price.
        """
        if quantity <= 0:
            raise ValidationError("quantity must be > 0")

        kind = product.kind
        if kind is ProductType.VARIANT:
            if variant is None:
                raise ValidationError(f"A variant must be chosen for {product.name}")
            base = product.base_price if product.base_price is not None else (product.price or 0)
            price = base + int(variant.get("price_modifier") or 0)
            name = f"{product.name} - {variant['name']}"
            variant_ref = {"id": variant["id"], "name": variant["name"]}
        elif kind in (ProductType.SIMPLE, ProductType.PACK):
            if variant is not None:
                raise ValidationError(f"{product.name} has no variants")
            price = product.price or 0
            name = product.name
            variant_ref = None
        else:
            raise ValidationError(f"Unknown product type {product.product_type!r}")

        cart_id = make_cart_id(product.id, variant_ref["id"] if variant_ref else None)
        existing = self.get(cart_id)
        if existing is not None:
            existing.quantity += quantity
            return existing

        line = CartLine(
            cart_id=cart_id,
            product_id=product.id,
            name=name,
            price=price,
            quantity=quantity,
            variant=variant_ref,
        )
        self.lines.append(line)
        return line

    def set_quantity(self, cart_id: str, quantity: int) -> CartLine | None:
        """Clamp to >= 0; a line set to 0 is removed (returns None)."""
        line = self.get(cart_id)
        if line is None:
            raise NotFoundError(f"Cart line {cart_id} not found")
        quantity = max(int(quantity), 0)
        if quantity == 0:
            self.remove(cart_id)
            return None
        line.quantity = quantity
        return line

    def remove(self, cart_id: str) -> None:
        self.lines = [line for line in self.lines if line.cart_id != cart_id]

    def clear(self) -> None:
        self.lines = []

    @property
    def subtotal(self) -> int:
        return sum(line.subtotal for line in self.lines)

    def totals(
        self,
        *,
        discount_type: str = DISCOUNT_PERCENTAGE,
        discount_value: int | float | str = 0,
        apply_vat: bool = False,
        vat_rate_bps: int = 1800,
    ) -> SaleTotals:
        return compute_totals(
            self.subtotal,
            discount_type=discount_type,
            discount_value=discount_value,
            apply_vat=apply_vat,
            vat_rate_bps=vat_rate_bps,
        )

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": self.subtotal,
        }


def compute_totals(
    subtotal: int,
    *,
    discount_type: str = DISCOUNT_PERCENTAGE,
    discount_value: int | float | str = 0,
    apply_vat: bool = False,
    vat_rate_bps: int = 1800,
) -> SaleTotals:
    """
    subtotal -> discount -> VAT on (subtotal - discount) -> total.

    Example: 10000, 10% discount, VAT 18% -> 1000 / 1620 / 10620.
    """
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"Invalid discount type: {discount_type}. Must be one of {DISCOUNT_TYPES}")

    try:
        value = Decimal(str(discount_value or 0))
    except ArithmeticError:
        raise ValidationError("discount_value must be a number")
    if not value.is_finite():
        raise ValidationError("discount_value must be a number")
    if value < 0:
        raise ValidationError("discount_value must be >= 0")

    if discount_type == DISCOUNT_PERCENTAGE:
        if value > 100:
            raise ValidationError("percentage discount cannot exceed 100")
        discount = _round_half_up(Decimal(subtotal) * value / Decimal(100))
    else:
        discount = _round_half_up(value)

    if discount > subtotal:
        raise ValidationError("discount cannot exceed subtotal")

    taxable = subtotal - discount
    vat = _round_half_up(Decimal(taxable) * Decimal(vat_rate_bps) / Decimal(10000)) if apply_vat else 0

    return SaleTotals(
        subtotal=subtotal,
        discount_amount=discount,
        vat_amount=vat,
        total_price=taxable + vat,
    )


def build_cart(items: list[dict]) -> Cart:
    """
    Build a cart from a request payload:
        [{"product_id": 1, "quantity": 2, "variant_id": "ab12"}, ...]

    Names and prices come from the stored products, not from the client.
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    namespace = current_namespace()
    cart = Cart()
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        product_id = coerce_int(raw.get("product_id"), "product_id")
        quantity = coerce_int(raw.get("quantity"), "quantity")
        variant_id = raw.get("variant_id")

        product = (
            db.session.query(Product)
            .filter_by(id=product_id, namespace=namespace)
            .first()
        )
        if product is None:
            raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})

        variant = None
        if variant_id:
            variant = product.find_variant(variant_id)
            if variant is None:
                raise NotFoundError(
                    f"Variant not found for {product.name}",
                    details={"product_id": product_id, "variant_id": variant_id},
                )
        cart.add(product, quantity, variant)
    return cart
