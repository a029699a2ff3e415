"""
Cart pricing engine.

WHY: Staging area for one checkout session. Lives only in memory, has a
single owner, and is consumed by the checkout service.

Prices are captured when a product first enters the cart so that the
amounts the cashier saw are the amounts that get committed.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, has_app_context

from ..errors import InvalidAmount, InvalidDiscount, InvalidQuantity
from ..money import multiply, percent_of


DEFAULT_TAX_RATE_BPS = 700  # 7% VAT


@dataclass
class CartItem:
    product_id: int
    name: str | None
    unit_price_cents: int
    quantity: int

    @property
    def line_total_cents(self) -> int:
        return multiply(self.unit_price_cents, self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }


@dataclass(frozen=True)
class CartPricing:
    subtotal_cents: int
    tax_cents: int
    discount_cents: int
    total_cents: int

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
        }


def _require_quantity(quantity) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise InvalidQuantity("Quantity must be a whole number", {"quantity": quantity})


class Cart:
    """In-memory cart keyed by product id."""

    def __init__(self, tax_rate_bps: int | None = None):
        if tax_rate_bps is None:
            tax_rate_bps = DEFAULT_TAX_RATE_BPS
            if has_app_context():
                tax_rate_bps = current_app.config.get("TAX_RATE_BPS", DEFAULT_TAX_RATE_BPS)
        self.tax_rate_bps = tax_rate_bps
        self._items: dict[int, CartItem] = {}

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def get(self, product_id: int) -> CartItem | None:
        return self._items.get(product_id)

    def add_item(self, product, quantity: int = 1) -> CartItem:
        """Add a product, merging into its existing line if already present."""
        _require_quantity(quantity)
        if quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1", {"quantity": quantity})

        existing = self._items.get(product.id)
        if existing:
            existing.quantity += quantity
            return existing

        price = getattr(product, "price_cents", None)
        if not isinstance(price, int) or isinstance(price, bool) or price < 0:
            raise InvalidAmount("Product has no valid price", {"product_id": product.id})

        item = CartItem(
            product_id=product.id,
            name=getattr(product, "name", None),
            unit_price_cents=price,
            quantity=quantity,
        )
        self._items[product.id] = item
        return item

    def set_quantity(self, product_id: int, quantity: int) -> CartItem | None:
        """Replace a line's quantity; zero or less removes the line."""
        _require_quantity(quantity)
        if quantity <= 0:
            self.remove_item(product_id)
            return None

        item = self._items.get(product_id)
        if item:
            item.quantity = quantity
        return item

    def remove_item(self, product_id: int) -> None:
        self._items.pop(product_id, None)

    def clear(self) -> None:
        self._items.clear()

    def subtotal_cents(self) -> int:
        return sum(item.line_total_cents for item in self._items.values())

    def price(self, discount_cents: int = 0) -> CartPricing:
        """
        subtotal = sum(unit price x quantity)
        tax = round_half_up(subtotal x tax rate)
        total = subtotal + tax - discount

        A discount larger than subtotal + tax is rejected, never clamped.
        """
        if not isinstance(discount_cents, int) or isinstance(discount_cents, bool):
            raise InvalidDiscount("Discount must be an integer number of cents")
        if discount_cents < 0:
            raise InvalidDiscount("Discount cannot be negative", {"discount_cents": discount_cents})

        subtotal = self.subtotal_cents()
        tax = percent_of(subtotal, self.tax_rate_bps)

        if discount_cents > subtotal + tax:
            raise InvalidDiscount(
                "Discount exceeds order total",
                {"discount_cents": discount_cents, "max_discount_cents": subtotal + tax},
            )

        return CartPricing(
            subtotal_cents=subtotal,
            tax_cents=tax,
            discount_cents=discount_cents,
            total_cents=subtotal + tax - discount_cents,
        )

    def to_dict(self, discount_cents: int = 0) -> dict:
        return {
            "items": [item.to_dict() for item in self.items],
            "tax_rate_bps": self.tax_rate_bps,
            "pricing": self.price(discount_cents).to_dict(),
        }
