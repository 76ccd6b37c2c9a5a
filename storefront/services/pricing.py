"""Order pricing policies.

Two policies exist and are selected by entry point; they are never merged
because each produces externally visible totals:

- StorefrontPricing: live catalog price, flat shipping below a threshold, tax.
- ClientPricing: the caller's per-item price, no shipping, no tax (v1 surface).
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from storefront.config import FLAT_SHIPPING_FEE, FREE_SHIPPING_THRESHOLD, TAX_RATE
from storefront.errors import ValidationError
from storefront.models import Product


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    shipping: int
    tax: int
    total: int


class PricingPolicy:
    """Base pricing policy."""

    name = "base"

    def unit_price(self, product: Product, requested_price: Optional[int]) -> int:
        raise NotImplementedError

    def totals(self, subtotal: int) -> OrderTotals:
        raise NotImplementedError


class StorefrontPricing(PricingPolicy):
    """Price from the catalog; shipping and tax added on top."""

    name = "storefront-priced"

    def __init__(
        self,
        free_shipping_threshold: int = FREE_SHIPPING_THRESHOLD,
        flat_shipping_fee: int = FLAT_SHIPPING_FEE,
        tax_rate: str = TAX_RATE
    ):
        self.free_shipping_threshold = free_shipping_threshold
        self.flat_shipping_fee = flat_shipping_fee
        self.tax_rate = Decimal(tax_rate)

    def unit_price(self, product: Product, requested_price: Optional[int]) -> int:
        # Client-supplied prices are ignored on the storefront
        return product.price

    def shipping_for(self, subtotal: int) -> int:
        return 0 if subtotal >= self.free_shipping_threshold else self.flat_shipping_fee

    def tax_for(self, subtotal: int) -> int:
        # Half-up rounding: 4.5 becomes 5, not banker's 4
        return int((Decimal(subtotal) * self.tax_rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def totals(self, subtotal: int) -> OrderTotals:
        shipping = self.shipping_for(subtotal)
        tax = self.tax_for(subtotal)
        return OrderTotals(
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=subtotal + shipping + tax
        )


class ClientPricing(PricingPolicy):
    """Trust the caller's unit price; no shipping or tax."""

    name = "client-priced"

    def unit_price(self, product: Product, requested_price: Optional[int]) -> int:
        if requested_price is None:
            raise ValidationError(f"Price is required for product {product.id}")
        return requested_price

    def totals(self, subtotal: int) -> OrderTotals:
        return OrderTotals(subtotal=subtotal, shipping=0, tax=0, total=subtotal)


STOREFRONT_PRICING = StorefrontPricing()
CLIENT_PRICING = ClientPricing()
