"""
Pricing Resolver

finalPrice = max(base, base + base * (baseMarkup% + dynamicMarkup%) / 100)

The merchant price is the floor for every derived price: this engine never
introduces a discount. A variant product resolves each variant independently
with its own base markup (falling back to the product's) and the single
dynamic markup computed for the parent product.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from signal_pricing.utils.helpers import to_cents, to_decimal
from signal_pricing.utils.logger import log

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PriceableInputs:
    """Seller-controlled pricing inputs of a product or variant"""
    merchant_price: Optional[Decimal] = None
    legacy_price: Optional[Decimal] = None
    base_markup_percent: Optional[Decimal] = None
    stock: int = 0

    @classmethod
    def from_entity(cls, entity) -> "PriceableInputs":
        return cls(
            merchant_price=to_decimal(entity.merchant_price),
            legacy_price=to_decimal(entity.price),
            base_markup_percent=to_decimal(entity.base_markup_percent),
            stock=entity.stock or 0,
        )

    @property
    def base_price(self) -> Optional[Decimal]:
        """Merchant price, falling back to the legacy single price"""
        for candidate in (self.merchant_price, self.legacy_price):
            if candidate is not None and candidate > 0:
                return candidate
        return None


@dataclass
class PricingResolution:
    final_price: Optional[Decimal]
    variant_final_prices: List[Optional[Decimal]] = field(default_factory=list)
    stock: int = 0
    dynamic_markup_percent: Decimal = Decimal("0.00")

    @property
    def display_price(self) -> Optional[Decimal]:
        """Lowest variant price for variant products, else the product price"""
        priced = [p for p in self.variant_final_prices if p is not None]
        if priced:
            return min(priced)
        return self.final_price


def resolve_final_price(base, base_markup_percent, dynamic_markup_percent) -> Decimal:
    """
    Final price for one priceable entity, in cents.

    Args:
        base: merchant price (> 0)
        base_markup_percent: static admin/seller markup (>= 0)
        dynamic_markup_percent: behavioral markup (0-50)

    Returns:
        Decimal final price, never below base
    """
    base = to_decimal(base)
    markup = to_decimal(base_markup_percent or 0) + to_decimal(dynamic_markup_percent or 0)
    final = to_cents(max(base, base + base * markup / HUNDRED))

    if final < base:
        log.warning(f"Final price {final} below merchant price {base}, clamping to merchant price")
        final = base
    return final


def resolve_product_pricing(
    product: PriceableInputs,
    variants: Sequence[PriceableInputs],
    dynamic_markup_percent,
    default_base_markup_percent,
) -> PricingResolution:
    """
    Resolve final prices for a product and its variants.

    Args:
        product: product-level inputs
        variants: variant inputs in display order (empty for simple products)
        dynamic_markup_percent: markup computed once for the product
        default_base_markup_percent: configured default when no base markup is set

    Returns:
        PricingResolution; stock is the sum of variant stock when variants exist
    """
    dynamic = to_decimal(dynamic_markup_percent or 0)
    product_markup = product.base_markup_percent
    if product_markup is None:
        product_markup = to_decimal(default_base_markup_percent)

    product_base = product.base_price
    final_price = None
    if product_base is not None:
        final_price = resolve_final_price(product_base, product_markup, dynamic)

    variant_prices: List[Optional[Decimal]] = []
    for variant in variants:
        variant_base = variant.base_price
        if variant_base is None:
            variant_prices.append(None)
            continue
        variant_markup = variant.base_markup_percent
        if variant_markup is None:
            variant_markup = product_markup
        variant_prices.append(resolve_final_price(variant_base, variant_markup, dynamic))

    stock = sum(v.stock for v in variants) if variants else product.stock

    return PricingResolution(
        final_price=final_price,
        variant_final_prices=variant_prices,
        stock=stock,
        dynamic_markup_percent=dynamic,
    )
