"""Line and order pricing.

Money is rounded to whole currency units, half up, for taxes and coupon
discounts.  The coupon rule sits behind ``CouponPolicy`` so a real coupon
engine can replace the flat-rate placeholder through settings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.utils.module_loading import import_string

WHOLE_UNIT = Decimal("1")
CENTS = Decimal("0.01")


def round_currency(value: Decimal) -> Decimal:
    return Decimal(value).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


class CouponPolicy(ABC):
    """Decides the discount rate a coupon code grants."""

    @abstractmethod
    def validate_coupon(self, code: Optional[str]) -> Decimal:
        """Return the discount rate for ``code`` (``0`` when none applies)."""


class FlatRateCouponPolicy(CouponPolicy):
    """Any non-empty code grants ``ORDER_COUPON_DISCOUNT_RATE``."""

    def __init__(self, rate: Optional[Decimal] = None) -> None:
        self._rate = Decimal(
            rate if rate is not None else settings.ORDER_COUPON_DISCOUNT_RATE
        )

    def validate_coupon(self, code: Optional[str]) -> Decimal:
        if code and code.strip():
            return self._rate
        return Decimal("0")


def get_coupon_policy() -> CouponPolicy:
    return import_string(settings.ORDER_COUPON_POLICY)()


@dataclass(frozen=True)
class LinePrice:
    unit_price: Decimal
    discounted_price: Decimal
    total_price: Decimal


def price_line(
    price: Decimal,
    discounted_price: Optional[Decimal],
    additional_price: Decimal,
    quantity: int,
) -> LinePrice:
    """Unit prices include the variation surcharge on both price columns."""
    unit = Decimal(price) + Decimal(additional_price)
    if discounted_price is not None:
        effective = Decimal(discounted_price) + Decimal(additional_price)
    else:
        effective = unit
    return LinePrice(
        unit_price=unit.quantize(CENTS),
        discounted_price=effective.quantize(CENTS),
        total_price=(effective * quantity).quantize(CENTS),
    )


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount_amount: Decimal
    taxes: Decimal
    delivery_charge: Decimal
    total_amount: Decimal


def price_order(
    line_totals: Iterable[Decimal],
    *,
    is_express_delivery: bool,
    coupon_code: Optional[str],
    coupon_policy: CouponPolicy,
) -> OrderTotals:
    subtotal = sum((Decimal(t) for t in line_totals), Decimal("0.00"))
    delivery_charge = Decimal(
        settings.ORDER_DELIVERY_CHARGE_EXPRESS
        if is_express_delivery
        else settings.ORDER_DELIVERY_CHARGE_STANDARD
    )
    taxes = round_currency(subtotal * Decimal(settings.ORDER_TAX_RATE))
    discount = round_currency(subtotal * coupon_policy.validate_coupon(coupon_code))
    total = subtotal - discount + taxes + delivery_charge
    return OrderTotals(
        subtotal=subtotal.quantize(CENTS),
        discount_amount=discount.quantize(CENTS),
        taxes=taxes.quantize(CENTS),
        delivery_charge=delivery_charge.quantize(CENTS),
        total_amount=total.quantize(CENTS),
    )
