# salesdesk/services/cart/pricing.py
"""
Cart arithmetic. Pure functions over the selected lines and the active
discount; everything is rounded to two places with ROUND_HALF_UP.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from salesdesk.core.exceptions import ValidationError
from salesdesk.models.enums.discount_type import DiscountType
from salesdesk.utils.decimal_utils import ZERO, percent_of, to_decimal


@dataclass(frozen=True)
class DiscountPolicy:
    type: DiscountType = DiscountType.amount
    value: Decimal = ZERO

    def __post_init__(self):
        try:
            value = to_decimal(self.value)
            kind = DiscountType(self.type)
        except (ArithmeticError, ValueError):
            raise ValidationError(
                "Invalid discount",
                {"type": str(self.type), "value": str(self.value)},
            )
        if value < 0:
            raise ValidationError("Discount cannot be negative", {"value": str(value)})
        object.__setattr__(self, "type", kind)
        object.__setattr__(self, "value", value)


@dataclass(frozen=True)
class CartLine:
    item_id: int
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return to_decimal(to_decimal(self.unit_price) * self.quantity)


@dataclass(frozen=True)
class PricingSummary:
    subtotal: Decimal
    discount_amount: Decimal
    final_total: Decimal


def subtotal(lines: Iterable[CartLine]) -> Decimal:
    return to_decimal(sum((line.total_price for line in lines), ZERO))


def discount_amount(amount: Decimal, policy: DiscountPolicy) -> Decimal:
    """Never exceeds ``amount``; a 150% discount or an oversized fixed one clamps."""
    amount = to_decimal(amount)
    if policy.type is DiscountType.percentage:
        raw = percent_of(amount, policy.value)
    else:
        raw = policy.value
    return min(raw, amount)


def final_total(amount: Decimal, discount: Decimal) -> Decimal:
    return max(to_decimal(amount) - to_decimal(discount), ZERO)


def price(lines: Iterable[CartLine], policy: DiscountPolicy) -> PricingSummary:
    sub = subtotal(lines)
    disc = discount_amount(sub, policy)
    return PricingSummary(subtotal=sub, discount_amount=disc, final_total=final_total(sub, disc))
