# app/services/coupons/discount.py
"""
Typed discount rules and the pure functions that price them.

A coupon row stores ``discount_type`` and ``discount_value``; these are turned
into one of :class:`FixedDiscount`, :class:`PercentDiscount` or
:class:`FreeShipping` and evaluated against the cart, never interpreted as
an expression.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from app.core.errors import ValidationError
from app.models.enums import CouponTargetType, DiscountType


@dataclass(frozen=True)
class FixedDiscount:
    amount: int


@dataclass(frozen=True)
class PercentDiscount:
    # 0.15 takes 15% off the applicable subtotal
    fraction: Decimal


@dataclass(frozen=True)
class FreeShipping:
    pass


DiscountRule = Union[FixedDiscount, PercentDiscount, FreeShipping]


@dataclass(frozen=True)
class CartLine:
    vinyl_id: int
    quantity: int
    unit_price: int
    category_id: Optional[int] = None

    @property
    def subtotal(self) -> int:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class DiscountResult:
    discount_amount: int
    shipping_discount: int
    applicable_amount: int

    @property
    def total_discount(self) -> int:
        return self.discount_amount + self.shipping_discount


def evaluate_discount(rule: DiscountRule, subtotal: int, shipping_fee: int = 0) -> DiscountResult:
    """Price ``rule`` against ``subtotal``; the discount is clamped to [0, subtotal]."""
    subtotal = max(0, subtotal)
    shipping_discount = 0

    if isinstance(rule, FixedDiscount):
        discount = min(rule.amount, subtotal)
    elif isinstance(rule, PercentDiscount):
        discount = int((Decimal(subtotal) * rule.fraction).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    elif isinstance(rule, FreeShipping):
        discount = 0
        shipping_discount = max(0, shipping_fee)
    else:
        raise TypeError(f"Unsupported discount rule: {rule!r}")

    discount = max(0, min(discount, subtotal))
    return DiscountResult(discount_amount=discount, shipping_discount=shipping_discount, applicable_amount=subtotal)


def rule_from_coupon(coupon) -> DiscountRule:
    try:
        discount_type = DiscountType(coupon.discount_type)
    except ValueError:
        raise ValidationError("invalid_discount_type", {"discount_type": coupon.discount_type})

    value = coupon.discount_value or 0
    if discount_type == DiscountType.FIXED:
        return FixedDiscount(amount=int(value))
    if discount_type == DiscountType.PERCENT:
        if not 0 < value <= 100:
            raise ValidationError("invalid_discount_value", {"discount_value": value})
        return PercentDiscount(fraction=Decimal(value) / Decimal(100))
    return FreeShipping()


def applicable_lines(coupon, lines: Iterable[CartLine]) -> List[CartLine]:
    """Lines the rule applies to; product-targeted coupons only cover their category."""
    lines = list(lines)
    if coupon.target_type == CouponTargetType.PRODUCT.value and coupon.target_value:
        if not str(coupon.target_value).isdigit():
            raise ValidationError("invalid_coupon_rules", {"target_value": coupon.target_value})
        category_id = int(coupon.target_value)
        return [line for line in lines if line.category_id == category_id]
    return lines


def check_eligibility(coupon, lines: Iterable[CartLine], member_level: Optional[str]) -> None:
    lines = list(lines)
    cart_total = sum(line.subtotal for line in lines)
    item_count = sum(line.quantity for line in lines)

    if coupon.min_spend and cart_total < coupon.min_spend:
        raise ValidationError("coupon_min_spend_not_met", {"min_spend": coupon.min_spend, "cart_total": cart_total})

    if coupon.min_items and coupon.min_items > 1 and item_count < coupon.min_items:
        raise ValidationError("coupon_min_items_not_met", {"min_items": coupon.min_items, "item_count": item_count})

    if coupon.target_type == CouponTargetType.MEMBER.value and member_level != coupon.target_value:
        raise ValidationError("coupon_member_level_mismatch", {"target_value": coupon.target_value})

    if coupon.target_type == CouponTargetType.PRODUCT.value and not applicable_lines(coupon, lines):
        raise ValidationError("coupon_category_mismatch", {"target_value": coupon.target_value})


def compute_coupon_discount(coupon, lines: Iterable[CartLine], member_level: Optional[str], shipping_fee: int = 0) -> DiscountResult:
    lines = list(lines)
    check_eligibility(coupon, lines, member_level)
    subtotal = sum(line.subtotal for line in applicable_lines(coupon, lines))
    return evaluate_discount(rule_from_coupon(coupon), subtotal, shipping_fee)
