"""
storefront/coupons/service.py
-----------------------------
Coupon validation — the one place a coupon's discount is resolved.

The pricing engine trusts the discount_amount produced here verbatim,
so the amount is fixed at validation time. revalidate_coupon() lets the
cart routes refresh it after the cart changes.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from storefront import db
from storefront.coupons.models import Coupon as CouponRow
from storefront.checkout.engine import Coupon, to_decimal


Q = Decimal('0.01')


class CouponError(ValueError):
    """A coupon can no longer be redeemed."""


@dataclass
class CouponValidation:
    valid:           bool
    discount_amount: Decimal = Decimal('0')
    coupon_code:     str | None = None
    coupon_type:     str | None = None
    message:         str = ''

    def to_coupon(self) -> Coupon | None:
        if not self.valid:
            return None
        return Coupon(code=self.coupon_code, type=self.coupon_type,
                      discount_amount=self.discount_amount)


def _find_active(code: str) -> CouponRow | None:
    return CouponRow.query.filter_by(code=code.strip().upper(), is_active=True).first()


def validate_coupon(code: str, cart_subtotal) -> CouponValidation:
    """
    Resolve a coupon code against the current cart subtotal.

    percentage and fixed_amount discounts are capped at the subtotal;
    free_shipping resolves to a zero amount.
    """
    if not isinstance(code, str) or not code.strip():
        return CouponValidation(valid=False, message='Please enter a coupon code.')

    coupon = _find_active(code)
    if coupon is None:
        return CouponValidation(valid=False, message='Invalid or expired coupon code.')

    if coupon.is_exhausted:
        return CouponValidation(valid=False, message='Coupon usage limit reached.')

    subtotal = to_decimal(cart_subtotal)
    value    = to_decimal(coupon.discount_value)

    if coupon.discount_type == 'percentage':
        discount = min(subtotal * value / Decimal('100'), subtotal)
    elif coupon.discount_type == 'fixed_amount':
        discount = min(value, subtotal)
    elif coupon.discount_type == 'free_shipping':
        discount = Decimal('0')
    else:
        current_app.logger.error(f"Coupon {coupon.code} has unknown type {coupon.discount_type!r}")
        return CouponValidation(valid=False, message='Invalid or expired coupon code.')

    return CouponValidation(
        valid=True,
        discount_amount=max(discount, Decimal('0')).quantize(Q, rounding=ROUND_HALF_UP),
        coupon_code=coupon.code,
        coupon_type=coupon.discount_type,
        message=('Free Shipping Applied!' if coupon.discount_type == 'free_shipping'
                 else 'Coupon applied successfully!'),
    )


def revalidate_coupon(coupon: Coupon | None, cart_subtotal) -> Coupon | None:
    """
    Re-run validation for an applied coupon after the cart changed.
    Returns the refreshed coupon, or None if it no longer applies.
    """
    if coupon is None:
        return None
    result = validate_coupon(coupon.code, cart_subtotal)
    if not result.valid:
        current_app.logger.info(f"Coupon {coupon.code} dropped on revalidation: {result.message}")
    return result.to_coupon()


def is_redeemable(code: str) -> bool:
    """Server-side check at order time: active and under its usage limit."""
    coupon = _find_active(code)
    return coupon is not None and not coupon.is_exhausted


def increment_usage(code: str) -> None:
    """
    Count one redemption. Must run inside the order's transaction; the
    limit is checked again under the row lock so concurrent orders cannot
    both take the last use.
    """
    coupon = (
        db.session.query(CouponRow)
        .filter(CouponRow.code == code.strip().upper())
        .with_for_update()
        .first()
    )
    if coupon is None or not coupon.is_active or coupon.is_exhausted:
        raise CouponError('Invalid or expired coupon.')
    coupon.usage_count += 1
    db.session.flush()
