"""
storefront/checkout/orders.py
-----------------------------
Order submission and cancellation.

submit_order() is the server-side boundary for a priced cart:
  1. Re-check the payment selection (wallet ⟂ COD)
  2. Refuse negative payable totals
  3. Validate the shipping address
  4. Re-check the coupon is still redeemable
  5. Check the wallet can cover the wallet discount
  6. Insert Order + OrderItems
  7. Count the coupon redemption
  8. Debit the wallet
  9. Commit

Steps 6–9 share one transaction; any failure rolls all of them back.
"""
from __future__ import annotations
import json
from datetime import datetime, timedelta

from flask import current_app

from storefront import db
from storefront.checkout.engine import (
    CheckoutBreakdown, WalletState, Coupon, validate_payment_selection,
)
from storefront.checkout.models import Order, OrderItem
from storefront.coupons.service import is_redeemable, increment_usage
from storefront.wallet.service import get_wallet_balance, process_wallet_transaction


REQUIRED_ADDRESS_FIELDS = ('first_name', 'last_name', 'phone', 'address', 'city', 'pincode')


class CheckoutError(ValueError):
    """An order cannot be placed or changed as requested."""


def validate_address(address: dict) -> dict:
    """
    Returns dict of {field_name: error_message} — empty if valid.
    """
    address = address or {}
    if not isinstance(address, dict):
        return {'address': 'Shipping address is required.'}

    errors = {}
    for name in REQUIRED_ADDRESS_FIELDS:
        if not str(address.get(name, '')).strip():
            errors[name] = f'{name.replace("_", " ").capitalize()} is required.'

    pincode = str(address.get('pincode', '')).strip()
    if pincode and not (pincode.isdigit() and len(pincode) == 6):
        errors['pincode'] = 'Pincode must be 6 digits.'
    return errors


def submit_order(customer_id, lines: list, breakdown: CheckoutBreakdown,
                 address: dict, payment_method: str,
                 wallet: WalletState, coupon: Coupon | None = None) -> Order:
    """
    Persist a priced cart as an Order. Raises CheckoutError (or WalletError)
    with a user-facing message when the order is refused.
    """
    if not customer_id:
        raise CheckoutError('You must be logged in to place an order.')
    if not lines:
        raise CheckoutError('Cart is empty. Add products before placing an order.')

    problem = validate_payment_selection(wallet, payment_method)
    if problem:
        raise CheckoutError(problem)

    if not breakdown.is_payable:
        current_app.logger.warning(
            f"Refused order for {customer_id}: negative total {breakdown.final_total}"
        )
        raise CheckoutError('Discounts exceed the order value. Remove the coupon or wallet credit.')

    errors = validate_address(address)
    if errors:
        raise CheckoutError(next(iter(errors.values())))

    if coupon is not None and not is_redeemable(coupon.code):
        raise CheckoutError('Invalid or expired coupon.')

    wallet_amount = breakdown.wallet_discount
    if wallet_amount > 0 and wallet_amount > get_wallet_balance(customer_id):
        raise CheckoutError('Insufficient wallet balance.')

    try:
        order = Order(
            customer_id=str(customer_id),
            subtotal=breakdown.subtotal,
            shipping=breakdown.shipping,
            tax=breakdown.tax,
            wallet_amount_used=wallet_amount,
            coupon_code=coupon.code if coupon else None,
            discount_amount=breakdown.coupon_discount,
            total_amount=breakdown.final_total,
            payment_method=payment_method,
            shipping_address=json.dumps(address),
        )
        order.add_history('pending', 'Customer')
        db.session.add(order)
        db.session.flush()   # assigns order.id without committing

        for line in lines:
            is_custom = line.kind == 'custom'
            meta = line.metadata if is_custom else {}
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                price=line.unit_price,
                size=meta.get('size') if is_custom else line.size,
                is_custom=is_custom,
                line_metadata=json.dumps({
                    **meta,
                    'is_custom': True,
                    'base_price_unit': str(line.base_price_unit),
                    'customization_cost_unit': str(line.customization_cost_unit),
                    'gst_percent': str(line.gst_percent),
                    'print_gst_percent': str(line.print_gst_percent),
                }) if is_custom else None,
            ))

        if coupon is not None:
            increment_usage(coupon.code)

        if wallet_amount > 0:
            process_wallet_transaction(
                customer_id, -wallet_amount, 'debit', 'order_redemption',
                reference_id=order.id,
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"Order {order.id} placed by {customer_id} | Total: {order.total_amount} "
        f"| Wallet: {wallet_amount} | Coupon: {order.coupon_code or '-'}"
    )
    return order


def cancel_order(order_id: int, customer_id, now: datetime | None = None) -> Order:
    """Customer cancellation within the configured window after placing."""
    order = db.session.get(Order, order_id)
    if order is None:
        raise CheckoutError('Order not found.')
    if order.customer_id != str(customer_id):
        raise CheckoutError('Unauthorized access to order.')
    if order.status == 'cancelled':
        raise CheckoutError('Order is already cancelled.')
    if order.status in ('shipped', 'delivered'):
        raise CheckoutError('Cannot cancel shipped or delivered orders.')

    window = timedelta(hours=current_app.config.get('ORDER_CANCEL_WINDOW_HOURS', 6))
    now = now or datetime.utcnow()
    if now - order.created_at > window:
        raise CheckoutError(f'Cancellation window ({int(window.total_seconds() // 3600)} hours) has expired.')

    order.status = 'cancelled'
    order.add_history('cancelled', 'Customer')
    db.session.commit()

    current_app.logger.info(f"Order {order.id} cancelled by {customer_id}")
    return order
