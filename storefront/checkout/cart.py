"""
storefront/checkout/cart.py
---------------------------
Stateless helpers for the session-based shopping cart and checkout choices.

Cart structure stored in Flask session under key 'cart':
{
    "<item_id>": {
        "kind":        "standard" | "custom",
        "product_id":  str,
        "name":        str,
        "price":       str,   ← unit price, stored as string to survive JSON
        "quantity":    int,
        "size":        str | None,
        "gst_percent": str | None,
        # custom items only:
        "base_price_unit":         str,
        "customization_cost_unit": str,
        "print_gst_percent":       str,
        "metadata":                dict,
    },
    ...
}

Standard items are keyed "<product_id>-<size>" and merge on re-add.
Every custom configuration gets its own key, so two different designs of
the same base product never merge.

All money values are kept as strings in the session and converted to
Decimal only when building engine lines — avoids float contamination.
"""
from __future__ import annotations
import uuid
from decimal import Decimal
from flask import session

from storefront.checkout.engine import StandardLine, CustomLine, Coupon, cart_subtotal
from storefront.coupons.service import revalidate_coupon


CART_KEY    = 'cart'
COUPON_KEY  = 'applied_coupon'
WALLET_KEY  = 'wallet_applied'
PAYMENT_KEY = 'payment_method'


# ── Read ──────────────────────────────────────────────────────────

def get_cart() -> dict:
    """Return the current cart dict (may be empty)."""
    return session.get(CART_KEY, {})


def cart_lines(cart: dict) -> list:
    """Convert stored cart items into engine lines."""
    lines = []
    for item in cart.values():
        if item.get('kind') == 'custom':
            lines.append(CustomLine(
                product_id=item['product_id'],
                name=item['name'],
                unit_price=Decimal(item['price']),
                quantity=int(item['quantity']),
                base_price_unit=Decimal(item['base_price_unit']),
                customization_cost_unit=Decimal(item['customization_cost_unit']),
                gst_percent=Decimal(item['gst_percent']),
                print_gst_percent=Decimal(item['print_gst_percent']),
                metadata=item.get('metadata') or {},
            ))
        else:
            gst = item.get('gst_percent')
            lines.append(StandardLine(
                product_id=item['product_id'],
                name=item['name'],
                unit_price=Decimal(item['price']),
                quantity=int(item['quantity']),
                gst_percent=Decimal(gst) if gst is not None else None,
                size=item.get('size'),
            ))
    return lines


# ── Write ─────────────────────────────────────────────────────────

def _save(cart: dict) -> None:
    session[CART_KEY] = cart
    session.modified  = True


def add_to_cart(product, size: str = 'OS', quantity: int = 1) -> str:
    """
    Add `quantity` units of a catalogue product.
    If the same product+size is already present, increments its quantity.
    """
    cart = get_cart()
    key  = f'{product.id}-{size}'

    if key in cart:
        cart[key]['quantity'] += quantity
    else:
        cart[key] = {
            'kind':        'standard',
            'product_id':  str(product.id),
            'name':        product.name,
            'price':       str(product.price),   # Decimal → str for JSON safety
            'quantity':    quantity,
            'size':        size,
            'gst_percent': str(product.gst_percent) if product.gst_percent is not None else None,
        }

    _save(cart)
    return key


def add_custom_line(line: CustomLine, size: str = 'OS') -> str:
    """Add a personalised line under a fresh key."""
    cart = get_cart()
    key  = f'{line.product_id}-custom-{uuid.uuid4().hex[:12]}'

    cart[key] = {
        'kind':                    'custom',
        'product_id':              line.product_id,
        'name':                    line.name,
        'price':                   str(line.unit_price),
        'quantity':                line.quantity,
        'size':                    size,
        'base_price_unit':         str(line.base_price_unit),
        'customization_cost_unit': str(line.customization_cost_unit),
        'gst_percent':             str(line.gst_percent),
        'print_gst_percent':       str(line.print_gst_percent),
        'metadata':                line.metadata,
    }

    _save(cart)
    return key


def update_quantity(item_id: str, quantity: int) -> None:
    """Set a line's quantity; anything below 1 removes the line."""
    if quantity < 1:
        remove_from_cart(item_id)
        return
    cart = get_cart()
    if item_id in cart:
        cart[item_id]['quantity'] = quantity
        _save(cart)


def remove_from_cart(item_id: str) -> None:
    """Remove a line entirely from the cart."""
    cart = get_cart()
    cart.pop(item_id, None)
    _save(cart)


def clear_cart() -> None:
    """Empty the cart and checkout choices after a placed order."""
    for key in (CART_KEY, COUPON_KEY, WALLET_KEY):
        session.pop(key, None)
    session.modified = True


# ── Checkout choices ──────────────────────────────────────────────

def get_applied_coupon() -> Coupon | None:
    data = session.get(COUPON_KEY)
    if not data:
        return None
    return Coupon(code=data['code'], type=data['type'],
                  discount_amount=Decimal(data['discount_amount']))


def set_applied_coupon(coupon: Coupon | None) -> None:
    if coupon is None:
        session.pop(COUPON_KEY, None)
    else:
        session[COUPON_KEY] = {
            'code':            coupon.code,
            'type':            coupon.type,
            'discount_amount': str(coupon.discount_amount),
        }
    session.modified = True


def refresh_applied_coupon() -> None:
    """
    Coupon discounts are fixed at validation time; call after every cart
    mutation so the stored amount follows the new subtotal.
    """
    coupon = get_applied_coupon()
    if coupon is not None:
        subtotal = cart_subtotal(cart_lines(get_cart()))
        set_applied_coupon(revalidate_coupon(coupon, subtotal))


def is_wallet_applied() -> bool:
    return bool(session.get(WALLET_KEY, False))


def set_wallet_applied(applied: bool) -> None:
    session[WALLET_KEY] = bool(applied)
    session.modified = True


def get_payment_method() -> str:
    return session.get(PAYMENT_KEY, 'upi')


def set_payment_method(method: str) -> None:
    session[PAYMENT_KEY] = method
    session.modified = True
