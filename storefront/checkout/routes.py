from flask import request, session, jsonify, current_app

from storefront import db
from storefront.auth.decorators import customer_required
from storefront.catalog.models import Product, load_store_settings
from storefront.checkout import checkout
from storefront.checkout.cart import (
    get_cart, cart_lines, add_to_cart, update_quantity, remove_from_cart,
    clear_cart, get_applied_coupon, set_applied_coupon, refresh_applied_coupon,
    is_wallet_applied, set_wallet_applied, get_payment_method, set_payment_method,
)
from storefront.checkout.engine import (
    WalletState, PAYMENT_METHODS, cart_subtotal, compute_totals,
    validate_payment_selection,
)
from storefront.checkout.orders import submit_order, cancel_order
from storefront.coupons.service import validate_coupon
from storefront.wallet.service import get_wallet_balance


# ── Helpers ───────────────────────────────────────────────────────

def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return request.form.to_dict()
    return data if isinstance(data, dict) else {}


def _current_wallet() -> WalletState:
    return WalletState(
        balance=get_wallet_balance(session.get('customer_id')),
        is_applied=is_wallet_applied(),
    )


def _quote():
    """Price the session cart with the session's checkout choices."""
    lines     = cart_lines(get_cart())
    breakdown = compute_totals(lines, load_store_settings(), _current_wallet(), get_applied_coupon())
    return lines, breakdown


def _cart_response(error=None, status=200, **extra):
    _, breakdown = _quote()
    coupon = get_applied_coupon()
    body = {
        'items':          get_cart(),
        'totals':         breakdown.as_dict(),
        'coupon':         {'code': coupon.code, 'type': coupon.type} if coupon else None,
        'wallet_applied': is_wallet_applied(),
        'payment_method': get_payment_method(),
        'error':          error,
    }
    body.update(extra)
    return jsonify(body), status


# ── CART ──────────────────────────────────────────────────────────

@checkout.route('/cart')
def cart():
    return _cart_response()


@checkout.route('/cart/add', methods=['POST'])
def add_item():
    """Add a catalogue product. Personalised products go through /personalise."""
    data = _payload()
    try:
        product_id = int(data.get('product_id'))
        quantity   = int(data.get('quantity', 1))
    except (TypeError, ValueError):
        return _cart_response('Please choose a product.', 400)

    product = Product.query.filter_by(id=product_id, is_active=True).first()
    if product is None:
        return _cart_response(f'No product found for id {product_id}.', 404)
    if product.personalization_config is not None:
        return _cart_response(f'"{product.name}" must be personalised before adding to cart.', 400)
    if quantity < 1:
        return _cart_response('Quantity must be at least 1.', 400)

    add_to_cart(product, data.get('size') or 'OS', quantity)
    refresh_applied_coupon()
    return _cart_response()


@checkout.route('/cart/update', methods=['POST'])
def update_item():
    data = _payload()
    try:
        quantity = int(data.get('quantity'))
    except (TypeError, ValueError):
        return _cart_response('Quantity must be a whole number.', 400)

    update_quantity(str(data.get('item_id', '')), quantity)
    refresh_applied_coupon()
    return _cart_response()


@checkout.route('/cart/remove', methods=['POST'])
def remove_item():
    remove_from_cart(str(_payload().get('item_id', '')))
    refresh_applied_coupon()
    return _cart_response()


# ── COUPON ────────────────────────────────────────────────────────

@checkout.route('/coupon', methods=['POST'])
def apply_coupon():
    subtotal = cart_subtotal(cart_lines(get_cart()))
    result   = validate_coupon(_payload().get('code', ''), subtotal)

    if not result.valid:
        return _cart_response(result.message, 400)

    set_applied_coupon(result.to_coupon())
    current_app.logger.info(f"Coupon {result.coupon_code} applied: -{result.discount_amount}")
    return _cart_response(message=result.message)


@checkout.route('/coupon', methods=['DELETE'])
def remove_coupon():
    set_applied_coupon(None)
    return _cart_response()


# ── WALLET & PAYMENT ──────────────────────────────────────────────

@checkout.route('/wallet', methods=['POST'])
@customer_required
def toggle_wallet():
    apply = str(_payload().get('apply', '')).lower() in ('1', 'true', 'on', 'yes')
    wallet = WalletState(balance=get_wallet_balance(session['customer_id']), is_applied=apply)

    problem = validate_payment_selection(wallet, get_payment_method())
    if problem:
        return _cart_response(problem, 400)

    set_wallet_applied(apply)
    return _cart_response()


@checkout.route('/payment-method', methods=['POST'])
def choose_payment_method():
    method = _payload().get('method', '')
    if method not in PAYMENT_METHODS:
        return _cart_response(f'Unsupported payment method "{method}".', 400)

    # COD switches the wallet off rather than refusing the choice
    wallet_cleared = method == 'cod' and is_wallet_applied()
    if wallet_cleared:
        set_wallet_applied(False)

    set_payment_method(method)
    return _cart_response(wallet_cleared=wallet_cleared)


@checkout.route('/quote')
def quote():
    _, breakdown = _quote()
    return jsonify(breakdown.as_dict())


# ── PLACE ORDER ───────────────────────────────────────────────────

@checkout.route('/place-order', methods=['POST'])
@customer_required
def place_order():
    customer_id = session['customer_id']
    lines, breakdown = _quote()

    try:
        order = submit_order(
            customer_id, lines, breakdown,
            address=_payload().get('address') or {},
            payment_method=get_payment_method(),
            wallet=_current_wallet(),
            coupon=get_applied_coupon(),
        )
    except ValueError as exc:
        db.session.rollback()
        current_app.logger.warning(f"Order refused for {customer_id}: {exc}")
        return jsonify(error=str(exc)), 400

    clear_cart()
    return jsonify(order=order.to_dict()), 201


@checkout.route('/orders/<int:order_id>/cancel', methods=['POST'])
@customer_required
def cancel(order_id):
    try:
        order = cancel_order(order_id, session['customer_id'])
    except ValueError as exc:
        db.session.rollback()
        current_app.logger.warning(f"Cancel refused for order {order_id}: {exc}")
        return jsonify(error=str(exc)), 400
    return jsonify(order=order.to_dict())
