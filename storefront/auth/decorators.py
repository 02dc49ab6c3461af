"""
storefront/auth/decorators.py
-----------------------------
Route protection for customer-only actions.
Usage:
    from storefront.auth.decorators import customer_required

    @checkout.route('/place-order', methods=['POST'])
    @customer_required
    def place_order():
        ...
"""
from functools import wraps
from flask import session, abort


def customer_required(f):
    """
    Reject with 401 unless the session carries a 'customer_id'.
    Signing customers in is handled by the hosted auth service.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if not session.get('customer_id'):
            abort(401)
        return f(*args, **kwargs)
    return decorated
