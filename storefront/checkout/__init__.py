"""
storefront/checkout/__init__.py
-------------------------------
Cart, pricing and order-placement blueprint.
URL prefix: /checkout
"""
from flask import Blueprint

checkout = Blueprint('checkout', __name__)

from storefront.checkout import routes  # noqa: E402, F401
