"""
storefront/personalization/__init__.py
--------------------------------------
Product personalisation blueprint (configurator pricing, artwork upload).
URL prefix: /personalise
"""
from flask import Blueprint

personalization = Blueprint('personalization', __name__)

from storefront.personalization import routes  # noqa: E402, F401
