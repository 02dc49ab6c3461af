"""
storefront/coupons
------------------
Coupon codes and their validation service.
"""
