"""
storefront/coupons/models.py
----------------------------
Coupon codes.

discount_value meaning depends on discount_type:
  percentage     → percent off the cart subtotal (e.g. 10)
  fixed_amount   → ₹ off the cart subtotal (e.g. 200)
  free_shipping  → ignored; shipping is waived by the pricing engine
"""
from datetime import datetime
from storefront import db


class Coupon(db.Model):
    __tablename__ = 'coupons'

    id             = db.Column(db.Integer, primary_key=True)
    code           = db.Column(db.String(50), unique=True, nullable=False, index=True)   # stored upper case
    discount_type  = db.Column(db.String(20), nullable=False)
    discount_value = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    usage_limit    = db.Column(db.Integer, nullable=True)     # None = unlimited
    usage_count    = db.Column(db.Integer, nullable=False, default=0)
    is_active      = db.Column(db.Boolean, nullable=False, default=True)
    created_at     = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def __repr__(self):
        return f'<Coupon {self.code!r} {self.discount_type}>'
