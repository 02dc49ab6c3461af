"""
storefront/catalog/models.py
----------------------------
Product and store-settings rows consumed by checkout.

Product.personalization is a JSON-encoded PersonalizationConfig for
customisable base products, NULL for ordinary catalogue items.
"""
import json
from datetime import datetime
from decimal import Decimal
from storefront import db


class Product(db.Model):
    """A catalogue product or a personalisation base product."""
    __tablename__ = 'products'

    id              = db.Column(db.Integer, primary_key=True)
    name            = db.Column(db.String(200), nullable=False, index=True)
    price           = db.Column(db.Numeric(10, 2), nullable=False)
    gst_percent     = db.Column(db.Integer, nullable=True)    # None = store tax rate
    is_active       = db.Column(db.Boolean, nullable=False, default=True, index=True)
    personalization = db.Column(db.Text, nullable=True)       # JSON string
    created_at      = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('price >= 0', name='check_price_non_negative'),
    )

    @property
    def personalization_config(self):
        """Parsed PersonalizationConfig, or None for ordinary products."""
        from storefront.personalization.calculator import PersonalizationConfig
        if not self.personalization:
            return None
        try:
            data = json.loads(self.personalization)
        except (ValueError, TypeError):
            return None
        if not data.get('enabled', True):
            return None
        return PersonalizationConfig.from_dict(data)

    @property
    def unit_price(self) -> Decimal:
        return Decimal(str(self.price))

    def __repr__(self):
        return f'<Product {self.id} {self.name!r}>'


class StoreSettingsRow(db.Model):
    """Single row of store-wide pricing settings."""
    __tablename__ = 'store_settings'

    id                      = db.Column(db.Integer, primary_key=True)
    currency                = db.Column(db.String(3), nullable=False, default='INR')
    tax_rate                = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal('18'))
    shipping_charge         = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal('100'))
    free_shipping_threshold = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal('5000'))

    def to_settings(self):
        from storefront.checkout.engine import StoreSettings
        return StoreSettings(
            tax_rate=Decimal(str(self.tax_rate)),
            free_shipping_threshold=Decimal(str(self.free_shipping_threshold)),
            shipping_charge=Decimal(str(self.shipping_charge)),
        )

    def __repr__(self):
        return f'<StoreSettings tax={self.tax_rate} ship={self.shipping_charge}>'


def load_store_settings():
    """Store settings for this checkout, falling back to the defaults."""
    from storefront.checkout.engine import StoreSettings
    row = StoreSettingsRow.query.first()
    return row.to_settings() if row else StoreSettings()
