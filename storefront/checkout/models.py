import json
from datetime import datetime
from decimal import Decimal
from storefront import db


class Order(db.Model):
    """
    One placed order with a snapshot of its price breakdown.
    total_amount is what the customer pays (after wallet and coupon).
    """
    __tablename__ = 'orders'

    id                 = db.Column(db.Integer, primary_key=True)
    customer_id        = db.Column(db.String(64), nullable=False, index=True)
    subtotal           = db.Column(db.Numeric(12, 2), nullable=False)
    shipping           = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax                = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    wallet_amount_used = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    coupon_code        = db.Column(db.String(50), nullable=True)
    discount_amount    = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount       = db.Column(db.Numeric(12, 2), nullable=False)
    status             = db.Column(db.String(20), nullable=False, default='pending')   # pending → confirmed → shipped → delivered, or cancelled
    payment_status     = db.Column(db.String(20), nullable=False, default='pending')
    payment_method     = db.Column(db.String(20), nullable=False)
    shipping_address   = db.Column(db.Text, nullable=False, default='{}')   # JSON string
    status_history     = db.Column(db.Text, nullable=False, default='[]')   # JSON string
    created_at         = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    items = db.relationship('OrderItem', backref='order', lazy='select',
                            cascade='all, delete-orphan')

    @property
    def address_dict(self) -> dict:
        try:
            return json.loads(self.shipping_address or '{}')
        except (ValueError, TypeError):
            return {}

    @property
    def history(self) -> list:
        try:
            value = json.loads(self.status_history or '[]')
        except (ValueError, TypeError):
            return []
        return value if isinstance(value, list) else []

    def add_history(self, status: str, updated_by: str) -> None:
        self.status_history = json.dumps(self.history + [{
            'status':     status,
            'timestamp':  datetime.utcnow().isoformat(),
            'updated_by': updated_by,
        }])

    def to_dict(self) -> dict:
        return {
            'id':                 self.id,
            'status':             self.status,
            'payment_method':     self.payment_method,
            'subtotal':           str(self.subtotal),
            'shipping':           str(self.shipping),
            'tax':                str(self.tax),
            'wallet_amount_used': str(self.wallet_amount_used),
            'coupon_code':        self.coupon_code,
            'discount_amount':    str(self.discount_amount),
            'total_amount':       str(self.total_amount),
            'shipping_address':   self.address_dict,
            'items':              [i.to_dict() for i in self.items],
        }

    def __repr__(self):
        return f"<Order {self.id} {self.status} ₹{self.total_amount}>"


class OrderItem(db.Model):
    """
    One line of an order. Price and customisation metadata are
    snapshotted so later product edits don't alter past orders.
    """
    __tablename__ = 'order_items'

    id            = db.Column(db.Integer, primary_key=True)
    order_id      = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    product_id    = db.Column(db.String(64), nullable=False)
    name          = db.Column(db.String(200), nullable=False)
    quantity      = db.Column(db.Integer, nullable=False)
    price         = db.Column(db.Numeric(10, 2), nullable=False)   # unit price
    size          = db.Column(db.String(20), nullable=True)
    is_custom     = db.Column(db.Boolean, nullable=False, default=False)
    line_metadata = db.Column('metadata', db.Text, nullable=True)  # JSON string

    @property
    def line_total(self) -> Decimal:
        return (Decimal(str(self.price)) * self.quantity).quantize(Decimal('0.01'))

    def to_dict(self) -> dict:
        return {
            'product_id': self.product_id,
            'name':       self.name,
            'quantity':   self.quantity,
            'price':      str(self.price),
            'size':       self.size,
            'is_custom':  self.is_custom,
            'line_total': str(self.line_total),
        }

    def __repr__(self):
        return f"<OrderItem order={self.order_id} product={self.product_id} qty={self.quantity}>"
