from datetime import datetime
from decimal import Decimal
from storefront import db


class WalletBalance(db.Model):
    """Current stored-value balance for one customer."""
    __tablename__ = 'wallet_balances'

    customer_id = db.Column(db.String(64), primary_key=True)
    balance     = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    updated_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                            onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('balance >= 0', name='check_wallet_non_negative'),
    )

    def __repr__(self):
        return f'<WalletBalance {self.customer_id} ₹{self.balance}>'


class WalletLedgerEntry(db.Model):
    """
    One credit or debit. amount is signed: positive credits, negative debits.
    The ledger is append-only; the balance row is the running total.
    """
    __tablename__ = 'wallet_ledger'

    id           = db.Column(db.Integer, primary_key=True)
    customer_id  = db.Column(db.String(64), nullable=False, index=True)
    amount       = db.Column(db.Numeric(12, 2), nullable=False)
    txn_type     = db.Column(db.String(10), nullable=False)    # credit | debit
    reason       = db.Column(db.String(100), nullable=False)   # e.g. order_redemption
    reference_id = db.Column(db.String(64), nullable=True)     # e.g. order id
    expires_at   = db.Column(db.DateTime, nullable=True)
    created_at   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f'<WalletLedger {self.customer_id} {self.txn_type} {self.amount}>'
