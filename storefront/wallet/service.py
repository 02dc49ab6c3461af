"""
storefront/wallet/service.py
----------------------------
Wallet balance reads and ledgered credits/debits.

process_wallet_transaction() flushes but never commits — the caller owns
the transaction (order submission debits the wallet in the same
transaction that inserts the order).
"""
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app

from storefront import db
from storefront.wallet.models import WalletBalance, WalletLedgerEntry
from storefront.checkout.engine import WalletState, wallet_discount, to_decimal


class WalletError(ValueError):
    """Raised when a wallet transaction cannot be applied."""


def get_wallet_balance(customer_id) -> Decimal:
    """Current balance; zero for customers without a wallet row."""
    if not customer_id:
        return Decimal('0')
    row = db.session.get(WalletBalance, str(customer_id))
    return Decimal(str(row.balance)) if row else Decimal('0')


def eligible_wallet_usage(cart_subtotal, balance) -> Decimal:
    """How much of `balance` the wallet rules allow on a cart of this subtotal."""
    return wallet_discount(to_decimal(cart_subtotal),
                           WalletState(balance=to_decimal(balance), is_applied=True))


def process_wallet_transaction(customer_id, amount, txn_type: str, reason: str,
                               reference_id=None, expiry_days=None) -> Decimal:
    """
    Apply a signed amount to the customer's wallet and log it.

    Args:
        amount:   positive for credit, negative for debit
        txn_type: 'credit' or 'debit'

    Returns:
        the new balance
    """
    if txn_type not in ('credit', 'debit'):
        raise WalletError(f'Unknown wallet transaction type "{txn_type}".')

    amount = to_decimal(amount)
    if txn_type == 'debit' and amount > 0:
        amount = -amount

    customer_id = str(customer_id)
    row = (
        db.session.query(WalletBalance)
        .filter(WalletBalance.customer_id == customer_id)
        .with_for_update()
        .first()
    )
    if row is None:
        row = WalletBalance(customer_id=customer_id, balance=Decimal('0'))
        db.session.add(row)
        db.session.flush()

    current = Decimal(str(row.balance))
    if txn_type == 'debit' and abs(amount) > current:
        raise WalletError('Insufficient wallet balance.')

    row.balance = current + amount

    expires_at = None
    if txn_type == 'credit' and expiry_days:
        expires_at = datetime.utcnow() + timedelta(days=int(expiry_days))

    db.session.add(WalletLedgerEntry(
        customer_id=customer_id,
        amount=amount,
        txn_type=txn_type,
        reason=reason,
        reference_id=str(reference_id) if reference_id is not None else None,
        expires_at=expires_at,
    ))
    db.session.flush()

    current_app.logger.info(
        f"Wallet {txn_type} for {customer_id}: {amount} ({reason}) → balance {row.balance}"
    )
    return Decimal(str(row.balance))


def wallet_history(customer_id):
    """Ledger entries, newest first."""
    return (WalletLedgerEntry.query
            .filter_by(customer_id=str(customer_id))
            .order_by(WalletLedgerEntry.created_at.desc(), WalletLedgerEntry.id.desc())
            .all())
