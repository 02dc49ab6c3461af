"""
storefront/wallet
-----------------
Stored-value wallet: balances, ledger and transactions.
"""
