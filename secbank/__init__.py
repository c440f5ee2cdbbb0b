"""
SecBank Core

Deposit-account ledger with a transaction posting engine: deposits,
withdrawals, intrabank transfers and Instapay interbank transfers with
compensating reversal. All money uses Decimal with two fractional digits.
"""

__version__ = "1.0.0"
