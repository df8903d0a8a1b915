"""
Lending Tracker

Personal and peer lending tracker: fixed monthly installments (EMI) on a
reducing balance, payment-by-payment repayment tracking and borrower
notifications. All amounts are Decimal; rounding happens only for display.
"""

__version__ = "1.0.0"
