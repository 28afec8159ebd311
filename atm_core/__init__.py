"""
ATM Core

Single-account ATM session simulator: PIN authentication with lockout,
daily caps, fees, interest and receipts, using Decimal money throughout.
"""

__version__ = "1.0.0"
