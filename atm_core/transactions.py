"""
Transaction Records Module

Structured, immutable records for the account's transaction history and the
operation types used for fees, statistics and receipts. Text formatting of
records lives in the statement renderers, not here.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum


MASK_PREFIX = "XXXXX"


class TransactionType(Enum):
    """Operations a session can perform"""
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"
    TRANSFER = "Transfer"
    BALANCE_INQUIRY = "Balance Inquiry"
    MINI_STATEMENT = "Mini Statement"
    PIN_CHANGE = "PIN Change"
    INTEREST = "Interest"

    @property
    def display_name(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class TransactionKind(Enum):
    """Kinds of entries in the transaction history"""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER_OUT = "TRANSFER OUT"
    TRANSFER_IN = "TRANSFER IN"
    INTEREST_CREDIT = "INTEREST CREDIT"

    @property
    def is_credit(self) -> bool:
        """Check if this kind increases the balance"""
        return self in (TransactionKind.DEPOSIT, TransactionKind.TRANSFER_IN,
                        TransactionKind.INTEREST_CREDIT)


@dataclass(frozen=True)
class TransactionRecord:
    """
    One entry in the append-only transaction history.
    Amounts are cent-precision Decimals; counterparty is already masked.
    """
    kind: TransactionKind
    amount: Decimal
    balance_after: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    counterparty: Optional[str] = None
    description: str = ""

    def __post_init__(self):
        if not self.description:
            object.__setattr__(self, 'description', self._default_description())

    def _default_description(self) -> str:
        if self.kind == TransactionKind.TRANSFER_OUT and self.counterparty:
            return f"TRANSFER OUT to {self.counterparty}"
        if self.kind == TransactionKind.TRANSFER_IN and self.counterparty:
            return f"TRANSFER IN from {self.counterparty}"
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary"""
        return {
            'kind': self.kind.value,
            'amount': str(self.amount),
            'balance_after': str(self.balance_after),
            'timestamp': self.timestamp.isoformat(),
            'counterparty': self.counterparty,
            'description': self.description,
        }


def mask_account_number(account_number: Optional[str], prefix: str = MASK_PREFIX) -> str:
    """
    Mask an account number for display, keeping only the last 4 characters.
    Anything shorter than 4 characters collapses to the bare prefix.
    """
    if not account_number or len(account_number) < 4:
        return prefix
    return prefix + account_number[-4:]
