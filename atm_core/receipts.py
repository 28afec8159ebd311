"""
Receipt Generation Module

Fixed-width text receipts for completed transactions and balance inquiries.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional

from .currency import Money, Currency
from .transactions import TransactionType


RECEIPT_WIDTH = 40
RECEIPT_TIME_FORMAT = "%d-%m-%Y %H:%M:%S"


class ReceiptGenerator:
    """
    Builds receipt text for one ATM

    Receipt numbers are sequential per generator, starting at RCP-1000.
    """

    def __init__(
        self,
        bank_name: str,
        bank_tagline: str = "",
        currency: Currency = Currency.INR,
        clock: Optional[Callable[[], datetime]] = None,
        first_number: int = 1000
    ):
        self.bank_name = bank_name
        self.bank_tagline = bank_tagline
        self.currency = currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._next_number = first_number

    def next_receipt_number(self) -> str:
        number = f"RCP-{self._next_number:04d}"
        self._next_number += 1
        return number

    def generate_receipt(
        self,
        masked_account: str,
        account_holder: str,
        transaction_type: TransactionType,
        amount: Decimal,
        balance: Decimal
    ) -> str:
        """Receipt for a completed transaction"""
        lines: List[str] = [""]
        self._rule(lines)
        self._center(lines, self.bank_name)
        if self.bank_tagline:
            self._center(lines, self.bank_tagline)
        self._center(lines, "TRANSACTION RECEIPT")
        self._rule(lines)

        lines.append(f"Receipt #: {self.next_receipt_number()}")
        lines.append(f"Date/Time: {self._now()}")
        lines.append(f"Account: {masked_account}")
        lines.append(f"Name: {account_holder}")
        self._rule(lines)

        lines.append(f"Transaction: {transaction_type.display_name}")
        lines.append(f"Amount: {self._money(amount)}")
        lines.append(f"Balance: {self._money(balance)}")
        self._rule(lines)

        self._center(lines, "Thank You!")
        self._center(lines, "Please keep this receipt")
        self._rule(lines)
        return "\n".join(lines) + "\n"

    def generate_balance_receipt(self, masked_account: str, account_holder: str,
                                 balance: Decimal) -> str:
        """Receipt for a balance inquiry"""
        lines: List[str] = [""]
        self._rule(lines)
        self._center(lines, self.bank_name)
        self._center(lines, "BALANCE INQUIRY")
        self._rule(lines)

        lines.append(f"Date/Time: {self._now()}")
        lines.append(f"Account: {masked_account}")
        lines.append(f"Name: {account_holder}")
        self._rule(lines)

        lines.append("Available Balance:")
        lines.append(f"  {self._money(balance)}")
        self._rule(lines)

        self._center(lines, "Thank You!")
        self._rule(lines)
        return "\n".join(lines) + "\n"

    def _now(self) -> str:
        return self._clock().strftime(RECEIPT_TIME_FORMAT)

    def _money(self, amount: Decimal) -> str:
        return Money(amount, self.currency).to_symbol_string()

    @staticmethod
    def _rule(lines: List[str]) -> None:
        lines.append("=" * RECEIPT_WIDTH)

    @staticmethod
    def _center(lines: List[str], text: str) -> None:
        padding = max(0, (RECEIPT_WIDTH - len(text)) // 2)
        lines.append(" " * padding + text)
