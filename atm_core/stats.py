"""
Session Statistics Module

Counters for transactions and login attempts. One collector is handed to each
ATM service at construction; nothing here is global.
"""

from decimal import Decimal
from typing import Any, Dict

from .currency import Money, Currency, ZERO
from .transactions import TransactionType


class SessionStatistics:
    """Tracks transaction and authentication outcomes"""

    def __init__(self, currency: Currency = Currency.INR):
        self.currency = currency
        self.reset()

    def reset(self) -> None:
        """Reset all statistics"""
        self.total_transactions = 0
        self.successful_transactions = 0
        self.failed_transactions = 0
        self.total_deposited = ZERO
        self.total_withdrawn = ZERO
        self.total_transferred = ZERO
        self.transaction_type_count: Dict[TransactionType, int] = {}
        self.login_attempts = 0
        self.failed_login_attempts = 0

    def record_transaction(self, transaction_type: TransactionType,
                           amount: Decimal, success: bool) -> None:
        """Record the outcome of one transaction attempt"""
        self.total_transactions += 1

        if not success:
            self.failed_transactions += 1
            return

        self.successful_transactions += 1
        if transaction_type in (TransactionType.DEPOSIT, TransactionType.INTEREST):
            self.total_deposited += amount
        elif transaction_type == TransactionType.WITHDRAWAL:
            self.total_withdrawn += amount
        elif transaction_type == TransactionType.TRANSFER:
            self.total_transferred += amount

        self.transaction_type_count[transaction_type] = (
            self.transaction_type_count.get(transaction_type, 0) + 1
        )

    def record_login_attempt(self, success: bool) -> None:
        """Record one authentication attempt"""
        self.login_attempts += 1
        if not success:
            self.failed_login_attempts += 1

    @property
    def success_rate(self) -> float:
        """Percentage of successful transactions"""
        if self.total_transactions == 0:
            return 0.0
        return self.successful_transactions * 100.0 / self.total_transactions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_transactions": self.total_transactions,
            "successful_transactions": self.successful_transactions,
            "failed_transactions": self.failed_transactions,
            "success_rate": round(self.success_rate, 2),
            "total_deposited": str(self.total_deposited),
            "total_withdrawn": str(self.total_withdrawn),
            "total_transferred": str(self.total_transferred),
            "transaction_type_count": {
                t.name: count for t, count in self.transaction_type_count.items()
            },
            "login_attempts": self.login_attempts,
            "failed_login_attempts": self.failed_login_attempts,
        }

    def format_report(self) -> str:
        """Human-readable statistics report"""
        def money(value: Decimal) -> str:
            return Money(value, self.currency).to_symbol_string()

        lines = [
            "========== ATM STATISTICS REPORT ==========",
            f"Total Transactions: {self.total_transactions}",
            f"Successful: {self.successful_transactions}",
            f"Failed: {self.failed_transactions}",
            f"Success Rate: {self.success_rate:.2f}%",
            "",
            "Financial Summary:",
            f"Total Deposited: {money(self.total_deposited)}",
            f"Total Withdrawn: {money(self.total_withdrawn)}",
            f"Total Transferred: {money(self.total_transferred)}",
            "",
            "Login Statistics:",
            f"Total Login Attempts: {self.login_attempts}",
            f"Failed Login Attempts: {self.failed_login_attempts}",
            "===========================================",
        ]
        return "\n".join(lines)
