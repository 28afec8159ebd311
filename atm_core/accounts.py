"""
Account Module

The single in-memory account behind an ATM session: balance, PIN and an
append-only transaction history. The account enforces its own arithmetic
invariant (the balance never goes negative) and nothing else; session policy
such as lockout and daily caps belongs to the ATM service.
"""

from collections import deque
from decimal import Decimal
from datetime import datetime, timezone
from typing import Deque, List, Optional, Tuple
from enum import Enum
import re

from .currency import Money, Currency, AmountLike, ZERO, to_amount, exact_sum
from .transactions import TransactionKind, TransactionRecord, mask_account_number


PIN_LENGTH = 4
PIN_PATTERN = re.compile(r"\d{%d}" % PIN_LENGTH, re.ASCII)


class AccountType(Enum):
    """Account products offered at the ATM"""
    SAVINGS = "savings"    # Earns interest
    CURRENT = "current"    # No interest


def is_valid_pin(pin) -> bool:
    """Check that a PIN is exactly four ASCII digits"""
    return isinstance(pin, str) and PIN_PATTERN.fullmatch(pin) is not None


class Account:
    """
    Bank account with PIN and transaction history

    Identifiers are fixed at construction. The balance only changes through
    deposit, withdraw, transfer, receive_transfer and credit_interest, each of
    which appends exactly one record on success.
    """

    def __init__(
        self,
        account_number: str,
        account_holder_name: str,
        balance: AmountLike,
        pin: str,
        account_type: AccountType = AccountType.SAVINGS,
        currency: Currency = Currency.INR,
        history_limit: Optional[int] = None
    ):
        if not isinstance(account_number, str) or not account_number.strip():
            raise ValueError("Account number must be a non-empty string")

        if not isinstance(account_holder_name, str) or not account_holder_name.strip():
            raise ValueError("Account holder name must be a non-empty string")

        opening_balance = to_amount(balance, currency)
        if opening_balance < ZERO:
            raise ValueError("Initial balance cannot be negative")

        if not is_valid_pin(pin):
            raise ValueError(f"PIN must be exactly {PIN_LENGTH} digits")

        if history_limit is not None and history_limit <= 0:
            raise ValueError("History limit must be positive")

        self._account_number = account_number
        self._account_holder_name = account_holder_name
        self._account_type = account_type
        self._currency = currency
        self._balance = opening_balance
        self._pin = pin
        self._history: Deque[TransactionRecord] = deque(maxlen=history_limit)
        self.created_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return (f"Account(number={self.get_masked_account_number()!r}, "
                f"holder={self._account_holder_name!r}, "
                f"balance={Money(self._balance, self._currency).to_string()!r})")

    @property
    def account_number(self) -> str:
        return self._account_number

    @property
    def account_holder_name(self) -> str:
        return self._account_holder_name

    @property
    def account_type(self) -> AccountType:
        return self._account_type

    @property
    def currency(self) -> Currency:
        return self._currency

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def history_limit(self) -> Optional[int]:
        return self._history.maxlen

    @property
    def transaction_history(self) -> Tuple[TransactionRecord, ...]:
        """Read-only snapshot of the history, oldest first"""
        return tuple(self._history)

    def get_balance_money(self) -> Money:
        """Get the balance as Money in the account currency"""
        return Money(self._balance, self._currency)

    def validate_pin(self, input_pin: str) -> bool:
        """Exact match against the stored PIN; no attempt counting here"""
        return isinstance(input_pin, str) and input_pin == self._pin

    def deposit(self, amount: AmountLike, description: Optional[str] = None) -> None:
        """
        Add funds to the account

        Callers are expected to reject non-positive amounts first; reaching
        this point with one is a programming error.

        Raises:
            ValueError: If amount is malformed, not positive, or the new
                balance cannot be held exactly
        """
        value = self._positive_amount(amount)
        self._balance = exact_sum(self._balance, value)
        self._record(TransactionKind.DEPOSIT, value, description=description)

    def withdraw(self, amount: AmountLike) -> bool:
        """
        Take funds out of the account

        Returns:
            True on success, False if the amount is not positive or exceeds
            the balance (balance and history untouched)
        """
        value = self._debit_amount(amount)
        if value is None:
            return False

        self._balance -= value
        self._record(TransactionKind.WITHDRAWAL, value)
        return True

    def transfer(self, amount: AmountLike, target_account_id: str) -> bool:
        """
        Send funds to another account number

        The target is not looked up; this is a single-account simulation.
        """
        value = self._debit_amount(amount)
        if value is None:
            return False

        self._balance -= value
        self._record(
            TransactionKind.TRANSFER_OUT, value,
            counterparty=mask_account_number(target_account_id)
        )
        return True

    def receive_transfer(self, amount: AmountLike, source_account_id: str) -> None:
        """Credit an incoming transfer"""
        value = self._positive_amount(amount)
        self._balance = exact_sum(self._balance, value)
        self._record(
            TransactionKind.TRANSFER_IN, value,
            counterparty=mask_account_number(source_account_id)
        )

    def credit_interest(self, amount: AmountLike) -> None:
        """Credit interest earned on the balance"""
        value = self._positive_amount(amount)
        self._balance = exact_sum(self._balance, value)
        self._record(TransactionKind.INTEREST_CREDIT, value)

    def change_pin(self, old_pin: str, new_pin: str) -> bool:
        """
        Replace the PIN

        Succeeds only if old_pin validates, new_pin is exactly four digits
        and differs from old_pin. On failure the stored PIN is unchanged.
        """
        if not self.validate_pin(old_pin):
            return False
        if not is_valid_pin(new_pin):
            return False
        if new_pin == old_pin:
            return False

        self._pin = new_pin
        return True

    def get_last_transactions(self, n: int) -> List[TransactionRecord]:
        """Most recent n records in chronological order"""
        if n <= 0:
            return []
        return list(self._history)[-n:]

    def get_masked_account_number(self) -> str:
        """Display-safe account number"""
        return mask_account_number(self._account_number)

    def _positive_amount(self, amount: AmountLike) -> Decimal:
        value = to_amount(amount, self._currency)
        if value <= ZERO:
            raise ValueError(f"Amount must be positive: {value}")
        return value

    def _debit_amount(self, amount: AmountLike) -> Optional[Decimal]:
        """Validated debit amount, or None when the debit must be refused"""
        try:
            value = to_amount(amount, self._currency)
        except ValueError:
            return None

        if value <= ZERO or value > self._balance:
            return None
        return value

    def _record(
        self,
        kind: TransactionKind,
        amount: Decimal,
        counterparty: Optional[str] = None,
        description: Optional[str] = None
    ) -> None:
        self._history.append(TransactionRecord(
            kind=kind,
            amount=amount,
            balance_after=self._balance,
            timestamp=datetime.now(timezone.utc),
            counterparty=counterparty,
            description=description or ""
        ))
