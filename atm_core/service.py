"""
ATM Service Module

Session-level policy on top of a single Account: PIN authentication with a
sticky lockout, daily transaction and withdrawal caps, card status gating,
session timeout, fees, interest and receipts.

Every user-facing rejection is reported as a plain False. The service does
not say which check failed; callers that want a friendlier message re-run
the relevant predicate themselves. Only construction errors raise.
"""

from decimal import Decimal
from datetime import datetime, timezone, timedelta
from typing import Callable, List, Optional, Tuple
from enum import Enum
import logging
import uuid

from .accounts import Account, AccountType
from .config import ATMConfig
from .currency import AmountLike, ZERO, to_amount, quantize_amount
from .logging_config import get_logger, log_action
from .receipts import ReceiptGenerator
from .statements import format_record
from .stats import SessionStatistics
from .transactions import TransactionRecord, TransactionType


class CardStatus(Enum):
    """Card states that gate authentication"""
    ACTIVE = "active"
    BLOCKED = "blocked"
    EXPIRED = "expired"


class ATMService:
    """
    One ATM session bound to one account

    Collaborators (configuration, statistics, logger, clock) are passed in at
    construction so that independent sessions never share state.
    """

    def __init__(
        self,
        account: Account,
        config: Optional[ATMConfig] = None,
        stats: Optional[SessionStatistics] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        if account is None:
            raise ValueError("ATM service requires an account")

        self.account = account
        self.config = config or ATMConfig()
        self.stats = stats or SessionStatistics(account.currency)
        self.logger = logger or get_logger("atm.service")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.session_id = f"SES-{uuid.uuid4().hex[:12].upper()}"
        self.session_start_time = self._clock()

        self.daily_withdrawn_amount = ZERO
        self.daily_transaction_count = 0
        self.failed_login_attempts = 0
        self.is_account_frozen = False
        self.card_status = CardStatus.ACTIVE
        self.is_authenticated = False

        self.receipts = ReceiptGenerator(
            bank_name=self.config.bank_name,
            bank_tagline=self.config.bank_tagline,
            currency=account.currency,
            clock=self._clock
        )

        log_action(
            self.logger, "info", "Session started",
            account=self.get_masked_account_number(),
            action="session_start",
            session_id=self.session_id
        )

    # Authentication

    def authenticate(self, pin: str) -> bool:
        """
        Check a PIN against the account

        Once the failure count reaches the configured maximum the account is
        frozen and every later attempt returns False without looking at the
        PIN, until an administrative reset.
        """
        if self.is_account_frozen or self.card_status != CardStatus.ACTIVE:
            self._record_login(False)
            return False

        if self.account.validate_pin(pin):
            self.failed_login_attempts = 0
            self.is_authenticated = True
            self._record_login(True)
            return True

        self.failed_login_attempts += 1
        self.is_authenticated = False
        if self.failed_login_attempts >= self.config.max_failed_attempts:
            self.is_account_frozen = True
            log_action(
                self.logger, "warning", "Account frozen after failed PIN attempts",
                account=self.get_masked_account_number(),
                action="account_frozen",
                session_id=self.session_id
            )

        self._record_login(False)
        return False

    def reset_failed_login_attempts(self) -> None:
        """Administrative reset of the failure counter"""
        self.failed_login_attempts = 0

    def set_account_frozen(self, frozen: bool) -> None:
        """Administrative freeze / unfreeze"""
        self.is_account_frozen = frozen
        if frozen:
            self.is_authenticated = False

    def reset_lockout(self) -> None:
        """Clear both the failure counter and the frozen flag"""
        self.reset_failed_login_attempts()
        self.set_account_frozen(False)
        log_action(
            self.logger, "info", "Lockout reset",
            account=self.get_masked_account_number(),
            action="lockout_reset",
            session_id=self.session_id
        )

    def set_card_status(self, status: CardStatus) -> None:
        self.card_status = status
        if status != CardStatus.ACTIVE:
            self.is_authenticated = False

    def end_session(self) -> None:
        """Drop authentication for this session"""
        self.is_authenticated = False
        log_action(
            self.logger, "info", "Session ended",
            account=self.get_masked_account_number(),
            action="session_end",
            session_id=self.session_id
        )

    # Queries

    def check_balance(self) -> Decimal:
        return self.account.balance

    def get_account_holder_name(self) -> str:
        return self.account.account_holder_name

    def get_masked_account_number(self) -> str:
        return self.account.get_masked_account_number()

    def get_transaction_history(self) -> Tuple[TransactionRecord, ...]:
        """Read-only view of the account history for exporters"""
        return self.account.transaction_history

    def get_mini_statement(self, count: Optional[int] = None) -> List[str]:
        """Formatted lines for the most recent transactions, oldest first"""
        if count is None:
            count = self.config.mini_statement_count
        records = self.account.get_last_transactions(count)
        return [format_record(record, self.account.currency) for record in records]

    def get_remaining_daily_withdrawal_limit(self) -> Decimal:
        remaining = self.config.daily_withdrawal_limit - self.daily_withdrawn_amount
        return max(remaining, ZERO)

    def is_daily_transaction_limit_reached(self) -> bool:
        return self.daily_transaction_count >= self.config.max_daily_transactions

    def exceeds_daily_withdrawal_limit(self, amount: AmountLike) -> bool:
        value = self._parse_amount(amount)
        if value is None:
            return False
        return self.daily_withdrawn_amount + value > self.config.daily_withdrawal_limit

    # Transactions

    def deposit_money(self, amount: AmountLike) -> bool:
        """Deposit a positive amount, subject to the daily transaction cap"""
        value = self._parse_amount(amount)
        if value is None or value <= ZERO or self.is_daily_transaction_limit_reached():
            return self._finish(TransactionType.DEPOSIT, value, False)

        try:
            self.account.deposit(value)
        except ValueError:
            return self._finish(TransactionType.DEPOSIT, value, False)
        self.daily_transaction_count += 1
        return self._finish(TransactionType.DEPOSIT, value, True)

    def withdraw_money(self, amount: AmountLike) -> bool:
        """
        Withdraw a positive amount within the daily caps

        The daily quota and counter only move when the account actually
        pays out; an insufficient-funds refusal consumes nothing.
        """
        value = self._parse_amount(amount)
        if value is None or value <= ZERO:
            return self._finish(TransactionType.WITHDRAWAL, value, False)

        if self.is_daily_transaction_limit_reached() or self.exceeds_daily_withdrawal_limit(value):
            return self._finish(TransactionType.WITHDRAWAL, value, False)

        if self.config.enforce_minimum_balance and not self.can_withdraw_with_min_balance(value):
            return self._finish(TransactionType.WITHDRAWAL, value, False)

        if not self.account.withdraw(value):
            return self._finish(TransactionType.WITHDRAWAL, value, False)

        self.daily_withdrawn_amount += value
        self.daily_transaction_count += 1
        return self._finish(TransactionType.WITHDRAWAL, value, True)

    def transfer_money(self, amount: AmountLike, target_account: str) -> bool:
        """
        Transfer to another account number

        Daily caps are not applied unless apply_daily_limits_to_transfers is
        configured, in which case a transfer counts as a withdrawal for both
        the count and the amount cap.
        """
        value = self._parse_amount(amount)
        if value is None or value <= ZERO:
            return self._finish(TransactionType.TRANSFER, value, False)

        if not isinstance(target_account, str) or not target_account.strip():
            return self._finish(TransactionType.TRANSFER, value, False)

        capped = self.config.apply_daily_limits_to_transfers
        if capped and (self.is_daily_transaction_limit_reached()
                       or self.exceeds_daily_withdrawal_limit(value)):
            return self._finish(TransactionType.TRANSFER, value, False)

        if not self.account.transfer(value, target_account.strip()):
            return self._finish(TransactionType.TRANSFER, value, False)

        if capped:
            self.daily_withdrawn_amount += value
            self.daily_transaction_count += 1
        return self._finish(TransactionType.TRANSFER, value, True)

    def change_pin(self, old_pin: str, new_pin: str) -> bool:
        success = self.account.change_pin(old_pin, new_pin)
        log_action(
            self.logger, "info", "PIN change",
            account=self.get_masked_account_number(),
            action="pin_change",
            status="SUCCESS" if success else "FAILED",
            session_id=self.session_id
        )
        return success

    def reset_daily_limits(self) -> None:
        """Daily rollover; triggered from outside the session"""
        self.daily_withdrawn_amount = ZERO
        self.daily_transaction_count = 0

    # Policy calculations

    def can_withdraw_with_min_balance(self, amount: AmountLike) -> bool:
        """Check that the balance stays at or above the required minimum"""
        value = self._parse_amount(amount)
        if value is None:
            return False
        return self.account.balance - value >= self.config.minimum_balance_required

    def calculate_transaction_fee(self, transaction_type: TransactionType,
                                  amount: AmountLike) -> Decimal:
        """Percentage fee on large transfers; every other operation is free"""
        value = self._parse_amount(amount)
        if value is None or transaction_type != TransactionType.TRANSFER:
            return ZERO
        if value > self.config.transfer_fee_threshold:
            return quantize_amount(value * self.config.transfer_fee_rate, self.account.currency)
        return ZERO

    def calculate_interest(self) -> Decimal:
        """Flat interest on the current balance for savings accounts"""
        if self.account.account_type != AccountType.SAVINGS:
            return ZERO
        return quantize_amount(self.account.balance * self.config.savings_interest_rate,
                               self.account.currency)

    def apply_interest(self) -> Decimal:
        """Credit the calculated interest; returns the amount credited"""
        interest = self.calculate_interest()
        if interest <= ZERO:
            return ZERO

        try:
            self.account.credit_interest(interest)
        except ValueError:
            self._finish(TransactionType.INTEREST, interest, False)
            return ZERO
        self._finish(TransactionType.INTEREST, interest, True)
        return interest

    # Session timeout

    def is_session_timed_out(self) -> bool:
        elapsed = self._clock() - self.session_start_time
        return elapsed >= timedelta(minutes=self.config.session_timeout_minutes)

    def reset_session_timeout(self) -> None:
        self.session_start_time = self._clock()

    # Receipts

    def generate_receipt(self, transaction_type: TransactionType, amount: AmountLike) -> str:
        return self.receipts.generate_receipt(
            masked_account=self.get_masked_account_number(),
            account_holder=self.get_account_holder_name(),
            transaction_type=transaction_type,
            amount=to_amount(amount, self.account.currency),
            balance=self.account.balance
        )

    def generate_balance_receipt(self) -> str:
        return self.receipts.generate_balance_receipt(
            masked_account=self.get_masked_account_number(),
            account_holder=self.get_account_holder_name(),
            balance=self.account.balance
        )

    # Internals

    def _parse_amount(self, amount: AmountLike) -> Optional[Decimal]:
        try:
            return to_amount(amount, self.account.currency)
        except ValueError:
            return None

    def _record_login(self, success: bool) -> None:
        self.stats.record_login_attempt(success)
        log_action(
            self.logger, "info" if success else "warning", "Authentication attempt",
            account=self.get_masked_account_number(),
            action="authenticate",
            status="SUCCESS" if success else "FAILED",
            session_id=self.session_id
        )

    def _finish(self, transaction_type: TransactionType,
                amount: Optional[Decimal], success: bool) -> bool:
        """Record and log a transaction outcome, passing the result through"""
        self.stats.record_transaction(transaction_type, amount or ZERO, success)
        log_action(
            self.logger, "info", f"Transaction: {transaction_type.display_name}",
            account=self.get_masked_account_number(),
            action=transaction_type.name.lower(),
            status="SUCCESS" if success else "FAILED",
            session_id=self.session_id,
            extra={"amount": str(amount) if amount is not None else None}
        )
        return success
