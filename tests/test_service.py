"""
Test suite for the ATM service

Tests PIN lockout, card status gating, daily caps, the balance policy
switches, fees, interest, session timeout, receipts and audit logging.
"""

import json
import logging
import pytest
from decimal import Decimal
from datetime import datetime, timezone, timedelta

from atm_core.accounts import Account, AccountType
from atm_core.config import ATMConfig
from atm_core.currency import Currency
from atm_core.logging_config import JSONFormatter
from atm_core.service import ATMService, CardStatus
from atm_core.stats import SessionStatistics
from atm_core.transactions import TransactionKind, TransactionType


ACCOUNT_NUMBER = "987654321"
PIN = "1234"


class FakeClock:
    """Manually advanced clock"""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 22, 10, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class ListHandler(logging.Handler):
    """Collects log records for assertions"""

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def make_service(balance=Decimal('50000.00'), account_type=AccountType.SAVINGS,
                 config=None, clock=None):
    account = Account(ACCOUNT_NUMBER, "Test User", balance, PIN, account_type=account_type)
    return ATMService(account, config=config or ATMConfig(), clock=clock)


class TestConstruction:
    """Test service construction"""

    def test_requires_account(self):
        with pytest.raises(ValueError, match="requires an account"):
            ATMService(None)

    def test_initial_state(self):
        service = make_service()

        assert not service.is_authenticated
        assert not service.is_account_frozen
        assert service.card_status == CardStatus.ACTIVE
        assert service.failed_login_attempts == 0
        assert service.daily_transaction_count == 0
        assert service.daily_withdrawn_amount == Decimal('0.00')
        assert service.session_id.startswith("SES-")

    def test_sessions_do_not_share_state(self):
        first = make_service()
        second = make_service()

        first.deposit_money(100)
        first.authenticate("0000")

        assert first.stats is not second.stats
        assert second.stats.total_transactions == 0
        assert second.failed_login_attempts == 0
        assert first.session_id != second.session_id


class TestAuthentication:
    """Test PIN authentication and lockout"""

    def setup_method(self):
        self.service = make_service()

    def test_correct_pin(self):
        assert self.service.authenticate(PIN)
        assert self.service.is_authenticated
        assert self.service.failed_login_attempts == 0

    def test_wrong_pin_counts_attempt(self):
        assert not self.service.authenticate("0000")
        assert not self.service.is_authenticated
        assert self.service.failed_login_attempts == 1
        assert not self.service.is_account_frozen

    def test_success_resets_counter(self):
        self.service.authenticate("0000")
        self.service.authenticate("1111")
        assert self.service.authenticate(PIN)
        assert self.service.failed_login_attempts == 0

        self.service.authenticate("0000")
        self.service.authenticate("1111")
        assert not self.service.is_account_frozen

    def test_lockout_after_three_failures(self):
        for pin in ("0000", "1111", "2222"):
            assert not self.service.authenticate(pin)

        assert self.service.is_account_frozen
        assert self.service.failed_login_attempts == 3

    def test_lockout_is_sticky(self):
        for _ in range(3):
            self.service.authenticate("0000")

        assert not self.service.authenticate(PIN)
        assert not self.service.is_authenticated
        assert self.service.is_account_frozen

    def test_reset_lockout(self):
        for _ in range(3):
            self.service.authenticate("0000")

        self.service.reset_lockout()

        assert not self.service.is_account_frozen
        assert self.service.failed_login_attempts == 0
        assert self.service.authenticate(PIN)

    def test_configurable_attempt_limit(self):
        service = make_service(config=ATMConfig(max_failed_attempts=5))
        for _ in range(4):
            service.authenticate("0000")
        assert not service.is_account_frozen
        service.authenticate("0000")
        assert service.is_account_frozen

    def test_freeze_clears_authentication(self):
        self.service.authenticate(PIN)
        self.service.set_account_frozen(True)
        assert not self.service.is_authenticated
        assert not self.service.authenticate(PIN)

    @pytest.mark.parametrize("status", [CardStatus.BLOCKED, CardStatus.EXPIRED])
    def test_inactive_card_blocks_authentication(self, status):
        self.service.set_card_status(status)

        assert not self.service.authenticate(PIN)
        assert self.service.failed_login_attempts == 0
        assert self.service.stats.failed_login_attempts == 1

    def test_card_status_change_clears_authentication(self):
        self.service.authenticate(PIN)
        self.service.set_card_status(CardStatus.BLOCKED)
        assert not self.service.is_authenticated

        self.service.set_card_status(CardStatus.ACTIVE)
        assert self.service.authenticate(PIN)

    def test_end_session(self):
        self.service.authenticate(PIN)
        self.service.end_session()
        assert not self.service.is_authenticated

    def test_login_attempts_recorded(self):
        self.service.authenticate("0000")
        self.service.authenticate(PIN)

        assert self.service.stats.login_attempts == 2
        assert self.service.stats.failed_login_attempts == 1


class TestDeposits:
    """Test deposit gating"""

    def setup_method(self):
        self.service = make_service()

    def test_deposit(self):
        assert self.service.deposit_money(Decimal('5000.00'))
        assert self.service.check_balance() == Decimal('55000.00')
        assert self.service.daily_transaction_count == 1

    @pytest.mark.parametrize("amount", [0, -5, "abc", None, "10.005"])
    def test_invalid_deposit(self, amount):
        assert not self.service.deposit_money(amount)
        assert self.service.check_balance() == Decimal('50000.00')
        assert self.service.daily_transaction_count == 0
        assert self.service.get_transaction_history() == ()

    def test_deposit_that_cannot_be_held_exactly(self):
        service = make_service(balance=Decimal('50000.02'))

        assert not service.deposit_money(Decimal('99999999999999999999999999.99'))

        assert service.check_balance() == Decimal('50000.02')
        assert service.daily_transaction_count == 0
        assert service.get_transaction_history() == ()
        assert service.stats.failed_transactions == 1

    def test_grouped_amount(self):
        assert self.service.deposit_money("1,000")
        assert self.service.check_balance() == Decimal('51000.00')

    def test_jpy_account_rejects_fractional_amounts(self):
        account = Account(ACCOUNT_NUMBER, "Test User", 5000, PIN, currency=Currency.JPY)
        service = ATMService(account, config=ATMConfig())

        assert not service.deposit_money(Decimal('0.50'))
        assert service.deposit_money(500)
        assert service.check_balance() == Decimal('5500')

    def test_daily_transaction_cap(self):
        for _ in range(20):
            assert self.service.deposit_money(1)

        assert self.service.is_daily_transaction_limit_reached()
        assert not self.service.deposit_money(1)
        assert not self.service.withdraw_money(1)
        assert self.service.check_balance() == Decimal('50020.00')

    def test_reset_daily_limits(self):
        for _ in range(20):
            self.service.deposit_money(1)

        self.service.reset_daily_limits()

        assert self.service.daily_transaction_count == 0
        assert self.service.deposit_money(1)


class TestWithdrawals:
    """Test withdrawal gating"""

    def test_scenario(self):
        """Deposit, withdraw, and the rejections that leave the balance alone"""
        service = make_service()

        assert service.deposit_money(5000)
        assert service.check_balance() == Decimal('55000.00')

        assert service.withdraw_money(3000)
        assert service.check_balance() == Decimal('52000.00')

        assert not service.withdraw_money(60000)
        assert service.check_balance() == Decimal('52000.00')

        assert not service.transfer_money(52100, "123456789")
        assert service.check_balance() == Decimal('52000.00')

    @pytest.mark.parametrize("amount", [0, -1, "x", None])
    def test_invalid_withdrawal(self, amount):
        service = make_service()
        assert not service.withdraw_money(amount)
        assert service.check_balance() == Decimal('50000.00')

    def test_daily_withdrawal_limit(self):
        service = make_service(balance=Decimal('100000.00'))

        assert service.withdraw_money(Decimal('50000.00'))
        assert service.get_remaining_daily_withdrawal_limit() == Decimal('0.00')
        assert not service.withdraw_money(Decimal('0.01'))
        assert service.check_balance() == Decimal('50000.00')

    def test_exceeds_daily_withdrawal_limit(self):
        service = make_service()
        assert not service.exceeds_daily_withdrawal_limit(Decimal('50000.00'))
        assert service.exceeds_daily_withdrawal_limit(Decimal('50000.01'))

    def test_insufficient_funds_consumes_no_quota(self):
        service = make_service(balance=Decimal('10000.00'))

        assert not service.withdraw_money(20000)

        assert service.daily_withdrawn_amount == Decimal('0.00')
        assert service.daily_transaction_count == 0
        assert service.get_remaining_daily_withdrawal_limit() == Decimal('50000.00')

    def test_minimum_balance_not_enforced_by_default(self):
        service = make_service()
        assert service.withdraw_money(Decimal('49900.00'))
        assert service.check_balance() == Decimal('100.00')

    def test_minimum_balance_enforced(self):
        service = make_service(config=ATMConfig(enforce_minimum_balance=True))

        assert not service.withdraw_money(Decimal('49600.00'))
        assert service.check_balance() == Decimal('50000.00')
        assert service.daily_transaction_count == 0

        assert service.withdraw_money(Decimal('49500.00'))
        assert service.check_balance() == Decimal('500.00')

    def test_can_withdraw_with_min_balance(self):
        service = make_service()
        assert service.can_withdraw_with_min_balance(Decimal('49500.00'))
        assert not service.can_withdraw_with_min_balance(Decimal('49500.01'))
        assert not service.can_withdraw_with_min_balance("bad")


class TestTransfers:
    """Test transfer gating"""

    def test_transfer(self):
        service = make_service()

        assert service.transfer_money(Decimal('5000.00'), " 123456789 ")

        assert service.check_balance() == Decimal('45000.00')
        record = service.get_transaction_history()[-1]
        assert record.kind == TransactionKind.TRANSFER_OUT
        assert record.counterparty == "XXXXX6789"

    @pytest.mark.parametrize("amount", [0, -100, "abc", None, "10.005"])
    def test_invalid_transfer_amount(self, amount):
        service = make_service()

        assert not service.transfer_money(amount, "123456789")

        assert service.check_balance() == Decimal('50000.00')
        assert service.get_transaction_history() == ()

    @pytest.mark.parametrize("target", ["", "   ", None])
    def test_transfer_requires_target(self, target):
        service = make_service()
        assert not service.transfer_money(100, target)
        assert service.check_balance() == Decimal('50000.00')

    def test_transfer_bypasses_daily_caps_by_default(self):
        service = make_service(balance=Decimal('100000.00'))

        assert service.transfer_money(Decimal('60000.00'), "123456789")
        assert service.daily_transaction_count == 0
        assert service.daily_withdrawn_amount == Decimal('0.00')

    def test_transfer_daily_caps_when_configured(self):
        config = ATMConfig(
            apply_daily_limits_to_transfers=True,
            daily_withdrawal_limit=Decimal('1000.00')
        )
        service = make_service(config=config)

        assert not service.transfer_money(Decimal('1500.00'), "123456789")
        assert service.transfer_money(Decimal('800.00'), "123456789")
        assert service.daily_withdrawn_amount == Decimal('800.00')
        assert service.daily_transaction_count == 1
        assert not service.withdraw_money(Decimal('300.00'))


class TestFeesAndInterest:
    """Test fee and interest calculations"""

    def test_transfer_fee_above_threshold(self):
        service = make_service()
        fee = service.calculate_transaction_fee(TransactionType.TRANSFER, Decimal('15000.00'))
        assert fee == Decimal('150.00')

    def test_no_fee_at_threshold(self):
        service = make_service()
        assert service.calculate_transaction_fee(TransactionType.TRANSFER, 10000) == Decimal('0.00')

    def test_no_fee_for_other_operations(self):
        service = make_service()
        assert service.calculate_transaction_fee(TransactionType.WITHDRAWAL, 20000) == Decimal('0.00')
        assert service.calculate_transaction_fee(TransactionType.DEPOSIT, 20000) == Decimal('0.00')

    def test_fee_rounds_to_cents(self):
        service = make_service()
        fee = service.calculate_transaction_fee(TransactionType.TRANSFER, Decimal('10000.50'))
        assert fee == Decimal('100.01')

    def test_savings_interest(self):
        service = make_service()
        assert service.calculate_interest() == Decimal('2000.00')

    def test_current_account_earns_nothing(self):
        service = make_service(account_type=AccountType.CURRENT)
        assert service.calculate_interest() == Decimal('0.00')
        assert service.apply_interest() == Decimal('0.00')
        assert service.get_transaction_history() == ()

    def test_apply_interest(self):
        service = make_service()

        credited = service.apply_interest()

        assert credited == Decimal('2000.00')
        assert service.check_balance() == Decimal('52000.00')
        assert service.get_transaction_history()[-1].kind == TransactionKind.INTEREST_CREDIT
        assert service.daily_transaction_count == 0
        assert service.stats.total_deposited == Decimal('2000.00')


class TestSessionTimeout:
    """Test inactivity timeout with an injected clock"""

    def setup_method(self):
        self.clock = FakeClock()
        self.service = make_service(clock=self.clock)

    def test_not_timed_out_before_limit(self):
        self.clock.advance(minutes=4, seconds=59)
        assert not self.service.is_session_timed_out()

    def test_timed_out_at_limit(self):
        self.clock.advance(minutes=5)
        assert self.service.is_session_timed_out()

    def test_reset_session_timeout(self):
        self.clock.advance(minutes=4)
        self.service.reset_session_timeout()
        self.clock.advance(minutes=4)
        assert not self.service.is_session_timed_out()

    def test_configurable_timeout(self):
        service = make_service(config=ATMConfig(session_timeout_minutes=1), clock=self.clock)
        self.clock.advance(minutes=1)
        assert service.is_session_timed_out()


class TestStatementsAndReceipts:
    """Test mini statement and receipt output"""

    def test_mini_statement_default_count(self):
        service = make_service()
        for amount in range(1, 8):
            service.deposit_money(amount)

        lines = service.get_mini_statement()

        assert len(lines) == 5
        assert "₹3.00" in lines[0]
        assert "₹7.00" in lines[-1]
        assert lines[-1].startswith("DEPOSIT")

    def test_mini_statement_empty(self):
        assert make_service().get_mini_statement() == []

    def test_mini_statement_masks_transfer_target(self):
        service = make_service()
        service.transfer_money(100, "123456789")
        line = service.get_mini_statement()[0]
        assert "TRANSFER OUT to XXXXX6789" in line
        assert "123456789" not in line

    def test_transaction_receipt(self):
        service = make_service(clock=FakeClock())
        service.deposit_money(5000)

        receipt = service.generate_receipt(TransactionType.DEPOSIT, 5000)

        assert "Receipt #: RCP-1000" in receipt
        assert "Date/Time: 22-01-2026 10:30:00" in receipt
        assert "Account: XXXXX4321" in receipt
        assert "Transaction: Deposit" in receipt
        assert "Amount: ₹5,000.00" in receipt
        assert "Balance: ₹55,000.00" in receipt
        assert ACCOUNT_NUMBER not in receipt

        assert "RCP-1001" in service.generate_receipt(TransactionType.DEPOSIT, 1)

    def test_balance_receipt(self):
        receipt = make_service().generate_balance_receipt()
        assert "BALANCE INQUIRY" in receipt
        assert "₹50,000.00" in receipt


class TestStatisticsAndLogging:
    """Test that outcomes reach the injected statistics and logger"""

    def setup_method(self):
        self.handler = ListHandler()
        self.logger = logging.getLogger("atm_test.service")
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self.handler)
        self.logger.propagate = False

        account = Account(ACCOUNT_NUMBER, "Test User", Decimal('50000.00'), PIN)
        self.stats = SessionStatistics()
        self.service = ATMService(account, config=ATMConfig(), stats=self.stats, logger=self.logger)

    def teardown_method(self):
        self.logger.removeHandler(self.handler)

    def test_transactions_recorded(self):
        self.service.deposit_money(5000)
        self.service.withdraw_money(60000)
        self.service.transfer_money(1000, "123456789")

        assert self.stats.total_transactions == 3
        assert self.stats.successful_transactions == 2
        assert self.stats.failed_transactions == 1
        assert self.stats.total_deposited == Decimal('5000.00')
        assert self.stats.total_withdrawn == Decimal('0.00')
        assert self.stats.total_transferred == Decimal('1000.00')

    def test_every_attempt_is_logged(self):
        self.service.authenticate("0000")
        self.service.authenticate(PIN)
        self.service.deposit_money(100)
        self.service.withdraw_money(-1)

        actions = [getattr(r, "action", None) for r in self.handler.records]
        assert actions.count("authenticate") == 2
        assert "deposit" in actions
        assert "withdrawal" in actions

        statuses = [getattr(r, "status", None) for r in self.handler.records
                    if getattr(r, "action", None) == "withdrawal"]
        assert statuses == ["FAILED"]

    def test_lockout_logged_as_warning(self):
        for _ in range(3):
            self.service.authenticate("0000")

        frozen = [r for r in self.handler.records if getattr(r, "action", None) == "account_frozen"]
        assert len(frozen) == 1
        assert frozen[0].levelno == logging.WARNING

    def test_logs_never_contain_pin_or_full_account_number(self):
        self.service.authenticate(PIN)
        self.service.change_pin(PIN, "5678")
        self.service.transfer_money(100, "123456789")

        formatter = JSONFormatter()
        for record in self.handler.records:
            entry = json.loads(formatter.format(record))
            assert entry["account"] == "XXXXX4321"
            assert ACCOUNT_NUMBER not in json.dumps(entry)
            assert "123456789" not in json.dumps(entry)
            assert PIN not in record.getMessage()
            assert "5678" not in record.getMessage()
            assert "pin" not in entry
