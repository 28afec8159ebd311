"""
Configuration Management Module

Provides session policy and runtime configuration using pydantic-settings for
environment-based configuration. The ATM service always receives its
configuration explicitly; the module-level instance only serves the entry
points.
"""

from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import Optional

from .currency import Currency


class ATMConfig(BaseSettings):
    """ATM session policy and runtime configuration"""

    # Authentication
    max_failed_attempts: int = 3
    session_timeout_minutes: int = 5

    # Daily caps (reset by an external daily rollover)
    max_daily_transactions: int = 20
    daily_withdrawal_limit: Decimal = Decimal("50000.00")

    # Balance policy
    minimum_balance_required: Decimal = Decimal("500.00")
    enforce_minimum_balance: bool = False  # Gate withdrawals on the minimum balance
    apply_daily_limits_to_transfers: bool = False  # Transfers bypass daily caps unless set

    # Fees and interest
    transfer_fee_rate: Decimal = Decimal("0.01")
    transfer_fee_threshold: Decimal = Decimal("10000.00")
    savings_interest_rate: Decimal = Decimal("0.04")

    # History and statements
    max_transaction_history: Optional[int] = None  # None keeps every record
    mini_statement_count: int = 5
    currency: str = "INR"

    # Receipt branding
    bank_name: str = "STATE BANK ATM SYSTEM"
    bank_tagline: str = "Serving India Since 1806"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Demo account used by the console and API entry points
    demo_account_number: str = "987654321"
    demo_account_holder: str = "Demo User"
    demo_opening_balance: Decimal = Decimal("50000.00")
    demo_pin: str = "1234"
    demo_account_type: str = "savings"

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8090

    class Config:
        env_prefix = "ATM_"
        env_file = ".env"
        case_sensitive = False

    @property
    def currency_enum(self) -> Currency:
        """Resolve the configured currency code"""
        return Currency[self.currency.upper()]


# Configuration instance for the entry points
config = ATMConfig()


def get_config() -> ATMConfig:
    """Get entry point configuration instance"""
    return config


def reload_config() -> ATMConfig:
    """Reload configuration from environment"""
    global config
    config = ATMConfig()
    return config
