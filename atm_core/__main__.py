#!/usr/bin/env python3
"""
ATM Entry Point

Builds the demo account from configuration and runs either the console menu
or the HTTP adapter for one session.
"""

import argparse
import sys

from .accounts import Account, AccountType
from .config import get_config
from .logging_config import setup_logging
from .service import ATMService
from .stats import SessionStatistics


def build_service() -> ATMService:
    """Create a session around the configured demo account"""
    config = get_config()
    account = Account(
        account_number=config.demo_account_number,
        account_holder_name=config.demo_account_holder,
        balance=config.demo_opening_balance,
        pin=config.demo_pin,
        account_type=AccountType(config.demo_account_type),
        currency=config.currency_enum,
        history_limit=config.max_transaction_history
    )
    logger = setup_logging(config.log_level, "atm", config.log_format)
    return ATMService(
        account,
        config=config,
        stats=SessionStatistics(account.currency),
        logger=logger.getChild("service")
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="atm_core", description="ATM session simulator")
    parser.add_argument("mode", nargs="?", choices=["console", "serve"], default="console")
    parser.add_argument("--receipts", action="store_true", help="print receipts in console mode")
    args = parser.parse_args(argv)

    try:
        service = build_service()
    except ValueError as e:
        print(f"Invalid account configuration: {e}", file=sys.stderr)
        return 1

    if args.mode == "serve":
        from .api import run_server
        config = service.config
        print(f"ATM API available at: http://{config.api_host}:{config.api_port}")
        run_server(service, host=config.api_host, port=config.api_port)
        return 0

    from .console import ATMConsole
    ATMConsole(service, print_receipts=args.receipts).run()
    print(service.stats.format_report())
    return 0


if __name__ == "__main__":
    sys.exit(main())
