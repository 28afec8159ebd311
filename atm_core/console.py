"""
Console Adapter

Text menu loop over one ATM session. The core only answers True/False; the
console re-derives a friendlier reason for each refusal by re-checking the
relevant predicate.
"""

from decimal import Decimal
from typing import Callable, Optional

from .currency import Money, to_amount
from .service import ATMService, CardStatus
from .transactions import TransactionType


MENU_BALANCE = "1"
MENU_DEPOSIT = "2"
MENU_WITHDRAW = "3"
MENU_EXIT = "4"
MENU_MINI_STATEMENT = "5"
MENU_TRANSFER = "6"
MENU_CHANGE_PIN = "7"

MENU_TEXT = """
========================================
              ATM MENU
========================================
1. Check Balance
2. Deposit Money
3. Withdraw Money
4. Exit
5. Mini Statement
6. Transfer Money
7. Change PIN
========================================"""


class ATMConsole:
    """Interactive menu bound to one ATMService"""

    def __init__(
        self,
        service: ATMService,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
        print_receipts: bool = False
    ):
        self.service = service
        self._input = input_func
        self._output = output_func
        self.print_receipts = print_receipts

    def run(self) -> None:
        """Authenticate, then serve menu choices until exit, lockout or timeout"""
        self._output("========================================")
        self._output(f"  Welcome to {self.service.config.bank_name}")
        self._output("========================================")

        try:
            if not self._login():
                return
            self._menu_loop()
        except (EOFError, KeyboardInterrupt):
            self._output("\nSession cancelled.")
        finally:
            self.service.end_session()

    def _login(self) -> bool:
        while True:
            pin = self._input("Enter PIN: ").strip()
            if self.service.authenticate(pin):
                self._output(f"Welcome, {self.service.get_account_holder_name()}!")
                self._output(f"Account Number: {self.service.get_masked_account_number()}")
                return True

            if self.service.is_account_frozen:
                self._output("[X] Too many incorrect attempts. Your card has been blocked.")
                return False
            if self.service.card_status != CardStatus.ACTIVE:
                self._output(f"[X] Card is {self.service.card_status.value}. Please contact your bank.")
                return False

            remaining = self.service.config.max_failed_attempts - self.service.failed_login_attempts
            self._output(f"[X] Incorrect PIN. {remaining} attempt(s) remaining.")

    def _menu_loop(self) -> None:
        handlers = {
            MENU_BALANCE: self._check_balance,
            MENU_DEPOSIT: self._deposit,
            MENU_WITHDRAW: self._withdraw,
            MENU_MINI_STATEMENT: self._mini_statement,
            MENU_TRANSFER: self._transfer,
            MENU_CHANGE_PIN: self._change_pin,
        }

        while True:
            self._output(MENU_TEXT)
            choice = self._input("Enter your choice: ").strip()

            if self.service.is_session_timed_out():
                self._output("[X] Session timed out. Please insert your card again.")
                return

            if choice == MENU_EXIT:
                self._output("Thank you for using the ATM. Have a great day!")
                return

            handler = handlers.get(choice)
            if handler is None:
                self._output("[X] Invalid choice! Please select a valid option (1-7).")
                continue

            handler()
            self.service.reset_session_timeout()

    def _money(self, amount: Decimal) -> str:
        return Money(amount, self.service.account.currency).to_symbol_string()

    def _read_amount(self, prompt: str) -> Optional[Decimal]:
        try:
            return to_amount(self._input(prompt).strip(), self.service.account.currency)
        except ValueError:
            return None

    def _check_balance(self) -> None:
        self._output(f"Your current balance is: {self._money(self.service.check_balance())}")
        if self.print_receipts:
            self._output(self.service.generate_balance_receipt())

    def _deposit(self) -> None:
        amount = self._read_amount("Enter amount to deposit: ")
        if amount is not None and self.service.deposit_money(amount):
            self._output(f"[SUCCESS] {self._money(amount)} deposited.")
            self._output(f"New balance: {self._money(self.service.check_balance())}")
            self._maybe_receipt(TransactionType.DEPOSIT, amount)
            return

        if amount is None or amount <= 0:
            self._output("[X] Invalid amount! Deposit amount must be greater than zero.")
        elif self.service.is_daily_transaction_limit_reached():
            self._output("[X] Daily transaction limit reached.")
        else:
            self._output("[X] Deposit failed.")

    def _withdraw(self) -> None:
        amount = self._read_amount("Enter amount to withdraw: ")
        if amount is not None and self.service.withdraw_money(amount):
            self._output(f"[SUCCESS] {self._money(amount)} withdrawn.")
            self._output(f"Remaining balance: {self._money(self.service.check_balance())}")
            self._maybe_receipt(TransactionType.WITHDRAWAL, amount)
            return

        if amount is None or amount <= 0:
            self._output("[X] Invalid amount! Withdrawal amount must be greater than zero.")
        elif self.service.is_daily_transaction_limit_reached():
            self._output("[X] Daily transaction limit reached.")
        elif self.service.exceeds_daily_withdrawal_limit(amount):
            remaining = self.service.get_remaining_daily_withdrawal_limit()
            self._output(f"[X] Daily withdrawal limit exceeded. Remaining today: {self._money(remaining)}")
        elif amount > self.service.check_balance():
            self._output("[X] Insufficient balance!")
            self._output(f"Your current balance is: {self._money(self.service.check_balance())}")
        elif (self.service.config.enforce_minimum_balance
              and not self.service.can_withdraw_with_min_balance(amount)):
            minimum = self.service.config.minimum_balance_required
            self._output(f"[X] Minimum balance of {self._money(minimum)} must be maintained.")
        else:
            self._output("[X] Withdrawal failed.")

    def _transfer(self) -> None:
        target = self._input("Enter target account number: ").strip()
        amount = self._read_amount("Enter amount to transfer: ")

        if amount is not None:
            fee = self.service.calculate_transaction_fee(TransactionType.TRANSFER, amount)
            if fee > 0:
                self._output(f"Note: a transfer fee of {self._money(fee)} applies.")

        if amount is not None and self.service.transfer_money(amount, target):
            self._output(f"[SUCCESS] {self._money(amount)} transferred.")
            self._output(f"Remaining balance: {self._money(self.service.check_balance())}")
            self._maybe_receipt(TransactionType.TRANSFER, amount)
            return

        if amount is None or amount <= 0:
            self._output("[X] Invalid amount! Transfer amount must be greater than zero.")
        elif not target:
            self._output("[X] Target account number is required.")
        elif amount > self.service.check_balance():
            self._output("[X] Insufficient balance!")
        else:
            self._output("[X] Transfer failed.")

    def _mini_statement(self) -> None:
        lines = self.service.get_mini_statement()
        self._output("------------ MINI STATEMENT ------------")
        if not lines:
            self._output("No transactions found.")
        for line in lines:
            self._output(line)
        self._output(f"Current balance: {self._money(self.service.check_balance())}")

    def _change_pin(self) -> None:
        old_pin = self._input("Enter current PIN: ").strip()
        new_pin = self._input("Enter new PIN: ").strip()
        confirm = self._input("Confirm new PIN: ").strip()

        if new_pin != confirm:
            self._output("[X] New PINs do not match.")
            return

        if self.service.change_pin(old_pin, new_pin):
            self._output("[SUCCESS] PIN changed successfully.")
        else:
            self._output("[X] PIN change failed. Check your current PIN and choose a different 4-digit PIN.")

    def _maybe_receipt(self, transaction_type: TransactionType, amount: Decimal) -> None:
        if self.print_receipts:
            self._output(self.service.generate_receipt(transaction_type, amount))
