"""
Money Module

Decimal amounts at each currency's minor-unit precision, and display formatting.
NEVER uses float for monetary values; floats handed in from the outside are
converted through their string form before any arithmetic happens.
"""

from decimal import Decimal, Inexact, InvalidOperation, ROUND_HALF_UP, getcontext, localcontext
from dataclasses import dataclass
from enum import Enum
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28

ZERO = Decimal('0.00')

AmountLike = Union[Decimal, int, str, float]

GROUPED_AMOUNT_PATTERN = re.compile(r"-?\d{1,3}(,\d{3})+(\.\d+)?", re.ASCII)


class Currency(Enum):
    """ISO 4217 currency codes with precision and display symbol"""
    INR = ("INR", 2, "₹")  # Indian Rupee
    USD = ("USD", 2, "$")  # US Dollar
    EUR = ("EUR", 2, "€")  # Euro
    GBP = ("GBP", 2, "£")  # British Pound
    JPY = ("JPY", 0, "¥")  # Japanese Yen, 0 decimal places

    def __init__(self, code: str, precision: int, symbol: str):
        self.code = code
        self.precision = precision
        self.symbol = symbol


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    Used for display and for comparing amounts of the same currency.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        # Round to currency precision
        rounded = self.amount.quantize(
            Decimal('0.1') ** self.currency.precision,
            rounding=ROUND_HALF_UP
        )
        object.__setattr__(self, 'amount', rounded)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.code} and {other.currency.code}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = Decimal(str(multiplier))
        return Money(self.amount * multiplier, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display with the currency code"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"

    def to_symbol_string(self) -> str:
        """Format for receipts with the currency symbol"""
        if self.currency.precision == 0:
            return f"{self.currency.symbol}{self.amount:,.0f}"
        return f"{self.currency.symbol}{self.amount:,.{self.currency.precision}f}"


def _quantum(currency: Currency) -> Decimal:
    return Decimal(1).scaleb(-currency.precision)


def to_amount(value: AmountLike, currency: Currency = Currency.INR) -> Decimal:
    """
    Convert user or caller input into a Decimal at the currency's precision.

    Strings may use comma thousands grouping ("2,500.75") but only in the
    standard three-digit form.

    Args:
        value: Decimal, int, numeric string or float
        currency: Currency whose minor unit bounds the precision

    Returns:
        Decimal quantized to the currency precision

    Raises:
        ValueError: If the value is not a finite number or carries more
            decimal places than the currency allows
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if ',' in text:
            if not GROUPED_AMOUNT_PATTERN.fullmatch(text):
                raise ValueError(f"Malformed digit grouping: '{value}'")
            text = text.replace(',', '')
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to an amount")
    else:
        raise ValueError(f"Invalid amount type: {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")

    try:
        quantized = amount.quantize(_quantum(currency))
    except InvalidOperation:
        raise ValueError(f"Amount out of range: {value!r}")
    if quantized != amount:
        raise ValueError(
            f"Amount has more than {currency.precision} decimal places "
            f"for {currency.code}: {value!r}"
        )

    return quantized


def quantize_amount(value: Decimal, currency: Currency = Currency.INR) -> Decimal:
    """Round a derived amount (fee, interest) to the currency precision"""
    return value.quantize(_quantum(currency), rounding=ROUND_HALF_UP)


def exact_sum(left: Decimal, right: Decimal) -> Decimal:
    """
    Add two amounts without rounding.

    Raises:
        ValueError: If the exact result does not fit the decimal context
    """
    with localcontext() as ctx:
        ctx.traps[Inexact] = True
        try:
            return left + right
        except Inexact:
            raise ValueError("Amount exceeds supported balance precision")
