"""
Statement Export Module

Renders the read-only transaction history as text, CSV or HTML and writes
statement files. Renderers take plain values (masked account number, holder,
balance, records) and never touch the account itself.
"""

from decimal import Decimal
from datetime import datetime, timezone
from enum import Enum
from html import escape
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Union
import csv
import io

from .currency import Money, Currency
from .transactions import TransactionRecord

if TYPE_CHECKING:
    from .service import ATMService


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class StatementFormat(Enum):
    """Supported statement file formats"""
    CSV = "csv"
    TXT = "txt"
    HTML = "html"


def format_record(record: TransactionRecord, currency: Currency = Currency.INR) -> str:
    """One history record as a single display line"""
    amount = Money(record.amount, currency).to_symbol_string()
    balance = Money(record.balance_after, currency).to_symbol_string()
    timestamp = record.timestamp.strftime(TIMESTAMP_FORMAT)
    return f"{record.description:<28} | {amount:>14} | Balance: {balance:>14} | {timestamp}"


def render_csv(masked_account: str, account_holder: str,
               records: Iterable[TransactionRecord],
               generated_at: Optional[datetime] = None) -> str:
    """CSV statement: a short header block followed by one row per record"""
    generated_at = generated_at or datetime.now(timezone.utc)
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")

    writer.writerow(["Account Statement"])
    writer.writerow(["Account Number", masked_account])
    writer.writerow(["Account Holder", account_holder])
    writer.writerow(["Generated On", generated_at.strftime(TIMESTAMP_FORMAT)])
    writer.writerow([])
    writer.writerow(["Type", "Description", "Amount", "Balance After", "Timestamp"])

    for record in records:
        writer.writerow([
            record.kind.value,
            record.description,
            str(record.amount),
            str(record.balance_after),
            record.timestamp.strftime(TIMESTAMP_FORMAT),
        ])

    csv_content = output.getvalue()
    output.close()
    return csv_content


def render_text(masked_account: str, account_holder: str, balance: Decimal,
                records: Iterable[TransactionRecord],
                currency: Currency = Currency.INR,
                generated_at: Optional[datetime] = None) -> str:
    """Plain text statement"""
    generated_at = generated_at or datetime.now(timezone.utc)
    rule = "=" * 96
    lines = [
        rule,
        "ACCOUNT STATEMENT".center(96),
        rule,
        f"Account Number : {masked_account}",
        f"Account Holder : {account_holder}",
        f"Current Balance: {Money(balance, currency).to_symbol_string()}",
        f"Generated On   : {generated_at.strftime(TIMESTAMP_FORMAT)}",
        rule,
    ]

    body = [format_record(record, currency) for record in records]
    lines.extend(body or ["No transactions found."])
    lines.append(rule)
    return "\n".join(lines) + "\n"


def render_html(masked_account: str, account_holder: str, balance: Decimal,
                records: Iterable[TransactionRecord],
                currency: Currency = Currency.INR,
                generated_at: Optional[datetime] = None) -> str:
    """HTML statement with every value escaped"""
    generated_at = generated_at or datetime.now(timezone.utc)

    rows = []
    for record in records:
        css = "credit" if record.kind.is_credit else "debit"
        rows.append(
            f'<tr class="{css}">'
            f"<td>{escape(record.timestamp.strftime(TIMESTAMP_FORMAT))}</td>"
            f"<td>{escape(record.description)}</td>"
            f"<td>{escape(Money(record.amount, currency).to_symbol_string())}</td>"
            f"<td>{escape(Money(record.balance_after, currency).to_symbol_string())}</td>"
            "</tr>"
        )
    if not rows:
        rows.append('<tr><td colspan="4">No transactions found.</td></tr>')

    return "\n".join([
        "<!DOCTYPE html>",
        "<html>",
        "<head><meta charset=\"utf-8\"><title>Account Statement</title></head>",
        "<body>",
        "<h1>Account Statement</h1>",
        f"<p>Account Number: {escape(masked_account)}</p>",
        f"<p>Account Holder: {escape(account_holder)}</p>",
        f"<p>Current Balance: {escape(Money(balance, currency).to_symbol_string())}</p>",
        f"<p>Generated On: {escape(generated_at.strftime(TIMESTAMP_FORMAT))}</p>",
        "<table>",
        "<tr><th>Date</th><th>Description</th><th>Amount</th><th>Balance</th></tr>",
        *rows,
        "</table>",
        "</body>",
        "</html>",
        "",
    ])


def export_statement(service: 'ATMService', directory: Union[str, Path],
                     fmt: StatementFormat = StatementFormat.TXT,
                     generated_at: Optional[datetime] = None) -> Path:
    """
    Write a statement file for the session's account

    Args:
        service: Session whose account is exported
        directory: Output directory (created if missing)
        fmt: File format
        generated_at: Timestamp used in the header and file name

    Returns:
        Path of the written file
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    masked = service.get_masked_account_number()
    holder = service.get_account_holder_name()
    balance = service.check_balance()
    records = service.get_transaction_history()
    currency = service.account.currency

    if fmt == StatementFormat.CSV:
        content = render_csv(masked, holder, records, generated_at)
    elif fmt == StatementFormat.TXT:
        content = render_text(masked, holder, balance, records, currency, generated_at)
    elif fmt == StatementFormat.HTML:
        content = render_html(masked, holder, balance, records, currency, generated_at)
    else:
        raise ValueError(f"Unsupported statement format: {fmt}")

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"statement_{masked}_{generated_at.strftime(FILE_TIMESTAMP_FORMAT)}.{fmt.value}"
    path.write_text(content, encoding="utf-8")
    return path
