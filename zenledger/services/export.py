"""CSV exports of a child's ledger for parents."""

import csv
import io
from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from zenledger.schemas import MoneyRequest, Transaction, TransactionType, User, UserRole
from zenledger.services.money_requests import credit_id_for

LEDGER_HEADERS = [
    "Date",
    "Type",
    "Amount (INR)",
    "Description",
    "Initiated By",
    "Initiated Role",
    "Approved By",
    "Reference Request ID",
]
SUMMARY_HEADERS = [
    "Month",
    "Total Credits (INR)",
    "Total Debits (INR)",
    "Net Change (INR)",
]


def _writer(buffer: io.StringIO):
    return csv.writer(buffer, lineterminator="\n")


def ledger_filename(child: User) -> str:
    return f"ledger_{child.username}.csv"


def summary_filename(child: User) -> str:
    return f"summary_{child.username}.csv"


def ledger_csv(
    child: User,
    transactions: Iterable[Transaction],
    requests: Iterable[MoneyRequest] = (),
) -> str:
    """One row per transaction of *child*, oldest first.

    Credits that settle an approved request reference that request's id.
    """
    settled_by = {credit_id_for(r.id): r.id for r in requests}
    rows = sorted(
        (t for t in transactions if t.user_id == child.id),
        key=lambda t: t.timestamp,
    )

    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(LEDGER_HEADERS)
    for tx in rows:
        credit = tx.type == TransactionType.CREDIT
        writer.writerow([
            tx.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            tx.type.value,
            f"{tx.amount:.2f}",
            tx.description,
            "Parent" if credit else child.name,
            UserRole.PARENT.value if credit else UserRole.CHILD.value,
            "Parent" if tx.description.lower().startswith("approved:") else "-",
            settled_by.get(tx.id, "-"),
        ])
    return buffer.getvalue()


def monthly_summary_csv(child: User, transactions: Iterable[Transaction]) -> str:
    """Credits, debits and net change of *child* per calendar month (UTC)."""
    months: dict[str, list[Decimal]] = defaultdict(lambda: [Decimal("0"), Decimal("0")])
    for tx in transactions:
        if tx.user_id != child.id:
            continue
        totals = months[tx.timestamp.strftime("%Y-%m")]
        if tx.type == TransactionType.CREDIT:
            totals[0] += tx.amount
        else:
            totals[1] += tx.amount

    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(SUMMARY_HEADERS)
    for month in sorted(months):
        credits, debits = months[month]
        writer.writerow([month, f"{credits:.2f}", f"{debits:.2f}", f"{credits - debits:.2f}"])
    return buffer.getvalue()
