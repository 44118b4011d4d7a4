from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from categories import category_label
from models import TransactionType
from periods import MonthPeriod
from records import TransactionRecord

RECENT_EXPENSES_LIMIT = 3


@dataclass(frozen=True)
class PeriodSummary:
    period: MonthPeriod
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    recent_expenses: tuple[TransactionRecord, ...]


def _in_period(txn: TransactionRecord, period: MonthPeriod) -> bool:
    return txn.month == period.month and txn.year == period.year


def _newest_first(transactions: list[TransactionRecord]) -> list[TransactionRecord]:
    # sorted() is stable with reverse=True, so equal timestamps keep input order.
    return sorted(
        transactions,
        key=lambda txn: txn.created_at or datetime.min,
        reverse=True,
    )


def transactions_for_period(
    transactions: Iterable[TransactionRecord],
    period: MonthPeriod,
    txn_type: Optional[TransactionType] = None,
) -> list[TransactionRecord]:
    matching = [
        txn
        for txn in transactions
        if _in_period(txn, period) and (txn_type is None or txn.type == txn_type)
    ]
    return _newest_first(matching)


def summarize_period(
    transactions: Iterable[TransactionRecord],
    period: MonthPeriod,
    *,
    recent_limit: int = RECENT_EXPENSES_LIMIT,
) -> PeriodSummary:
    matching = [txn for txn in transactions if _in_period(txn, period)]
    income = sum(
        (txn.amount for txn in matching if txn.type == TransactionType.income),
        Decimal("0"),
    )
    expenses_list = [txn for txn in matching if txn.type == TransactionType.expense]
    expenses = sum((txn.amount for txn in expenses_list), Decimal("0"))
    return PeriodSummary(
        period=period,
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        recent_expenses=tuple(_newest_first(expenses_list)[:recent_limit]),
    )


def category_breakdown(
    transactions: Iterable[TransactionRecord],
    period: MonthPeriod,
    txn_type: TransactionType,
) -> list[dict[str, object]]:
    by_category: dict[str, Decimal] = {}
    for txn in transactions:
        if txn.type != txn_type or not _in_period(txn, period):
            continue
        by_category[txn.category] = by_category.get(txn.category, Decimal("0")) + txn.amount

    total = sum(by_category.values(), Decimal("0"))
    if total == 0:
        return []
    items = sorted(by_category.items(), key=lambda item: item[1], reverse=True)
    return [
        {
            "category": code,
            "label": category_label(code, txn_type),
            "amount": amount,
            "percent": float(amount / total * 100),
        }
        for code, amount in items
    ]
