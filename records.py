"""In-memory transaction entities and their row mapping.

``to_row`` and ``from_row`` are the only translation between the stored
column layout and :class:`TransactionRecord`; every read and write goes
through them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from categories import is_known_category
from models import TransactionType
from periods import MonthPeriod

MAX_INSTALLMENTS = 48
DESCRIPTION_MAX_LENGTH = 200


class TransactionValidationError(ValueError):
    pass


@dataclass(frozen=True)
class TransactionTemplate:
    owner_id: str
    couple_id: Optional[str]
    type: TransactionType
    description: str
    amount: Decimal
    category: str


@dataclass(frozen=True)
class TransactionRecord:
    owner_id: str
    couple_id: Optional[str]
    type: TransactionType
    description: str
    amount: Decimal
    category: str
    month: int
    year: int
    is_recurring: bool = False
    recurring_group_id: Optional[str] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def period(self) -> MonthPeriod:
        return MonthPeriod(year=self.year, month=self.month)

    @property
    def template(self) -> TransactionTemplate:
        return TransactionTemplate(
            owner_id=self.owner_id,
            couple_id=self.couple_id,
            type=self.type,
            description=self.description,
            amount=self.amount,
            category=self.category,
        )


def _coerce_amount(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TransactionValidationError("Invalid amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise TransactionValidationError("Invalid amount") from exc
    if not amount.is_finite():
        raise TransactionValidationError("Amount must be finite")
    return amount


def validate_template(template: TransactionTemplate) -> None:
    if not template.owner_id:
        raise TransactionValidationError("Owner is required")
    try:
        txn_type = TransactionType(template.type)
    except ValueError as exc:
        raise TransactionValidationError(f"Unknown type: {template.type}") from exc
    description = (template.description or "").strip()
    if not description:
        raise TransactionValidationError("Description is required")
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise TransactionValidationError("Description is too long")
    amount = _coerce_amount(template.amount)
    if amount <= 0:
        raise TransactionValidationError("Amount must be positive")
    if not is_known_category(template.category, txn_type):
        raise TransactionValidationError(
            f"Category {template.category!r} does not belong to {txn_type.value}"
        )


def validate_record(record: TransactionRecord) -> None:
    validate_template(record.template)
    try:
        record.period
    except ValueError as exc:
        raise TransactionValidationError(str(exc)) from exc
    recurrence = (
        record.recurring_group_id,
        record.installment_number,
        record.total_installments,
    )
    if not record.is_recurring:
        if any(value is not None for value in recurrence):
            raise TransactionValidationError(
                "Non-recurring transactions cannot carry installment fields"
            )
        return
    if any(value is None for value in recurrence):
        raise TransactionValidationError(
            "Recurring transactions need a group, installment number and total"
        )
    total = record.total_installments
    if not 1 <= total <= MAX_INSTALLMENTS:
        raise TransactionValidationError(
            f"Installments must be between 1 and {MAX_INSTALLMENTS}"
        )
    if not 1 <= record.installment_number <= total:
        raise TransactionValidationError("Installment number out of range")


def to_row(record: TransactionRecord) -> dict[str, Any]:
    row: dict[str, Any] = {
        "user_id": record.owner_id,
        "couple_id": record.couple_id,
        "type": TransactionType(record.type).value,
        "description": record.description,
        "amount": record.amount,
        "category": record.category,
        "month": record.month,
        "year": record.year,
        "is_recurring": record.is_recurring,
        "recurring_group_id": record.recurring_group_id,
        "installment_number": record.installment_number,
        "total_installments": record.total_installments,
    }
    if record.id is not None:
        row["id"] = record.id
    if record.created_at is not None:
        row["created_at"] = record.created_at
    return row


_REQUIRED_COLUMNS = (
    "id",
    "user_id",
    "type",
    "description",
    "amount",
    "category",
    "month",
    "year",
    "created_at",
)


def from_row(row: Mapping[str, Any]) -> TransactionRecord:
    missing = [column for column in _REQUIRED_COLUMNS if row.get(column) is None]
    if missing:
        raise TransactionValidationError(f"Row is missing {', '.join(missing)}")

    created_at = row["created_at"]
    if isinstance(created_at, str):
        created_at = datetime.fromisoformat(created_at)

    raw_type = row["type"]
    txn_type = raw_type if isinstance(raw_type, TransactionType) else TransactionType(raw_type)

    installment_number = row.get("installment_number")
    total_installments = row.get("total_installments")
    return TransactionRecord(
        id=str(row["id"]),
        owner_id=str(row["user_id"]),
        couple_id=row.get("couple_id"),
        type=txn_type,
        description=row["description"],
        amount=_coerce_amount(row["amount"]),
        category=row["category"],
        month=int(row["month"]),
        year=int(row["year"]),
        created_at=created_at,
        is_recurring=bool(row.get("is_recurring") or False),
        recurring_group_id=row.get("recurring_group_id"),
        installment_number=(
            int(installment_number) if installment_number is not None else None
        ),
        total_installments=(
            int(total_installments) if total_installments is not None else None
        ),
    )
