import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from categories import category_label, is_known_category
from metrics import PeriodSummary
from models import TransactionType
from records import MAX_INSTALLMENTS, TransactionRecord


_DOT_THOUSANDS = re.compile(r"\d{1,3}(\.\d{3})+")


def parse_amount(value: str) -> Decimal:
    """Parse user-typed money in Brazilian or plain notation.

    ``"1.234,56"``, ``"R$ 12,50"``, ``"2.500"`` (two thousand five hundred) and
    ``"1234.56"`` are accepted. Dots are thousands separators whenever a comma
    is present or they split the number into groups of three.
    """
    clean = value.strip().replace("R$", "").replace("$", "").replace(" ", "")
    if "," in clean:
        integer, _, fraction = clean.partition(",")
        if "," in fraction or ("." in integer and not _DOT_THOUSANDS.fullmatch(integer)):
            raise ValueError("Invalid amount")
        clean = f"{integer.replace('.', '')}.{fraction}"
    elif _DOT_THOUSANDS.fullmatch(clean):
        clean = clean.replace(".", "")
    elif clean.count(".") > 1:
        raise ValueError("Invalid amount")
    try:
        return Decimal(clean)
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc


class TransactionIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, allow_inf_nan=False)
    category: str = Field(..., min_length=1, max_length=40)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1970, le=3000)
    is_recurring: bool = False
    installments: Optional[int] = Field(default=None, ge=1, le=MAX_INSTALLMENTS)

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_amount(value)
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "TransactionIn":
        if not is_known_category(self.category, self.type):
            raise ValueError(
                f"Category {self.category!r} does not belong to {self.type.value}"
            )
        if not self.is_recurring:
            self.installments = None
            return self
        if self.installments is None:
            raise ValueError("Recurring transactions need a number of installments")
        if self.installments == 1:
            # A single installment is stored as a plain transaction.
            self.is_recurring = False
            self.installments = None
        return self


class TransactionOut(BaseModel):
    id: str
    owner_id: str
    couple_id: Optional[str]
    type: TransactionType
    description: str
    amount: Decimal
    category: str
    category_label: str
    month: int
    year: int
    created_at: datetime
    is_recurring: bool
    recurring_group_id: Optional[str]
    installment_number: Optional[int]
    total_installments: Optional[int]

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "TransactionOut":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            couple_id=record.couple_id,
            type=record.type,
            description=record.description,
            amount=record.amount,
            category=record.category,
            category_label=category_label(record.category, record.type),
            month=record.month,
            year=record.year,
            created_at=record.created_at,
            is_recurring=record.is_recurring,
            recurring_group_id=record.recurring_group_id,
            installment_number=record.installment_number,
            total_installments=record.total_installments,
        )


class PeriodSummaryOut(BaseModel):
    month: int
    year: int
    label: str
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    recent_expenses: list[TransactionOut]

    @classmethod
    def from_summary(cls, summary: PeriodSummary) -> "PeriodSummaryOut":
        return cls(
            month=summary.period.month,
            year=summary.period.year,
            label=summary.period.label,
            total_income=summary.total_income,
            total_expenses=summary.total_expenses,
            balance=summary.balance,
            recent_expenses=[
                TransactionOut.from_record(txn) for txn in summary.recent_expenses
            ],
        )
