from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


def _new_id() -> str:
    return str(uuid4())


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    couple_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    couple_id: Mapped[Optional[str]] = mapped_column(String(36))
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    recurring_group_id: Mapped[Optional[str]] = mapped_column(String(36))
    installment_number: Mapped[Optional[int]] = mapped_column(Integer)
    total_installments: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_transactions_user_period", "user_id", "year", "month"),
        Index("ix_transactions_couple_period", "couple_id", "year", "month"),
        Index("ix_transactions_recurring_group", "recurring_group_id"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_transactions_month"),
        CheckConstraint(
            "total_installments IS NULL OR total_installments BETWEEN 1 AND 48",
            name="ck_transactions_total_installments",
        ),
        CheckConstraint(
            "installment_number IS NULL OR installment_number BETWEEN 1 AND total_installments",
            name="ck_transactions_installment_number",
        ),
    )
