from numbers import Integral
from typing import Optional
from uuid import uuid4

from periods import MonthPeriod
from records import (
    MAX_INSTALLMENTS,
    TransactionRecord,
    TransactionTemplate,
    TransactionValidationError,
    validate_template,
)


def _check_installments(total_installments: object) -> int:
    if isinstance(total_installments, bool) or not isinstance(
        total_installments, Integral
    ):
        raise TransactionValidationError("Installments must be a whole number")
    total = int(total_installments)
    if not 1 <= total <= MAX_INSTALLMENTS:
        raise TransactionValidationError(
            f"Installments must be between 1 and {MAX_INSTALLMENTS}"
        )
    return total


def single_record(
    template: TransactionTemplate, period: MonthPeriod
) -> TransactionRecord:
    validate_template(template)
    return TransactionRecord(
        owner_id=template.owner_id,
        couple_id=template.couple_id,
        type=template.type,
        description=template.description,
        amount=template.amount,
        category=template.category,
        month=period.month,
        year=period.year,
    )


def expand_series(
    template: TransactionTemplate,
    start: MonthPeriod,
    total_installments: int,
    *,
    group_id: Optional[str] = None,
) -> list[TransactionRecord]:
    """Split a template into one record per month, starting at ``start``.

    Installment ``i`` (1-based) lands ``i - 1`` months after ``start``. Pass
    ``group_id`` to regenerate an existing series; otherwise a new one is
    allocated. Nothing is written: persisting the records is up to the caller.
    """
    total = _check_installments(total_installments)
    validate_template(template)
    group_id = group_id or str(uuid4())

    records: list[TransactionRecord] = []
    for index in range(total):
        period = start.shift(index)
        records.append(
            TransactionRecord(
                owner_id=template.owner_id,
                couple_id=template.couple_id,
                type=template.type,
                description=template.description,
                amount=template.amount,
                category=template.category,
                month=period.month,
                year=period.year,
                is_recurring=True,
                recurring_group_id=group_id,
                installment_number=index + 1,
                total_installments=total,
            )
        )
    return records
