from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from sqlalchemy.orm import Session

from gateway import GatewayError, TransactionGateway, TransactionNotFound
from metrics import (
    PeriodSummary,
    category_breakdown,
    summarize_period,
    transactions_for_period,
)
from models import TransactionType
from periods import MonthPeriod
from recurrence import expand_series, single_record
from records import TransactionRecord, TransactionTemplate, TransactionValidationError
from schemas import TransactionIn
from visibility import Viewer, can_access, visible_transactions

logger = logging.getLogger(__name__)


class PartialSeriesFailure(GatewayError):
    """Some installments of a series were written and some were not."""

    def __init__(
        self,
        group_id: str,
        saved: list[TransactionRecord],
        failed_installments: list[int],
    ) -> None:
        self.group_id = group_id
        self.saved = saved
        self.failed_installments = failed_installments
        numbers = ", ".join(str(n) for n in failed_installments)
        super().__init__(f"Installments {numbers} of the series could not be saved")


class TransactionService:
    def __init__(self, session: Session, viewer: Viewer) -> None:
        self.session = session
        self.viewer = viewer
        self.gateway = TransactionGateway(session, viewer)

    def list(
        self,
        period: Optional[MonthPeriod] = None,
        txn_type: Optional[TransactionType] = None,
    ) -> list[TransactionRecord]:
        records = visible_transactions(self.viewer, self.gateway.list_transactions())
        if period is not None:
            return transactions_for_period(records, period, txn_type)
        if txn_type is not None:
            return [record for record in records if record.type == txn_type]
        return records

    def get(self, transaction_id: str) -> TransactionRecord:
        record = self.gateway.get_transaction(transaction_id)
        if not can_access(self.viewer, record):
            raise TransactionNotFound("Transaction not found")
        return record

    def create(self, data: TransactionIn) -> list[TransactionRecord]:
        template = TransactionTemplate(
            owner_id=self.viewer.id,
            couple_id=self.viewer.couple_id,
            type=data.type,
            description=data.description,
            amount=data.amount,
            category=data.category,
        )
        period = MonthPeriod(year=data.year, month=data.month)
        if not data.is_recurring:
            return [self.gateway.insert_transaction(single_record(template, period))]
        records = expand_series(template, period, data.installments)
        return self._persist_series(records)

    def update(self, transaction_id: str, data: TransactionIn) -> list[TransactionRecord]:
        """Apply an edit.

        Editing any installment regenerates its whole series from the submitted
        values: the edited row becomes installment 1 in place, the other rows
        are replaced. Turning a series into a plain transaction keeps only the
        edited row. Turning a plain transaction into a series makes it the
        first installment of a new one.

        The edit is written as one unit, so a failure leaves the stored
        series exactly as it was.
        """
        current = self.get(transaction_id)
        if data.type != current.type:
            raise TransactionValidationError("Transaction type cannot be changed")
        template = replace(
            current.template,
            description=data.description,
            amount=data.amount,
            category=data.category,
        )
        period = MonthPeriod(year=data.year, month=data.month)

        if current.is_recurring:
            siblings = [
                record
                for record in self._series_rows(current.recurring_group_id)
                if record.id != current.id
            ]
        else:
            siblings = []

        if data.is_recurring:
            records = expand_series(
                template,
                period,
                data.installments,
                group_id=current.recurring_group_id if current.is_recurring else None,
            )
        else:
            records = [single_record(template, period)]

        first, rest = records[0], records[1:]
        with self.gateway.atomic():
            saved = [
                self.gateway.update_transaction(
                    replace(first, id=current.id, created_at=current.created_at)
                )
            ]
            saved.extend(self.gateway.insert_transaction(record) for record in rest)
            for record in siblings:
                self.gateway.delete_transaction(record.id)
        logger.info(
            f"transaction_edited: id={current.id} rows={len(saved)} "
            f"replaced={len(siblings)}"
        )
        return saved

    def delete(self, transaction_id: str) -> None:
        self.get(transaction_id)
        if not self.gateway.delete_transaction(transaction_id):
            raise TransactionNotFound("Transaction not found")

    def delete_future(self, transaction_id: str) -> int:
        record = self.get(transaction_id)
        if not record.is_recurring:
            self.delete(transaction_id)
            return 1
        return self.gateway.delete_transactions_where(
            record.recurring_group_id, record.period
        )

    def _series_rows(self, group_id: str) -> list[TransactionRecord]:
        rows = [
            record for record in self.list() if record.recurring_group_id == group_id
        ]
        return sorted(rows, key=lambda record: record.installment_number or 0)

    def _persist_series(self, records: list[TransactionRecord]) -> list[TransactionRecord]:
        group_id = records[0].recurring_group_id
        saved: list[TransactionRecord] = []
        failed: list[int] = []
        for record in records:
            try:
                saved.append(self.gateway.insert_transaction(record))
            except GatewayError as exc:
                logger.warning(
                    f"series_installment_failed: group={group_id} "
                    f"installment={record.installment_number} error={exc}"
                )
                failed.append(record.installment_number)

        if failed and not saved:
            raise GatewayError("Could not save any installment of the series")
        if failed:
            raise PartialSeriesFailure(group_id, saved, failed)
        logger.info(f"series_saved: group={group_id} installments={len(saved)}")
        return saved


class MetricsService:
    def __init__(self, session: Session, viewer: Viewer) -> None:
        self.session = session
        self.viewer = viewer
        self.transactions = TransactionService(session, viewer)

    def summary(self, period: MonthPeriod) -> PeriodSummary:
        return summarize_period(self.transactions.list(), period)

    def category_breakdown(
        self, period: MonthPeriod, txn_type: TransactionType
    ) -> list[dict[str, object]]:
        return category_breakdown(self.transactions.list(), period, txn_type)
