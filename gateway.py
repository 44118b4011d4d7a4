from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from models import Transaction, TransactionType
from periods import MonthPeriod
from records import TransactionRecord, from_row, to_row, validate_record
from visibility import Viewer, can_access

logger = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    pass


class TransactionNotFound(GatewayError):
    pass


def visibility_clause(viewer: Viewer) -> ColumnElement[bool]:
    if viewer.couple_id:
        owned = and_(
            Transaction.user_id == viewer.id,
            or_(
                Transaction.couple_id.is_(None),
                Transaction.couple_id == viewer.couple_id,
            ),
        )
        return or_(Transaction.couple_id == viewer.couple_id, owned)
    return and_(Transaction.user_id == viewer.id, Transaction.couple_id.is_(None))


def _columns_for(record: TransactionRecord) -> dict[str, Any]:
    row = to_row(record)
    row.pop("id", None)
    row.pop("created_at", None)
    row["type"] = TransactionType(row["type"])
    return row


def _row_of(txn: Transaction) -> dict[str, Any]:
    return {column.key: getattr(txn, column.key) for column in Transaction.__table__.columns}


class TransactionGateway:
    """Reads and writes transactions inside one viewer's scope.

    Every write commits on its own unless it runs inside :meth:`atomic`.
    Store failures are rolled back and surfaced as :class:`GatewayError`.
    """

    def __init__(self, session: Session, viewer: Viewer) -> None:
        self.session = session
        self.viewer = viewer
        self._autocommit = True

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run several writes as one commit. On any failure none of them is kept."""
        self._autocommit = False
        try:
            yield
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("save", exc) from exc
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._autocommit = True

    def _commit(self) -> None:
        if self._autocommit:
            self.session.commit()
        else:
            self.session.flush()

    def _scoped(self):
        return select(Transaction).where(visibility_clause(self.viewer))

    def _load(self, transaction_id: str) -> Transaction:
        txn = self.session.scalar(
            self._scoped().where(Transaction.id == transaction_id)
        )
        if not txn:
            raise TransactionNotFound("Transaction not found")
        return txn

    def _fail(self, action: str, exc: SQLAlchemyError) -> GatewayError:
        self.session.rollback()
        logger.error(f"gateway_error: action={action} viewer={self.viewer.id} error={exc}")
        return GatewayError(f"Could not {action} transaction")

    def _check_writable(self, record: TransactionRecord) -> None:
        validate_record(record)
        if not can_access(self.viewer, record):
            raise GatewayError("Transaction is outside the viewer's scope")

    def list_transactions(self) -> list[TransactionRecord]:
        stmt = self._scoped().order_by(
            Transaction.year, Transaction.month, Transaction.created_at
        )
        try:
            rows = self.session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise self._fail("list", exc) from exc
        return [from_row(_row_of(txn)) for txn in rows]

    def get_transaction(self, transaction_id: str) -> TransactionRecord:
        try:
            txn = self._load(transaction_id)
        except SQLAlchemyError as exc:
            raise self._fail("load", exc) from exc
        return from_row(_row_of(txn))

    def insert_transaction(self, record: TransactionRecord) -> TransactionRecord:
        self._check_writable(record)
        txn = Transaction(**_columns_for(record))
        try:
            self.session.add(txn)
            self._commit()
            self.session.refresh(txn)
        except SQLAlchemyError as exc:
            raise self._fail("insert", exc) from exc
        logger.info(f"transaction_inserted: id={txn.id} owner={txn.user_id}")
        return from_row(_row_of(txn))

    def update_transaction(self, record: TransactionRecord) -> TransactionRecord:
        if record.id is None:
            raise TransactionNotFound("Transaction not found")
        self._check_writable(record)
        row = _columns_for(record)
        try:
            txn = self._load(record.id)
            for column, value in row.items():
                setattr(txn, column, value)
            self._commit()
            self.session.refresh(txn)
        except SQLAlchemyError as exc:
            raise self._fail("update", exc) from exc
        logger.info(f"transaction_updated: id={txn.id}")
        return from_row(_row_of(txn))

    def delete_transaction(self, transaction_id: str) -> bool:
        stmt = delete(Transaction).where(
            Transaction.id == transaction_id, visibility_clause(self.viewer)
        )
        try:
            result = self.session.execute(stmt)
            self._commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc
        deleted = result.rowcount > 0
        logger.info(f"transaction_deleted: id={transaction_id} deleted={deleted}")
        return deleted

    def delete_transactions_where(
        self, recurring_group_id: str, on_or_after: MonthPeriod
    ) -> int:
        stmt = delete(Transaction).where(
            Transaction.recurring_group_id == recurring_group_id,
            or_(
                Transaction.year > on_or_after.year,
                and_(
                    Transaction.year == on_or_after.year,
                    Transaction.month >= on_or_after.month,
                ),
            ),
            visibility_clause(self.viewer),
        )
        try:
            result = self.session.execute(stmt)
            self._commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc
        logger.info(
            f"series_deleted: group={recurring_group_id} from={on_or_after.year}-"
            f"{on_or_after.month:02d} count={result.rowcount}"
        )
        return result.rowcount
