from dataclasses import replace
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from database import Base
from gateway import GatewayError, TransactionGateway, TransactionNotFound
from models import Transaction, TransactionType
from periods import MonthPeriod
from recurrence import expand_series
from records import (
    TransactionRecord,
    TransactionTemplate,
    TransactionValidationError,
    from_row,
    to_row,
)
from visibility import Viewer

ANA = Viewer(id="ana", couple_id="c1")
BRUNO = Viewer(id="bruno", couple_id="c1")
CARLA = Viewer(id="carla")


def make_session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine, expire_on_commit=False)


def _record(viewer: Viewer, **overrides) -> TransactionRecord:
    values = dict(
        owner_id=viewer.id,
        couple_id=viewer.couple_id,
        type=TransactionType.expense,
        description="Pharmacy",
        amount=Decimal("42.90"),
        category="healthcare",
        month=5,
        year=2025,
    )
    values.update(overrides)
    return TransactionRecord(**values)


def test_inserted_series_round_trips_through_the_store():
    session = make_session()
    gateway = TransactionGateway(session, ANA)
    template = TransactionTemplate(
        owner_id=ANA.id,
        couple_id=ANA.couple_id,
        type=TransactionType.expense,
        description="Sofa",
        amount=Decimal("199.99"),
        category="other",
    )
    generated = expand_series(template, MonthPeriod(year=2024, month=12), 3)

    saved = [gateway.insert_transaction(record) for record in generated]
    listed = gateway.list_transactions()

    assert listed == saved
    for original, stored in zip(generated, saved):
        assert stored.id is not None
        assert isinstance(stored.created_at, datetime)
        assert replace(stored, id=None, created_at=None) == original
        assert from_row(to_row(stored)) == stored


def test_from_row_reports_missing_columns():
    with pytest.raises(TransactionValidationError, match="amount"):
        from_row({"id": "1", "user_id": "u", "type": "income", "description": "x",
                  "category": "salary", "month": 1, "year": 2024,
                  "created_at": "2024-01-01T10:00:00"})


def test_from_row_accepts_wire_values():
    record = from_row(
        {
            "id": "abc",
            "user_id": "u1",
            "couple_id": None,
            "type": "income",
            "description": "Salary",
            "amount": "3500.5",
            "category": "salary",
            "month": "4",
            "year": 2025,
            "created_at": "2025-04-05T09:30:00",
            "is_recurring": False,
        }
    )
    assert record.type == TransactionType.income
    assert record.amount == Decimal("3500.50")
    assert record.month == 4
    assert record.created_at == datetime(2025, 4, 5, 9, 30)
    assert record.recurring_group_id is None


def test_list_is_scoped_to_viewer():
    session = make_session()
    shared = TransactionGateway(session, BRUNO).insert_transaction(_record(BRUNO))
    mine = TransactionGateway(session, ANA).insert_transaction(
        _record(ANA, couple_id=None, description="Mine")
    )
    TransactionGateway(session, CARLA).insert_transaction(_record(CARLA))

    ana_ids = {r.id for r in TransactionGateway(session, ANA).list_transactions()}
    bruno_ids = {r.id for r in TransactionGateway(session, BRUNO).list_transactions()}

    assert ana_ids == {shared.id, mine.id}
    assert bruno_ids == {shared.id}
    assert len(TransactionGateway(session, CARLA).list_transactions()) == 1


def test_cannot_write_outside_scope():
    session = make_session()
    with pytest.raises(GatewayError):
        TransactionGateway(session, CARLA).insert_transaction(_record(ANA))

    carla_row = TransactionGateway(session, CARLA).insert_transaction(_record(CARLA))
    with pytest.raises(TransactionNotFound):
        TransactionGateway(session, ANA).get_transaction(carla_row.id)
    assert TransactionGateway(session, ANA).delete_transaction(carla_row.id) is False
    assert session.get(Transaction, carla_row.id) is not None


def test_update_keeps_created_at():
    session = make_session()
    gateway = TransactionGateway(session, ANA)
    saved = gateway.insert_transaction(_record(ANA))

    updated = gateway.update_transaction(
        replace(saved, amount=Decimal("10.00"), created_at=datetime(1999, 1, 1))
    )

    assert updated.amount == Decimal("10.00")
    assert updated.created_at == saved.created_at
    assert updated.id == saved.id


def test_update_unknown_id_raises_not_found():
    session = make_session()
    with pytest.raises(TransactionNotFound):
        TransactionGateway(session, ANA).update_transaction(_record(ANA, id="missing"))


def test_delete_where_removes_series_from_period_on():
    session = make_session()
    gateway = TransactionGateway(session, ANA)
    template = _record(ANA).template
    for record in expand_series(template, MonthPeriod(year=2024, month=11), 5):
        gateway.insert_transaction(record)
    other = gateway.insert_transaction(_record(ANA, month=2, year=2025))
    group_id = gateway.list_transactions()[0].recurring_group_id

    deleted = gateway.delete_transactions_where(group_id, MonthPeriod(year=2025, month=1))

    remaining = gateway.list_transactions()
    assert deleted == 3
    assert [(r.month, r.year) for r in remaining if r.is_recurring] == [
        (11, 2024),
        (12, 2024),
    ]
    assert other in remaining


def test_store_failures_become_gateway_errors(monkeypatch):
    session = make_session()
    gateway = TransactionGateway(session, ANA)

    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "commit", broken_commit)

    with pytest.raises(GatewayError, match="insert"):
        gateway.insert_transaction(_record(ANA))


def test_invalid_records_are_rejected_before_writing():
    session = make_session()
    gateway = TransactionGateway(session, ANA)
    with pytest.raises(TransactionValidationError):
        gateway.insert_transaction(_record(ANA, is_recurring=True))
    with pytest.raises(TransactionValidationError):
        gateway.insert_transaction(_record(ANA, category="salary"))
    assert gateway.list_transactions() == []


def test_atomic_writes_are_all_or_nothing():
    session = make_session()
    gateway = TransactionGateway(session, ANA)
    kept = gateway.insert_transaction(_record(ANA, description="Kept"))

    with pytest.raises(GatewayError):
        with gateway.atomic():
            gateway.insert_transaction(_record(ANA, description="Dropped"))
            gateway.delete_transaction(kept.id)
            raise GatewayError("Could not insert transaction")

    assert [r.description for r in gateway.list_transactions()] == ["Kept"]

    with gateway.atomic():
        gateway.insert_transaction(_record(ANA, description="Second"))
    assert len(gateway.list_transactions()) == 2
