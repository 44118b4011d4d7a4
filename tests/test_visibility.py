from decimal import Decimal

import pytest

from models import TransactionType
from records import TransactionRecord
from visibility import Viewer, can_access, visible_transactions


def _txn(owner_id, couple_id=None, id="t1"):
    return TransactionRecord(
        id=id,
        owner_id=owner_id,
        couple_id=couple_id,
        type=TransactionType.expense,
        description="Market",
        amount=Decimal("12.00"),
        category="groceries",
        month=1,
        year=2025,
    )


def test_couple_transactions_are_visible_regardless_of_owner():
    viewer = Viewer(id="ana", couple_id="c1")
    assert can_access(viewer, _txn("bruno", "c1"))
    assert can_access(viewer, _txn("ana", "c1"))


def test_other_owners_individual_transactions_are_never_visible():
    assert not can_access(Viewer(id="ana", couple_id="c1"), _txn("bruno", None))
    assert not can_access(Viewer(id="ana"), _txn("bruno", None))


def test_own_individual_transactions_stay_visible_after_pairing():
    assert can_access(Viewer(id="ana", couple_id="c1"), _txn("ana", None))
    assert can_access(Viewer(id="ana"), _txn("ana", None))


def test_own_transactions_from_another_couple_are_hidden():
    assert not can_access(Viewer(id="ana", couple_id="c2"), _txn("ana", "c1"))
    assert not can_access(Viewer(id="ana"), _txn("ana", "c1"))


def test_other_couples_are_hidden():
    assert not can_access(Viewer(id="ana", couple_id="c1"), _txn("carla", "c2"))


@pytest.mark.parametrize("txn", [_txn("ana"), _txn("ana", "c1"), _txn("bruno", "c1")])
def test_missing_viewer_sees_nothing(txn):
    assert not can_access(None, txn)


def test_visible_transactions_keeps_input_order():
    viewer = Viewer(id="ana", couple_id="c1")
    items = [
        _txn("bruno", "c1", id="1"),
        _txn("bruno", None, id="2"),
        _txn("ana", None, id="3"),
        _txn("carla", "c9", id="4"),
    ]
    assert [t.id for t in visible_transactions(viewer, items)] == ["1", "3"]
    assert visible_transactions(None, items) == []
