from decimal import Decimal

import pytest

from models import TransactionType
from periods import MonthPeriod
from recurrence import expand_series, single_record
from records import TransactionTemplate, TransactionValidationError


def _template(**overrides) -> TransactionTemplate:
    values = dict(
        owner_id="user-a",
        couple_id="couple-1",
        type=TransactionType.expense,
        description="Notebook",
        amount=Decimal("250.00"),
        category="credit_card",
    )
    values.update(overrides)
    return TransactionTemplate(**values)


def test_expand_series_wraps_december_into_next_year():
    records = expand_series(_template(), MonthPeriod(year=2024, month=11), 4)

    assert [(r.month, r.year) for r in records] == [
        (11, 2024),
        (12, 2024),
        (1, 2025),
        (2, 2025),
    ]
    assert [r.installment_number for r in records] == [1, 2, 3, 4]
    assert {r.total_installments for r in records} == {4}


@pytest.mark.parametrize("total", [1, 2, 12, 24, 48])
def test_expand_series_produces_one_record_per_month(total):
    start = MonthPeriod(year=2023, month=7)
    records = expand_series(_template(), start, total)

    assert len(records) == total
    assert [r.installment_number for r in records] == list(range(1, total + 1))
    for previous, current in zip(records, records[1:]):
        assert current.period == previous.period.shift(1)
        assert current.period > previous.period
    assert records[0].period == start


def test_expand_series_copies_template_fields_and_shares_group():
    template = _template()
    records = expand_series(template, MonthPeriod(year=2024, month=1), 3)

    assert len({r.recurring_group_id for r in records}) == 1
    for record in records:
        assert record.template == template
        assert record.is_recurring is True
        assert record.id is None
        assert record.created_at is None


def test_expand_series_reuses_supplied_group_id():
    records = expand_series(
        _template(), MonthPeriod(year=2024, month=1), 2, group_id="group-42"
    )
    assert [r.recurring_group_id for r in records] == ["group-42", "group-42"]


def test_expand_series_allocates_distinct_groups_per_call():
    first = expand_series(_template(), MonthPeriod(year=2024, month=1), 2)
    second = expand_series(_template(), MonthPeriod(year=2024, month=1), 2)
    assert first[0].recurring_group_id != second[0].recurring_group_id


def test_single_installment_series_is_still_tagged_recurring():
    (record,) = expand_series(_template(), MonthPeriod(year=2024, month=5), 1)
    assert record.is_recurring is True
    assert record.installment_number == 1
    assert record.total_installments == 1


@pytest.mark.parametrize("total", [0, 49, -3, 2.5, "12", True, None])
def test_expand_series_rejects_invalid_installment_counts(total):
    with pytest.raises(TransactionValidationError):
        expand_series(_template(), MonthPeriod(year=2024, month=1), total)


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": Decimal("0")},
        {"amount": Decimal("-10")},
        {"amount": Decimal("NaN")},
        {"amount": Decimal("Infinity")},
        {"description": "   "},
        {"category": "salary"},
        {"owner_id": ""},
    ],
)
def test_expand_series_rejects_invalid_templates(overrides):
    with pytest.raises(TransactionValidationError):
        expand_series(_template(**overrides), MonthPeriod(year=2024, month=1), 3)


def test_single_record_has_no_installment_fields():
    record = single_record(
        _template(type=TransactionType.income, category="salary", couple_id=None),
        MonthPeriod(year=2024, month=3),
    )
    assert record.is_recurring is False
    assert record.recurring_group_id is None
    assert record.installment_number is None
    assert record.total_installments is None
    assert (record.month, record.year) == (3, 2024)
