import pytest

from categories import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    category_choices,
    category_label,
    is_known_category,
)
from models import TransactionType


def test_unknown_code_falls_back_to_spaced_code():
    assert category_label("unknown_code", "expense") == "unknown code"
    assert category_label("side_hustle_gig", TransactionType.income) == "side hustle gig"


def test_other_uses_configured_label():
    assert category_label("other", "income") == INCOME_CATEGORIES["other"] == "Outro"
    assert category_label("other", TransactionType.expense) == "Outro"


def test_known_codes_resolve_per_type():
    assert category_label("salary", "income") == "Salário"
    assert category_label("groceries", "expense") == "Supermercado"
    # Catalogs are separate: an expense code is unknown on the income side.
    assert category_label("groceries", "income") == "groceries"


def test_unrecognized_type_raises():
    with pytest.raises(ValueError):
        category_label("other", "transfer")


def test_each_catalog_has_other_entry():
    assert "other" in INCOME_CATEGORIES
    assert "other" in EXPENSE_CATEGORIES


def test_membership_check():
    assert is_known_category("rent_mortgage", "expense")
    assert not is_known_category("rent_mortgage", "income")


def test_choices_sorted_by_label():
    labels = [label for _code, label in category_choices("expense")]
    assert labels == sorted(labels, key=str.casefold)
    assert len(labels) == len(EXPENSE_CATEGORIES)
