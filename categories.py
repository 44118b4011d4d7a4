from typing import Union

from models import TransactionType

INCOME_CATEGORIES: dict[str, str] = {
    "bonus": "Bônus",
    "freelance": "Freelance",
    "gifts": "Presentes",
    "investments": "Investimentos",
    "other": "Outro",
    "salary": "Salário",
}

EXPENSE_CATEGORIES: dict[str, str] = {
    "rent_mortgage": "Aluguel/Moradia",
    "subscriptions": "Assinaturas (Streaming, Apps)",
    "credit_card": "Cartão de Crédito",
    "utilities": "Contas (Gás, Luz, Água)",
    "personal_care": "Cuidados Pessoais",
    "debt_payment": "Pagamento de Dívidas",
    "tithes": "Dízimos",
    "gifts_donations": "Presentes/Doações",
    "education": "Educação",
    "internet_phone": "Internet/Telefone",
    "entertainment": "Lazer/Entretenimento",
    "other": "Outro",
    "pets": "Animais de Estimação",
    "savings": "Poupança/Investimentos",
    "healthcare": "Saúde",
    "groceries": "Supermercado",
    "transportation": "Transporte",
    "clothing": "Vestuário",
    "travel": "Viagens",
}


def _catalog(txn_type: Union[TransactionType, str]) -> dict[str, str]:
    # Raises ValueError for anything outside the closed set of types.
    txn_type = TransactionType(txn_type)
    if txn_type == TransactionType.income:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


def category_label(code: str, txn_type: Union[TransactionType, str]) -> str:
    catalog = _catalog(txn_type)
    label = catalog.get(code)
    if label is not None:
        return label
    return code.replace("_", " ")


def is_known_category(code: str, txn_type: Union[TransactionType, str]) -> bool:
    return code in _catalog(txn_type)


def category_choices(txn_type: Union[TransactionType, str]) -> list[tuple[str, str]]:
    """Catalog entries as ``(code, label)`` pairs, ordered by label for pickers."""
    catalog = _catalog(txn_type)
    return sorted(catalog.items(), key=lambda item: item[1].casefold())
