# ExpenseApp/app/services/records.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

CASH = "contanti"
TRANSFER = "bonifico"
PAYMENT_METHODS = (CASH, TRANSFER)

PAYMENT_METHOD_LABELS = {
    CASH: "Contanti",
    TRANSFER: "Bonifico",
}

PAYMENT_METHOD_ALIASES = {
    "contanti": CASH,
    "cash": CASH,
    "bonifico": TRANSFER,
    "transfer": TRANSFER,
    "bank_transfer": TRANSFER,
}

SUPPLIER_NOT_FOUND = "Fornitore non trovato"


def normalize_payment_method(value: Any) -> Optional[str]:
    """Map a stored or submitted payment method onto CASH / TRANSFER, None if unknown."""
    if not isinstance(value, str):
        return None
    return PAYMENT_METHOD_ALIASES.get(value.strip().lower())


@dataclass
class Supplier:
    id: str
    name: str
    default_payment_method: str = CASH


@dataclass
class Entry:
    # date and amount hold whatever the store returned; the aggregation
    # engine validates them per record
    id: Optional[str]
    date: Any
    supplier_id: str
    amount: Any
    description: str = ""
    payment_method: str = CASH


@dataclass
class User:
    id: Optional[str]
    username: str
    password: str = ""
    is_admin: bool = False


@dataclass(frozen=True)
class RecordWarning:
    code: str  # invalid_date, invalid_amount, invalid_payment_method, unknown_supplier
    message: str
    entry_id: Optional[str] = None

    def to_dict(self):
        return {"code": self.code, "message": self.message, "entryId": self.entry_id}
