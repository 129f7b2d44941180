# ExpenseApp/app/services/mapping.py
"""
Field-name translation at the application boundaries.

Store rows use snake_case column names (``supplier_id``, ``payment_method``,
``default_payment_method``, ``is_admin``). API payloads and the local mirror
use the camelCase names of the browser client (``supplierId``,
``paymentMethod``, ``defaultPaymentMethod``, ``isAdmin``). Records in
between use Python attribute names. Nothing outside this module should
know either external spelling.

Conversions are tolerant: a malformed stored value is passed through as-is
so the aggregation engine can report it instead of the read failing.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List

from ExpenseApp.app.services.records import Entry, Supplier, User
from ExpenseApp.app.utils.money import InvalidAmount, money, to_decimal


# ---- record attribute -> store column ----
ENTRY_COLUMNS = {
    "id": "id",
    "date": "date",
    "supplier_id": "supplier_id",
    "amount": "amount",
    "description": "description",
    "payment_method": "payment_method",
}

SUPPLIER_COLUMNS = {
    "id": "id",
    "name": "name",
    "default_payment_method": "default_payment_method",
}

USER_COLUMNS = {
    "id": "id",
    "username": "username",
    "password": "password",
    "is_admin": "is_admin",
}

# ---- record attribute -> payload key ----
ENTRY_PAYLOAD_KEYS = {
    "id": "id",
    "date": "date",
    "supplier_id": "supplierId",
    "amount": "amount",
    "description": "description",
    "payment_method": "paymentMethod",
}

SUPPLIER_PAYLOAD_KEYS = {
    "id": "id",
    "name": "name",
    "default_payment_method": "defaultPaymentMethod",
}

USER_PAYLOAD_KEYS = {
    "id": "id",
    "username": "username",
    "is_admin": "isAdmin",
}


def _date_out(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _amount_out(value: Any, as_float: bool) -> Any:
    try:
        amount = to_decimal(value)
    except InvalidAmount:
        return value
    return money(amount) if as_float else str(amount)


# ---------------------------------------------------------------------------
# Store rows
# ---------------------------------------------------------------------------

def supplier_from_row(row: Dict[str, Any]) -> Supplier:
    return Supplier(
        id=str(row.get("id")),
        name=row.get("name") or "",
        default_payment_method=row.get("default_payment_method"),
    )


def supplier_to_row(supplier: Supplier) -> Dict[str, Any]:
    row = {column: getattr(supplier, attr) for attr, column in SUPPLIER_COLUMNS.items()}
    if row["id"] is None:
        del row["id"]
    return row


def entry_from_row(row: Dict[str, Any]) -> Entry:
    return Entry(
        id=str(row["id"]) if row.get("id") is not None else None,
        date=row.get("date"),
        supplier_id=str(row.get("supplier_id") or ""),
        amount=row.get("amount"),
        description=row.get("description") or "",
        payment_method=row.get("payment_method"),
    )


def entry_to_row(entry: Entry) -> Dict[str, Any]:
    row = entry_fields_to_row({attr: getattr(entry, attr) for attr in ENTRY_COLUMNS})
    if row.get("id") is None:
        row.pop("id", None)
    return row


def entry_fields_to_row(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a partial set of Entry attributes into store columns."""
    row = {}
    for attr, value in fields.items():
        column = ENTRY_COLUMNS.get(attr)
        if column is None:
            raise KeyError(f"Unknown entry field: {attr}")
        if attr == "date":
            value = _date_out(value)
        elif attr == "amount":
            value = _amount_out(value, as_float=False)
        row[column] = value
    return row


def user_from_row(row: Dict[str, Any]) -> User:
    return User(
        id=str(row["id"]) if row.get("id") is not None else None,
        username=row.get("username") or "",
        password=row.get("password") or "",
        is_admin=bool(row.get("is_admin")),
    )


def user_to_row(user: User) -> Dict[str, Any]:
    row = {column: getattr(user, attr) for attr, column in USER_COLUMNS.items()}
    if row["id"] is None:
        del row["id"]
    return row


# ---------------------------------------------------------------------------
# API payloads (also the local mirror format)
# ---------------------------------------------------------------------------

def supplier_to_payload(supplier: Supplier) -> Dict[str, Any]:
    return {key: getattr(supplier, attr) for attr, key in SUPPLIER_PAYLOAD_KEYS.items()}


def supplier_from_payload(payload: Dict[str, Any]) -> Supplier:
    return Supplier(
        id=payload.get("id"),
        name=payload.get("name") or "",
        default_payment_method=payload.get("defaultPaymentMethod"),
    )


def entry_to_payload(entry: Entry) -> Dict[str, Any]:
    payload = {key: getattr(entry, attr) for attr, key in ENTRY_PAYLOAD_KEYS.items()}
    payload["date"] = _date_out(payload["date"])
    payload["amount"] = _amount_out(payload["amount"], as_float=True)
    return payload


def entry_from_payload(payload: Dict[str, Any]) -> Entry:
    return Entry(
        id=payload.get("id"),
        date=payload.get("date"),
        supplier_id=payload.get("supplierId") or "",
        amount=payload.get("amount"),
        description=payload.get("description") or "",
        payment_method=payload.get("paymentMethod"),
    )


def entry_fields_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Only the Entry attributes present in the payload (for partial updates)."""
    fields = {}
    for attr, key in ENTRY_PAYLOAD_KEYS.items():
        if attr != "id" and key in payload:
            fields[attr] = payload[key]
    return fields


def user_to_payload(user: User) -> Dict[str, Any]:
    return {key: getattr(user, attr) for attr, key in USER_PAYLOAD_KEYS.items()}


def user_from_payload(payload: Dict[str, Any]) -> User:
    return User(
        id=payload.get("id"),
        username=payload.get("username") or "",
        password=payload.get("password") or "",
        is_admin=bool(payload.get("isAdmin")),
    )


def to_payloads(items: Iterable[Any], converter) -> List[Dict[str, Any]]:
    return [converter(item) for item in items]


# ---------------------------------------------------------------------------
# Aggregation result
# ---------------------------------------------------------------------------

def totals_to_payload(totals) -> Dict[str, Any]:
    return {
        "cash_total": money(totals.cash_total),
        "transfer_total": money(totals.transfer_total),
        "grand_total": money(totals.grand_total),
        "count": totals.count,
    }


def _supplier_totals_payload(bucket) -> Dict[str, Any]:
    return {
        "supplierId": bucket.supplier.id,
        "name": bucket.supplier.name,
        "totals": totals_to_payload(bucket.totals),
        "entries": [entry_to_payload(e) for e in bucket.entries],
    }


def aggregation_to_payload(result) -> Dict[str, Any]:
    return {
        "totals": totals_to_payload(result.totals),
        "unassigned": totals_to_payload(result.unassigned),
        "perSupplier": [_supplier_totals_payload(b) for b in result.per_supplier.values()],
        "perMonth": [
            {
                "year": group.year,
                "month": group.month,
                "label": group.label,
                "totals": totals_to_payload(group.totals),
                "unassigned": totals_to_payload(group.unassigned),
                "perSupplier": [_supplier_totals_payload(b) for b in group.per_supplier.values()],
            }
            for group in result.per_month.values()
        ],
        "warnings": [w.to_dict() for w in result.warnings],
        "skipped": result.skipped,
    }
