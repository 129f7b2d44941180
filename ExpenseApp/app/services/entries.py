# ExpenseApp/app/services/entries.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import ExpenseApp.app.common as common
from ExpenseApp.app.services.records import Entry, Supplier, normalize_payment_method
from ExpenseApp.app.utils.dates import parse_iso_date
from ExpenseApp.app.utils.money import InvalidAmount, to_decimal


class EntryValidationError(ValueError):
    pass


def _clean_date(value: Any) -> date:
    entry_date = parse_iso_date(value)
    if entry_date is None:
        raise EntryValidationError("Missing or invalid 'date' (expected YYYY-MM-DD)")
    return entry_date


def _clean_amount(value: Any):
    try:
        amount = to_decimal(value)
    except InvalidAmount:
        raise EntryValidationError(f"Missing or invalid 'amount': {value!r}")
    if amount < 0:
        raise EntryValidationError("Negative amounts are not allowed")
    return amount


def _clean_supplier(supplier_id: Any, suppliers_by_id: Dict[str, Supplier]) -> Supplier:
    if not supplier_id:
        raise EntryValidationError("Seleziona un fornitore")
    supplier = suppliers_by_id.get(str(supplier_id))
    if supplier is None:
        raise EntryValidationError(f"Unknown supplier {supplier_id!r}")
    return supplier


def _clean_method(value: Any, supplier: Optional[Supplier]) -> str:
    if value in (None, "") and supplier is not None:
        value = supplier.default_payment_method
    method = normalize_payment_method(value)
    if method is None:
        raise EntryValidationError(f"Unknown payment method {value!r}")
    return method


def build_entry(fields: Dict[str, Any], suppliers: Iterable[Supplier], entry_id: Optional[str] = None) -> Entry:
    """
    Validate a full set of entry attributes (as produced by
    ``mapping.entry_fields_from_payload``) and return a clean Entry.

    The payment method falls back to the supplier's default when missing.
    """
    suppliers_by_id = {s.id: s for s in suppliers}
    supplier = _clean_supplier(fields.get("supplier_id"), suppliers_by_id)

    return Entry(
        id=entry_id,
        date=_clean_date(fields.get("date")),
        supplier_id=supplier.id,
        amount=_clean_amount(fields.get("amount")),
        description=str(fields.get("description") or "").strip(),
        payment_method=_clean_method(fields.get("payment_method"), supplier),
    )


def clean_fields(fields: Dict[str, Any], suppliers: Iterable[Supplier]) -> Dict[str, Any]:
    """Validate only the attributes present, for partial updates."""
    suppliers_by_id = {s.id: s for s in suppliers}
    clean: Dict[str, Any] = {}
    supplier = None

    if "supplier_id" in fields:
        supplier = _clean_supplier(fields["supplier_id"], suppliers_by_id)
        clean["supplier_id"] = supplier.id
    if "date" in fields:
        clean["date"] = _clean_date(fields["date"])
    if "amount" in fields:
        clean["amount"] = _clean_amount(fields["amount"])
    if "description" in fields:
        clean["description"] = str(fields["description"] or "").strip()
    if "payment_method" in fields:
        clean["payment_method"] = _clean_method(fields["payment_method"], supplier)

    if not clean:
        raise EntryValidationError("Nothing to update")
    return clean


def create_entry(repo, fields: Dict[str, Any]) -> Entry:
    suppliers = repo.list_suppliers().items
    entry = build_entry(fields, suppliers)
    saved = repo.add_entry(entry)
    common.logger.info(f"Entry created: {saved.id} {entry.date} {entry.amount} {entry.payment_method}")
    return saved


def update_entry(repo, entry_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    suppliers = repo.list_suppliers().items
    clean = clean_fields(fields, suppliers)
    repo.update_entry(entry_id, clean)
    common.logger.info(f"Entry {entry_id} updated: {sorted(clean)}")
    return clean


def delete_entry(repo, entry_id: str) -> None:
    repo.delete_entry(entry_id)
    common.logger.info(f"Entry {entry_id} deleted")


def filter_entries(entries: Iterable[Entry], suppliers: Iterable[Supplier], query: Optional[str]) -> List[Entry]:
    """Case-insensitive match of ``query`` against supplier name or description."""
    entries = list(entries)
    if not query or not query.strip():
        return entries

    needle = query.strip().casefold()
    names = {s.id: (s.name or "").casefold() for s in suppliers}
    return [
        e for e in entries
        if needle in names.get(e.supplier_id, "") or needle in (e.description or "").casefold()
    ]


def newest_first(entries: Iterable[Entry]) -> List[Entry]:
    # unparseable dates sort last; ties keep store order
    return sorted(entries, key=lambda e: parse_iso_date(e.date) or date.min, reverse=True)
