# ExpenseApp/app/services/suppliers.py
from __future__ import annotations

from typing import Any, Iterable, List, Optional

import ExpenseApp.app.common as common
from ExpenseApp.app.data_store import RecordNotFound
from ExpenseApp.app.services.records import CASH, Supplier, normalize_payment_method


class SupplierValidationError(ValueError):
    pass


class DuplicateSupplier(SupplierValidationError):
    pass


def normalize_name(name: Any) -> str:
    """Trim and collapse inner whitespace: '  Rossi   srl ' -> 'Rossi srl'."""
    if name is None:
        return ""
    return " ".join(str(name).split())


def sort_suppliers(suppliers: Iterable[Supplier]) -> List[Supplier]:
    return sorted(suppliers, key=lambda s: ((s.name or "").casefold(), s.id or ""))


def _clean_method(value: Any) -> str:
    method = normalize_payment_method(value if value not in (None, "") else CASH)
    if method is None:
        raise SupplierValidationError(f"Metodo di pagamento non valido: {value!r}")
    return method


def _check_unique(name: str, suppliers: Iterable[Supplier], exclude_id: Optional[str] = None) -> None:
    key = name.casefold()
    for s in suppliers:
        if s.id != exclude_id and normalize_name(s.name).casefold() == key:
            raise DuplicateSupplier(f"Esiste già un fornitore con nome {name!r}")


def create_supplier(repo, name: Any, default_payment_method: Any = CASH) -> Supplier:
    clean = normalize_name(name)
    if not clean:
        raise SupplierValidationError("Inserisci il nome del fornitore")
    method = _clean_method(default_payment_method)

    _check_unique(clean, repo.list_suppliers().items)

    saved = repo.save_suppliers([Supplier(id=None, name=clean, default_payment_method=method)])
    common.logger.info(f"Supplier created: {clean} ({method})")
    return saved[0]


def update_supplier(repo, supplier_id: str, name: Any = None, default_payment_method: Any = None) -> Supplier:
    suppliers = repo.list_suppliers().items
    current = next((s for s in suppliers if s.id == supplier_id), None)
    if current is None:
        raise RecordNotFound(f"Supplier {supplier_id} not found")

    updated = Supplier(id=current.id, name=current.name,
                       default_payment_method=current.default_payment_method)
    if name is not None:
        clean = normalize_name(name)
        if not clean:
            raise SupplierValidationError("Inserisci il nome del fornitore")
        _check_unique(clean, suppliers, exclude_id=supplier_id)
        updated.name = clean
    if default_payment_method is not None:
        updated.default_payment_method = _clean_method(default_payment_method)

    saved = repo.save_suppliers([updated])
    common.logger.info(f"Supplier {supplier_id} updated: {updated.name} ({updated.default_payment_method})")
    return saved[0]


def delete_supplier(repo, supplier_id: str) -> None:
    # entries that still reference the supplier are reported as "Fornitore non trovato"
    repo.delete_supplier(supplier_id)
    common.logger.info(f"Supplier {supplier_id} deleted")
