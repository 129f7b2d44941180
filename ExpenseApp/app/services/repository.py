# ExpenseApp/app/services/repository.py
"""
Two-tier access to the store.

Reads:  try the store; on success overwrite the mirror slot, on failure
        serve the mirror snapshot flagged as stale. Never merge the two.
Writes: call the store; on success re-read the slot so the mirror follows,
        on failure mark the slot stale and re-raise.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import ExpenseApp.app.common as common
from ExpenseApp.app.data_store import ExpenseStore, StoreError, get_store
from ExpenseApp.app.services import mapping
from ExpenseApp.app.services.local_mirror import ALL_SCOPE, LocalMirror
from ExpenseApp.app.services.records import Entry, Supplier, User
from ExpenseApp.app.utils.dates import parse_iso_date

REMOTE = "remote"
MIRROR = "mirror"


@dataclass
class ReadResult:
    items: List[Any] = field(default_factory=list)
    source: str = REMOTE
    stale: bool = False
    saved_at: Optional[str] = None
    error: Optional[str] = None

    def meta(self) -> Dict[str, Any]:
        return {"source": self.source, "stale": self.stale, "savedAt": self.saved_at, "error": self.error}


def _scope(year: Optional[int]) -> str:
    return ALL_SCOPE if year is None else str(year)


def _in_year(payload: Dict[str, Any], year: int) -> bool:
    entry_date = parse_iso_date(payload.get("date"))
    return entry_date is not None and entry_date.year == year


class ExpenseRepository:

    def __init__(self, store: ExpenseStore, mirror: LocalMirror):
        self.store = store
        self.mirror = mirror

    def _read(self, slot: str, fetch: Callable[[], List[Any]], to_payload, from_payload,
              year: Optional[int] = None) -> ReadResult:
        try:
            items = fetch()
        except StoreError as ex:
            common.logger.warning(f"Store read of {slot} failed, using local mirror: {ex}")
            return self._from_mirror(slot, from_payload, year, str(ex))

        self.mirror.save(slot, mapping.to_payloads(items, to_payload), scope=_scope(year))
        return ReadResult(items=items, source=REMOTE)

    def _from_mirror(self, slot: str, from_payload, year: Optional[int], error: str) -> ReadResult:
        snapshot = self.mirror.load(slot)
        if snapshot is None:
            return ReadResult(items=[], source=MIRROR, stale=True, error=error)

        payloads = snapshot.items
        if snapshot.scope != _scope(year):
            if snapshot.scope == ALL_SCOPE and year is not None:
                payloads = [p for p in payloads if _in_year(p, year)]
            else:
                # snapshot is for another year; nothing to show for this one
                payloads = []

        return ReadResult(
            items=[from_payload(p) for p in payloads],
            source=MIRROR,
            stale=True,
            saved_at=snapshot.saved_at,
            error=error,
        )

    def _write(self, slot: str, operation: Callable[[], Any], refresh: Callable[[], ReadResult]) -> Any:
        try:
            result = operation()
        except StoreError:
            self.mirror.mark_stale(slot)
            raise

        refreshed = refresh()
        if refreshed.source != REMOTE:
            self.mirror.mark_stale(slot)
        return result

    # suppliers

    def list_suppliers(self) -> ReadResult:
        return self._read("suppliers", self.store.list_suppliers,
                          mapping.supplier_to_payload, mapping.supplier_from_payload)

    def save_suppliers(self, suppliers: List[Supplier]) -> List[Supplier]:
        return self._write("suppliers", lambda: self.store.upsert_suppliers(suppliers), self.list_suppliers)

    def delete_supplier(self, supplier_id: str) -> None:
        self._write("suppliers", lambda: self.store.delete_supplier(supplier_id), self.list_suppliers)

    # entries

    def list_entries(self, year: Optional[int] = None) -> ReadResult:
        return self._read("entries", lambda: self.store.list_entries(year),
                          mapping.entry_to_payload, mapping.entry_from_payload, year=year)

    def _refresh_entries(self) -> ReadResult:
        snapshot = self.mirror.load("entries")
        year = None
        if snapshot is not None and snapshot.scope != ALL_SCOPE:
            year = int(snapshot.scope)
        return self.list_entries(year)

    def add_entry(self, entry: Entry) -> Entry:
        return self._write("entries", lambda: self.store.insert_entry(entry), self._refresh_entries)

    def update_entry(self, entry_id: str, fields: Dict[str, Any]) -> None:
        self._write("entries", lambda: self.store.update_entry(entry_id, fields), self._refresh_entries)

    def delete_entry(self, entry_id: str) -> None:
        self._write("entries", lambda: self.store.delete_entry(entry_id), self._refresh_entries)

    # users

    def list_users(self) -> ReadResult:
        # mirrored payloads never carry passwords
        return self._read("users", self.store.list_users,
                          mapping.user_to_payload, mapping.user_from_payload)

    def find_user(self, username: str) -> Optional[User]:
        return self.store.find_user(username)

    def add_user(self, user: User) -> User:
        return self._write("users", lambda: self.store.insert_user(user), self.list_users)

    def update_user_password(self, username: str, new_password: str) -> None:
        self._write("users", lambda: self.store.update_user_password(username, new_password), self.list_users)

    def delete_user(self, user_id: str) -> None:
        self._write("users", lambda: self.store.delete_user(user_id), self.list_users)


def get_repository() -> ExpenseRepository:
    return ExpenseRepository(get_store(), LocalMirror())
