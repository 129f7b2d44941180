# ExpenseApp/app/data_store.py
"""
Store adapters for the three tables (suppliers, entries, users).

``SupabaseStore`` talks to the hosted PostgREST endpoint, ``SqlStore`` keeps
the same tables in the app's own database through Flask-SQLAlchemy. Both
return records built by ``services.mapping`` and raise ``StoreError`` for any
remote-operation failure.
"""
from __future__ import annotations

import traceback
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import requests
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

import ExpenseApp.app.common as common
from ExpenseApp.app import app, db
from ExpenseApp.app.models.entry import EntryRow
from ExpenseApp.app.models.supplier import SupplierRow
from ExpenseApp.app.models.user import UserRow
from ExpenseApp.app.services import mapping
from ExpenseApp.app.services.records import Entry, Supplier, User
from ExpenseApp.app.utils.dates import parse_iso_date
from ExpenseApp.app.utils.money import to_decimal


class StoreError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RecordNotFound(LookupError):
    pass


class ExpenseStore:
    """Contract shared by every store adapter."""

    def list_suppliers(self) -> List[Supplier]:
        raise NotImplementedError

    def upsert_suppliers(self, suppliers: List[Supplier]) -> List[Supplier]:
        raise NotImplementedError

    def delete_supplier(self, supplier_id: str) -> None:
        raise NotImplementedError

    def list_entries(self, year: Optional[int] = None) -> List[Entry]:
        raise NotImplementedError

    def insert_entry(self, entry: Entry) -> Entry:
        raise NotImplementedError

    def update_entry(self, entry_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete_entry(self, entry_id: str) -> None:
        raise NotImplementedError

    def list_users(self) -> List[User]:
        raise NotImplementedError

    def find_user(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def update_user_password(self, username: str, new_password: str) -> None:
        raise NotImplementedError

    def insert_user(self, user: User) -> User:
        raise NotImplementedError

    def delete_user(self, user_id: str) -> None:
        raise NotImplementedError


class SupabaseStore(ExpenseStore):

    def __init__(self, base_url: str, api_key: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/") + "/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, table: str, params=None, json=None, prefer: Optional[str] = None):
        url = f"{self.base_url}/{table}"
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer

        try:
            response = self.session.request(method, url, params=params, json=json,
                                            headers=headers, timeout=self.timeout)
        except requests.RequestException as ex:
            common.logger.warning('Store ' + method + ' error for ' + table + '\nURL: ' + url + '\nError: ' + str(ex))
            raise StoreError(f"{method} {table} failed: {ex}") from ex

        if response.status_code >= 400:
            common.logger.warning('Store ' + method + ' error for ' + table + '\nURL: ' + url
                                  + '\nResponse Status Code: ' + str(response.status_code)
                                  + '\nResponse: ' + response.text[:500])
            raise StoreError(f"{method} {table} failed with status {response.status_code}",
                             status_code=response.status_code)

        common.logger.debug('Store ' + method + ' successful for ' + table)
        if not response.content:
            return []
        return response.json()

    # suppliers

    def list_suppliers(self):
        rows = self._request("GET", "suppliers", params=[("select", "*"), ("order", "name.asc")])
        return [mapping.supplier_from_row(r) for r in rows]

    def upsert_suppliers(self, suppliers):
        rows = [mapping.supplier_to_row(s) for s in suppliers]
        for row in rows:
            row.setdefault("id", str(uuid.uuid4()))
        result = self._request("POST", "suppliers", params=[("on_conflict", "id")], json=rows,
                               prefer="resolution=merge-duplicates,return=representation")
        return [mapping.supplier_from_row(r) for r in result]

    def delete_supplier(self, supplier_id):
        result = self._request("DELETE", "suppliers", params=[("id", f"eq.{supplier_id}")],
                               prefer="return=representation")
        if not result:
            raise RecordNotFound(f"Supplier {supplier_id} not found")

    # entries

    def list_entries(self, year=None):
        params = [("select", "*"), ("order", "date.desc")]
        if year is not None:
            params += [("date", f"gte.{year:04d}-01-01"), ("date", f"lte.{year:04d}-12-31")]
        rows = self._request("GET", "entries", params=params)
        return [mapping.entry_from_row(r) for r in rows]

    def insert_entry(self, entry):
        row = mapping.entry_to_row(entry)
        row.setdefault("id", str(uuid.uuid4()))
        result = self._request("POST", "entries", json=row, prefer="return=representation")
        return mapping.entry_from_row(result[0]) if result else mapping.entry_from_row(row)

    def update_entry(self, entry_id, fields):
        result = self._request("PATCH", "entries", params=[("id", f"eq.{entry_id}")],
                               json=mapping.entry_fields_to_row(fields), prefer="return=representation")
        if not result:
            raise RecordNotFound(f"Entry {entry_id} not found")

    def delete_entry(self, entry_id):
        result = self._request("DELETE", "entries", params=[("id", f"eq.{entry_id}")],
                               prefer="return=representation")
        if not result:
            raise RecordNotFound(f"Entry {entry_id} not found")

    # users

    def list_users(self):
        rows = self._request("GET", "users", params=[("select", "id,username,is_admin"), ("order", "username.asc")])
        return [mapping.user_from_row(r) for r in rows]

    def find_user(self, username):
        rows = self._request("GET", "users", params=[("select", "*"), ("username", f"eq.{username}"), ("limit", "1")])
        return mapping.user_from_row(rows[0]) if rows else None

    def update_user_password(self, username, new_password):
        result = self._request("PATCH", "users", params=[("username", f"eq.{username}")],
                               json={"password": new_password}, prefer="return=representation")
        if not result:
            raise RecordNotFound(f"User {username} not found")

    def insert_user(self, user):
        row = mapping.user_to_row(user)
        row.setdefault("id", str(uuid.uuid4()))
        result = self._request("POST", "users", json=row, prefer="return=representation")
        return mapping.user_from_row(result[0]) if result else mapping.user_from_row(row)

    def delete_user(self, user_id):
        result = self._request("DELETE", "users", params=[("id", f"eq.{user_id}")],
                               prefer="return=representation")
        if not result:
            raise RecordNotFound(f"User {user_id} not found")


class SqlStore(ExpenseStore):
    """Same contract over the app database; used for local installs and tests."""

    def _commit(self, action: str):
        try:
            db.session.commit()
        except SQLAlchemyError as ex:
            db.session.rollback()
            tb = traceback.format_exc()
            common.logger.warning('Store ' + action + ' failed\nError: ' + str(ex) + '\nTraceback:\n' + str(tb))
            raise StoreError(f"{action} failed: {ex}") from ex

    def _query(self, action: str, query_func):
        try:
            return query_func()
        except SQLAlchemyError as ex:
            db.session.rollback()
            common.logger.warning('Store ' + action + ' failed\nError: ' + str(ex))
            raise StoreError(f"{action} failed: {ex}") from ex

    # suppliers

    def list_suppliers(self):
        rows = self._query("list suppliers", lambda: (
            db.session.query(SupplierRow)
            .order_by(func.lower(SupplierRow.name))
            .all()
        ))
        return [mapping.supplier_from_row(r.to_row()) for r in rows]

    def upsert_suppliers(self, suppliers):
        saved = []
        for supplier in suppliers:
            row = mapping.supplier_to_row(supplier)
            existing = db.session.get(SupplierRow, row["id"]) if row.get("id") else None
            if existing is None:
                existing = SupplierRow(id=row.get("id") or str(uuid.uuid4()))
                db.session.add(existing)
            existing.name = row["name"]
            existing.default_payment_method = row["default_payment_method"]
            saved.append(existing)
        self._commit("upsert suppliers")
        return [mapping.supplier_from_row(r.to_row()) for r in saved]

    def delete_supplier(self, supplier_id):
        existing = self._query("find supplier", lambda: db.session.get(SupplierRow, supplier_id))
        if existing is None:
            raise RecordNotFound(f"Supplier {supplier_id} not found")
        db.session.delete(existing)
        self._commit("delete supplier")

    # entries

    def list_entries(self, year=None):
        def run():
            query = db.session.query(EntryRow).order_by(EntryRow.date.desc(), EntryRow.created_at.desc())
            if year is not None:
                query = query.filter(EntryRow.date >= date(year, 1, 1), EntryRow.date <= date(year, 12, 31))
            return query.all()

        rows = self._query("list entries", run)
        return [mapping.entry_from_row(r.to_row()) for r in rows]

    def _apply_entry_row(self, target: EntryRow, row: Dict[str, Any]) -> None:
        for column, value in row.items():
            if column == "id":
                continue
            if column == "date":
                value = parse_iso_date(value)
            elif column == "amount":
                value = to_decimal(value)
            setattr(target, column, value)

    def insert_entry(self, entry):
        row = mapping.entry_to_row(entry)
        target = EntryRow(id=row.get("id") or str(uuid.uuid4()), created_at=datetime.utcnow())
        self._apply_entry_row(target, row)
        db.session.add(target)
        self._commit("insert entry")
        return mapping.entry_from_row(target.to_row())

    def update_entry(self, entry_id, fields):
        target = self._query("find entry", lambda: db.session.get(EntryRow, entry_id))
        if target is None:
            raise RecordNotFound(f"Entry {entry_id} not found")
        self._apply_entry_row(target, mapping.entry_fields_to_row(fields))
        self._commit("update entry")

    def delete_entry(self, entry_id):
        target = self._query("find entry", lambda: db.session.get(EntryRow, entry_id))
        if target is None:
            raise RecordNotFound(f"Entry {entry_id} not found")
        db.session.delete(target)
        self._commit("delete entry")

    # users

    def list_users(self):
        rows = self._query("list users", lambda: db.session.query(UserRow).order_by(UserRow.username).all())
        users = [mapping.user_from_row(r.to_row()) for r in rows]
        for user in users:
            user.password = ""
        return users

    def find_user(self, username):
        row = self._query("find user", lambda: (
            db.session.query(UserRow)
            .filter(UserRow.username == username)
            .one_or_none()
        ))
        return mapping.user_from_row(row.to_row()) if row else None

    def update_user_password(self, username, new_password):
        target = self._query("find user", lambda: (
            db.session.query(UserRow)
            .filter(UserRow.username == username)
            .one_or_none()
        ))
        if target is None:
            raise RecordNotFound(f"User {username} not found")
        target.password = new_password
        self._commit("update user password")

    def insert_user(self, user):
        row = mapping.user_to_row(user)
        target = UserRow(
            id=row.get("id") or str(uuid.uuid4()),
            username=row["username"],
            password=row["password"],
            is_admin=row["is_admin"],
        )
        db.session.add(target)
        self._commit("insert user")
        return mapping.user_from_row(target.to_row())

    def delete_user(self, user_id):
        target = self._query("find user", lambda: db.session.get(UserRow, user_id))
        if target is None:
            raise RecordNotFound(f"User {user_id} not found")
        db.session.delete(target)
        self._commit("delete user")


def get_store() -> ExpenseStore:
    store = app.extensions.get("expense_store")
    if store is None:
        backend = common.get_setting("STORE_BACKEND", "sql")
        if backend == "supabase":
            url = common.get_setting("SUPABASE_URL")
            key = common.get_setting("SUPABASE_KEY")
            if not url or not key:
                raise RuntimeError("STORE_BACKEND=supabase needs SUPABASE_URL and SUPABASE_KEY")
            store = SupabaseStore(url, key, timeout=common.get_setting("STORE_TIMEOUT", 10))
        elif backend == "sql":
            store = SqlStore()
        else:
            raise RuntimeError(f"Unknown STORE_BACKEND {backend!r}")
        common.logger.debug(f"Store initiated: {type(store).__name__}")
        app.extensions["expense_store"] = store
    return store
