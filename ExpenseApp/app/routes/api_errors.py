# ExpenseApp/app/routes/api_errors.py
from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import jsonify, request

import ExpenseApp.app.common as common
from ExpenseApp.app.data_store import RecordNotFound, StoreError
from ExpenseApp.app.services.entries import EntryValidationError
from ExpenseApp.app.services.report_excel import ReportSpecError
from ExpenseApp.app.services.suppliers import DuplicateSupplier, SupplierValidationError
from ExpenseApp.app.services.users import DuplicateUser, UserError
from ExpenseApp.app.session_context import SessionContext


class BadRequest(ValueError):
    pass


def json_errors(view):
    """Translate service exceptions into JSON error responses."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except (DuplicateSupplier, DuplicateUser) as ex:
            return jsonify({"error": str(ex)}), 409
        except (BadRequest, EntryValidationError, SupplierValidationError, UserError, ReportSpecError) as ex:
            return jsonify({"error": str(ex)}), 400
        except RecordNotFound as ex:
            return jsonify({"error": str(ex)}), 404
        except StoreError as ex:
            common.logger.warning('API ' + request.method + ' ' + request.path + ' store failure: ' + str(ex))
            return jsonify({"error": "Archivio non raggiungibile, riprova", "detail": str(ex)}), 502
    return wrapper


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequest("Expected a JSON object body")
    return payload


def parse_month(value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        month = int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid month {value!r}")
    if not 1 <= month <= 12:
        raise BadRequest(f"Month must be between 1 and 12, got {month}")
    return month


def parse_year(value, default: Optional[int] = None) -> Optional[int]:
    """'all' -> None (no filter), absent -> default, otherwise an int."""
    if value in (None, ""):
        return default
    if value == "all":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid year {value!r}")


def session_year() -> Optional[int]:
    ctx = SessionContext.current()
    return ctx.selected_year if ctx else None
