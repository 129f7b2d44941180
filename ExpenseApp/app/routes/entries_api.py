# ExpenseApp/app/routes/entries_api.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ExpenseApp.app.routes.api_errors import json_body, json_errors, parse_year, session_year
from ExpenseApp.app.services import entries as entry_service
from ExpenseApp.app.services import mapping
from ExpenseApp.app.services.repository import get_repository

bp = Blueprint("entries_api", __name__)


@bp.route("/entries", methods=["GET"])
@login_required
@json_errors
def list_entries():
    year = parse_year(request.args.get("year"), default=session_year())
    query = request.args.get("q")

    repo = get_repository()
    result = repo.list_entries(year)
    suppliers = repo.list_suppliers().items

    entries = entry_service.newest_first(entry_service.filter_entries(result.items, suppliers, query))

    return jsonify({
        "entries": mapping.to_payloads(entries, mapping.entry_to_payload),
        "year": year,
        **result.meta(),
    })


@bp.route("/entries", methods=["POST"])
@login_required
@json_errors
def create_entry():
    fields = mapping.entry_fields_from_payload(json_body())
    entry = entry_service.create_entry(get_repository(), fields)
    return jsonify(mapping.entry_to_payload(entry)), 201


@bp.route("/entries/<entry_id>", methods=["PUT"])
@login_required
@json_errors
def update_entry(entry_id: str):
    fields = mapping.entry_fields_from_payload(json_body())
    clean = entry_service.update_entry(get_repository(), entry_id, fields)
    return jsonify({"status": "updated", "id": entry_id, "fields": sorted(mapping.ENTRY_PAYLOAD_KEYS[k] for k in clean)})


@bp.route("/entries/<entry_id>", methods=["DELETE"])
@login_required
@json_errors
def delete_entry(entry_id: str):
    entry_service.delete_entry(get_repository(), entry_id)
    return jsonify({"status": "deleted", "id": entry_id})
