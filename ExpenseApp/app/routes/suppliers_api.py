# ExpenseApp/app/routes/suppliers_api.py
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from ExpenseApp.app.routes.api_errors import json_body, json_errors
from ExpenseApp.app.services import mapping
from ExpenseApp.app.services import suppliers as supplier_service
from ExpenseApp.app.services.repository import get_repository

bp = Blueprint("suppliers_api", __name__)


@bp.route("/suppliers", methods=["GET"])
@login_required
@json_errors
def list_suppliers():
    result = get_repository().list_suppliers()
    suppliers = supplier_service.sort_suppliers(result.items)
    return jsonify({
        "suppliers": mapping.to_payloads(suppliers, mapping.supplier_to_payload),
        **result.meta(),
    })


@bp.route("/suppliers", methods=["POST"])
@login_required
@json_errors
def create_supplier():
    payload = json_body()
    supplier = supplier_service.create_supplier(
        get_repository(),
        payload.get("name"),
        payload.get("defaultPaymentMethod"),
    )
    return jsonify(mapping.supplier_to_payload(supplier)), 201


@bp.route("/suppliers/<supplier_id>", methods=["PUT"])
@login_required
@json_errors
def update_supplier(supplier_id: str):
    payload = json_body()
    supplier = supplier_service.update_supplier(
        get_repository(),
        supplier_id,
        name=payload.get("name"),
        default_payment_method=payload.get("defaultPaymentMethod"),
    )
    return jsonify(mapping.supplier_to_payload(supplier))


@bp.route("/suppliers/<supplier_id>", methods=["DELETE"])
@login_required
@json_errors
def delete_supplier(supplier_id: str):
    supplier_service.delete_supplier(get_repository(), supplier_id)
    return jsonify({"status": "deleted", "id": supplier_id})
