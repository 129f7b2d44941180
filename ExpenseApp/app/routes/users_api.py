# ExpenseApp/app/routes/users_api.py
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ExpenseApp.app.auth import admin_required
from ExpenseApp.app.routes.api_errors import json_body, json_errors
from ExpenseApp.app.services import mapping
from ExpenseApp.app.services import users as user_service
from ExpenseApp.app.services.repository import get_repository

bp = Blueprint("users_api", __name__)


@bp.route("/users", methods=["GET"])
@login_required
@admin_required
@json_errors
def list_users():
    result = get_repository().list_users()
    return jsonify({
        "users": mapping.to_payloads(result.items, mapping.user_to_payload),
        **result.meta(),
    })


@bp.route("/users", methods=["POST"])
@login_required
@admin_required
@json_errors
def add_user():
    payload = json_body()
    user = user_service.add_user(get_repository(), payload.get("username"), payload.get("password"))
    return jsonify(mapping.user_to_payload(user)), 201


@bp.route("/users/<user_id>", methods=["DELETE"])
@login_required
@admin_required
@json_errors
def delete_user(user_id: str):
    user_service.delete_user(get_repository(), user_id, current_user.id)
    return jsonify({"status": "deleted", "id": user_id})


@bp.route("/users/password", methods=["POST"])
@login_required
@json_errors
def change_password():
    payload = json_body()
    user_service.change_password(
        get_repository(),
        current_user.id,
        payload.get("currentPassword"),
        payload.get("newPassword"),
        payload.get("confirmPassword"),
    )
    return jsonify({"status": "Password aggiornata con successo"})
