from flask import Blueprint, jsonify, request, redirect, url_for
from flask_login import login_required

from ExpenseApp.app.session_context import SessionContext

bp = Blueprint("session_ui", __name__)


@bp.route("/set-year", methods=["POST"])
@login_required
def set_year():
    ctx = SessionContext.current()
    year = request.form.get("year") or (request.get_json(silent=True) or {}).get("year")
    try:
        ctx.select_year(int(year))
    except (TypeError, ValueError):
        return jsonify({"error": f"Anno non valido: {year!r}"}), 400

    if request.is_json:
        return jsonify({"year": ctx.selected_year})
    return redirect(request.referrer or url_for("homepage"))
