# ExpenseApp/app/routes/reports_api.py
from __future__ import annotations

from io import BytesIO

from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required

import ExpenseApp.app.common as common
from ExpenseApp.app.routes.api_errors import json_errors, parse_month, parse_year, session_year
from ExpenseApp.app.services import mapping
from ExpenseApp.app.services.aggregation import aggregate
from ExpenseApp.app.services.report_excel import NoData, ReportSpec, export_report
from ExpenseApp.app.services.repository import get_repository

bp = Blueprint("reports_api", __name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@bp.route("/totals", methods=["GET"])
@login_required
@json_errors
def totals_json():
    year = parse_year(request.args.get("year"), default=session_year())
    month = parse_month(request.args.get("month"))

    repo = get_repository()
    entries = repo.list_entries(year)
    suppliers = repo.list_suppliers()

    result = aggregate(entries.items, suppliers.items, year=year, month=month)

    return jsonify({
        "year": year,
        "month": month,
        **mapping.aggregation_to_payload(result),
        "source": entries.source,
        "stale": entries.stale or suppliers.stale,
    })


@bp.route("/export.xlsx", methods=["GET"])
@login_required
@json_errors
def export_excel():
    # only what the caller asked for; no session default here
    spec = ReportSpec(
        kind=request.args.get("kind") or "",
        period=request.args.get("period") or None,
        year=parse_year(request.args.get("year")),
        month=parse_month(request.args.get("month")),
    )

    repo = get_repository()
    entries = repo.list_entries(spec.year)
    suppliers = repo.list_suppliers()

    report = export_report(entries.items, suppliers.items, spec)
    if isinstance(report, NoData):
        return jsonify({
            "status": "no_data",
            "message": report.message,
            "warnings": [w.to_dict() for w in report.warnings],
        })

    common.logger.info(f"Sending {report.filename} ({entries.source}, stale={entries.stale})")

    bio = BytesIO(report.to_bytes())
    bio.seek(0)

    response = send_file(
        bio,
        as_attachment=True,
        download_name=report.filename,
        mimetype=XLSX_MIMETYPE,
    )
    response.headers["X-Data-Source"] = entries.source
    response.headers["X-Data-Stale"] = str(entries.stale or suppliers.stale).lower()
    return response
