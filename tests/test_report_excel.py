from datetime import date
from io import BytesIO

import pandas as pd
import pytest
from openpyxl import load_workbook

from ExpenseApp.app.services.records import Entry, Supplier
from ExpenseApp.app.services.report_excel import (
    DETAIL_HEADERS,
    NoData,
    ReportFile,
    ReportSpec,
    ReportSpecError,
    export_report,
)


def _suppliers():
    return [
        Supplier(id="S1", name="Acme", default_payment_method="contanti"),
        Supplier(id="S2", name="Beta", default_payment_method="bonifico"),
    ]


def _entries():
    return [
        Entry(id="e1", date="2024-03-01", supplier_id="S1", amount=100, description="Cemento", payment_method="contanti"),
        Entry(id="e2", date="2024-03-15", supplier_id="S1", amount=50.25, description="", payment_method="bonifico"),
        Entry(id="e3", date="2024-04-01", supplier_id="S2", amount=25, description="Trasporto", payment_method="contanti"),
        Entry(id="old", date="2023-11-30", supplier_id="S2", amount=999, description="Anno prima", payment_method="contanti"),
    ]


def test_monthly_summary_with_one_month_has_two_sheets():
    entries = [e for e in _entries() if e.date.startswith("2024-03")]
    report = export_report(entries, _suppliers(), ReportSpec(kind="summary", period="monthly", year=2024))

    assert isinstance(report, ReportFile)
    assert report.sheet_names == ["Marzo 2024", "Totale Annuale 2024"]
    assert report.filename == "Riepilogo_Mensile_2024.xlsx"


def test_monthly_summary_skips_empty_months():
    report = export_report(_entries(), _suppliers(), ReportSpec(kind="summary", period="monthly", year=2024))

    assert report.sheet_names == ["Marzo 2024", "Aprile 2024", "Totale Annuale 2024"]

    ws = report.workbook["Totale Annuale 2024"]
    assert ws["A3"].value == "Totale Contanti"
    assert ws["B3"].value == pytest.approx(125.0)
    assert ws["B4"].value == pytest.approx(50.25)
    assert ws["B5"].value == pytest.approx(175.25)


def test_month_export_without_entries_returns_no_data():
    report = export_report(_entries(), _suppliers(), ReportSpec(kind="summary", year=2024, month=7))

    assert isinstance(report, NoData)
    assert "Luglio 2024" in report.message


def test_single_month_summary_sheet():
    report = export_report(_entries(), _suppliers(), ReportSpec(kind="summary", year=2024, month=3))

    assert report.sheet_names == ["Marzo 2024"]
    assert report.filename == "Riepilogo_Marzo_2024.xlsx"
    ws = report.workbook["Marzo 2024"]
    assert ws["B5"].value == pytest.approx(150.25)


def test_annual_summary_lists_suppliers_and_unassigned():
    entries = _entries() + [
        Entry(id="lost", date="2024-05-05", supplier_id="S9", amount=10, payment_method="bonifico"),
    ]
    report = export_report(entries, _suppliers(), ReportSpec(kind="summary", period="annual", year=2024))

    assert report.sheet_names == ["Riepilogo", "Avvisi"]
    ws = report.workbook["Riepilogo"]
    names = [ws.cell(r, 1).value for r in range(1, ws.max_row + 1)]
    assert "Acme" in names
    assert "Beta" in names
    assert "Fornitore non trovato" in names
    assert ws["B5"].value == pytest.approx(185.25)

    warnings = report.workbook["Avvisi"]
    assert warnings["A2"].value == "lost"
    assert warnings["B2"].value == "unknown_supplier"


def test_detail_round_trip_recovers_rows():
    report = export_report(_entries(), _suppliers(), ReportSpec(kind="detail", year=2024))
    assert report.filename == "Dettaglio_Spese_2024.xlsx"

    df = pd.read_excel(BytesIO(report.to_bytes()), sheet_name="Dettaglio Spese")
    assert len(df) == 3

    assert list(df.columns) == DETAIL_HEADERS
    rows = {
        (
            pd.Timestamp(r["Data"]).date(),
            r["Fornitore"],
            round(float(r["Importo"]), 2),
            r["Metodo Pagamento"],
            "" if pd.isna(r["Descrizione"]) else r["Descrizione"],
        )
        for _, r in df.iterrows()
    }
    assert rows == {
        (date(2024, 3, 1), "Acme", 100.0, "Contanti", "Cemento"),
        (date(2024, 3, 15), "Acme", 50.25, "Bonifico", ""),
        (date(2024, 4, 1), "Beta", 25.0, "Contanti", "Trasporto"),
    }


def test_detail_leaves_out_entries_rejected_by_aggregation():
    entries = _entries() + [
        Entry(id="broken", date="2024-02-30", supplier_id="S1", amount=1, payment_method="contanti"),
    ]
    report = export_report(entries, _suppliers(), ReportSpec(kind="detail", year=2024))

    assert report.sheet_names == ["Dettaglio Spese", "Avvisi"]
    wb = load_workbook(BytesIO(report.to_bytes()))
    assert wb["Dettaglio Spese"].max_row == 4
    assert wb["Avvisi"]["B2"].value == "invalid_date"


def test_formula_like_text_is_kept_as_text():
    suppliers = [Supplier(id="S1", name="=Acme", default_payment_method="contanti")]
    entries = [
        Entry(id="e1", date="2024-03-01", supplier_id="S1", amount=10, description="=1+1", payment_method="contanti"),
    ]

    detail = export_report(entries, suppliers, ReportSpec(kind="detail", year=2024))
    ws = load_workbook(BytesIO(detail.to_bytes()))["Dettaglio Spese"]
    assert ws["B2"].value == "=Acme"
    assert ws["B2"].data_type == "s"
    assert ws["E2"].value == "=1+1"
    assert ws["E2"].data_type == "s"

    df = pd.read_excel(BytesIO(detail.to_bytes()), sheet_name="Dettaglio Spese")
    assert df.loc[0, "Descrizione"] == "=1+1"

    summary = export_report(entries, suppliers, ReportSpec(kind="summary", period="annual", year=2024))
    ws = load_workbook(BytesIO(summary.to_bytes()))["Riepilogo"]
    names = [ws.cell(r, 1).value for r in range(1, ws.max_row + 1)]
    assert "=Acme" in names


def test_monthly_sheets_show_unassigned_for_their_month_only():
    entries = _entries() + [
        Entry(id="lost", date="2024-04-10", supplier_id="S9", amount=7, payment_method="bonifico"),
    ]
    report = export_report(entries, _suppliers(), ReportSpec(kind="summary", period="monthly", year=2024))

    def rows(title):
        ws = report.workbook[title]
        return {ws.cell(r, 1).value: ws.cell(r, 4).value for r in range(1, ws.max_row + 1)}

    assert "Fornitore non trovato" not in rows("Marzo 2024")
    assert rows("Aprile 2024")["Fornitore non trovato"] == pytest.approx(7.0)
    assert rows("Totale Annuale 2024")["Fornitore non trovato"] == pytest.approx(7.0)


def test_export_without_year_includes_every_entry():
    report = export_report(_entries(), _suppliers(), ReportSpec(kind="summary", period="annual"))

    assert report.filename == "Riepilogo_Annuale_Completo.xlsx"
    assert report.workbook["Riepilogo"]["B5"].value == pytest.approx(1174.25)


def test_empty_export_returns_no_data():
    assert isinstance(export_report([], _suppliers(), ReportSpec(kind="detail")), NoData)


def test_invalid_report_specs():
    with pytest.raises(ReportSpecError):
        ReportSpec(kind="pivot")
    with pytest.raises(ReportSpecError):
        ReportSpec(kind="summary")
    with pytest.raises(ReportSpecError):
        ReportSpec(kind="summary", period="weekly")
    with pytest.raises(ReportSpecError):
        ReportSpec(kind="detail", month=0)
