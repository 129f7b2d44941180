# ExpenseApp/app/services/report_excel.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import Iterable, List, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

import ExpenseApp.app.common as common
from ExpenseApp.app.services.aggregation import AggregationResult, SupplierTotals, Totals, aggregate
from ExpenseApp.app.services.records import (
    PAYMENT_METHOD_LABELS,
    SUPPLIER_NOT_FOUND,
    Entry,
    RecordWarning,
    Supplier,
    normalize_payment_method,
)
from ExpenseApp.app.utils.dates import MONTH_NAMES, month_label, parse_iso_date
from ExpenseApp.app.utils.money import to_decimal

DETAIL = "detail"
SUMMARY = "summary"
REPORT_KINDS = (DETAIL, SUMMARY)

MONTHLY = "monthly"
ANNUAL = "annual"
PERIODS = (MONTHLY, ANNUAL)

EURO_FMT = '#,##0.00 "€"'
DATE_FMT = "DD/MM/YYYY"

DETAIL_HEADERS = ["Data", "Fornitore", "Importo", "Metodo Pagamento", "Descrizione"]

# Excel limits sheet titles to 31 characters
MAX_SHEET_TITLE = 31


class ReportSpecError(ValueError):
    pass


@dataclass(frozen=True)
class ReportSpec:
    kind: str
    period: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None

    def __post_init__(self):
        if self.kind not in REPORT_KINDS:
            raise ReportSpecError(f"Unknown report kind {self.kind!r}, expected one of {REPORT_KINDS}")
        if self.kind == SUMMARY and self.month is None and self.period not in PERIODS:
            raise ReportSpecError(f"Summary reports need a period, one of {PERIODS}")
        if self.period is not None and self.period not in PERIODS:
            raise ReportSpecError(f"Unknown period {self.period!r}, expected one of {PERIODS}")
        if self.month is not None and not 1 <= self.month <= 12:
            raise ReportSpecError(f"Month must be between 1 and 12, got {self.month!r}")

    @property
    def scope_label(self) -> str:
        if self.month is not None:
            if self.year is not None:
                return month_label(self.year, self.month)
            return MONTH_NAMES[self.month - 1]
        if self.year is not None:
            return str(self.year)
        return "Completo"


@dataclass
class NoData:
    """Returned instead of a workbook when the requested period has no entries."""
    message: str
    warnings: List[RecordWarning] = field(default_factory=list)


@dataclass
class ReportFile:
    workbook: Workbook
    filename: str
    warnings: List[RecordWarning] = field(default_factory=list)

    @property
    def sheet_names(self) -> List[str]:
        return self.workbook.sheetnames

    def to_bytes(self) -> bytes:
        return workbook_to_bytes(self.workbook)


class _SheetBook:
    """Hands out worksheets with unique titles, reusing the workbook's initial sheet."""

    def __init__(self):
        self.wb = Workbook()
        self._fresh = True

    def sheet(self, title: str):
        title = self._unique(title[:MAX_SHEET_TITLE])
        if self._fresh:
            ws = self.wb.active
            ws.title = title
            self._fresh = False
        else:
            ws = self.wb.create_sheet(title)
        return ws

    def _unique(self, title: str) -> str:
        existing = {name.casefold() for name in self.wb.sheetnames} if not self._fresh else set()
        candidate = title
        n = 2
        while candidate.casefold() in existing:
            suffix = f" ({n})"
            candidate = title[:MAX_SHEET_TITLE - len(suffix)] + suffix
            n += 1
        return candidate


bold = Font(bold=True)


def _write_amount(ws, r: int, c: int, val, is_bold: bool = False):
    cell = ws.cell(r, c)
    cell.value = float(val or 0)
    cell.number_format = EURO_FMT
    if is_bold:
        cell.font = bold


def _write_text(ws, r: int, c: int, val):
    # user text stays text; openpyxl would otherwise store "=..." as a formula
    cell = ws.cell(r, c)
    cell.value = "" if val is None else str(val)
    cell.data_type = "s"
    return cell


def _write_footer(ws, r: int) -> None:
    ws.cell(r, 1).value = "Generato il " + datetime.now().strftime("%d/%m/%Y %H:%M:%S")


def _write_summary_sheet(ws, title: str, totals: Totals, per_supplier: Iterable[SupplierTotals],
                         unassigned: Optional[Totals] = None) -> None:
    ws["A1"] = title
    ws["A1"].font = bold

    r = 3
    for label, value in (
        ("Totale Contanti", totals.cash_total),
        ("Totale Bonifici", totals.transfer_total),
        ("Totale Complessivo", totals.grand_total),
    ):
        ws.cell(r, 1).value = label
        ws.cell(r, 1).font = bold
        _write_amount(ws, r, 2, value, is_bold=(label == "Totale Complessivo"))
        r += 1

    r += 1
    ws.cell(r, 1).value = "Riepilogo per Fornitore"
    ws.cell(r, 1).font = bold
    r += 1

    for c, header in enumerate(["Fornitore", "Contanti", "Bonifici", "Totale"], start=1):
        cell = ws.cell(r, c)
        cell.value = header
        cell.font = bold
        if c > 1:
            cell.alignment = Alignment(horizontal="center")
    r += 1

    for bucket in per_supplier:
        _write_text(ws, r, 1, bucket.supplier.name).alignment = Alignment(indent=2)
        _write_amount(ws, r, 2, bucket.totals.cash_total)
        _write_amount(ws, r, 3, bucket.totals.transfer_total)
        _write_amount(ws, r, 4, bucket.totals.grand_total, is_bold=True)
        r += 1

    if unassigned is not None and unassigned.count:
        ws.cell(r, 1).value = SUPPLIER_NOT_FOUND
        ws.cell(r, 1).alignment = Alignment(indent=2)
        _write_amount(ws, r, 2, unassigned.cash_total)
        _write_amount(ws, r, 3, unassigned.transfer_total)
        _write_amount(ws, r, 4, unassigned.grand_total, is_bold=True)
        r += 1

    _write_footer(ws, r + 2)

    ws.column_dimensions["A"].width = 40
    for c in range(2, 5):
        ws.column_dimensions[get_column_letter(c)].width = 16


def _write_detail_sheet(ws, result: AggregationResult, suppliers_by_id) -> int:
    for c, header in enumerate(DETAIL_HEADERS, start=1):
        cell = ws.cell(1, c)
        cell.value = header
        cell.font = bold

    r = 2
    for group in result.per_month.values():
        for entry in group.entries:
            # aggregate() only groups entries whose date, amount and method parse
            supplier = suppliers_by_id.get(entry.supplier_id)
            ws.cell(r, 1).value = parse_iso_date(entry.date)
            ws.cell(r, 1).number_format = DATE_FMT
            _write_text(ws, r, 2, supplier.name if supplier else SUPPLIER_NOT_FOUND)
            _write_amount(ws, r, 3, to_decimal(entry.amount))
            ws.cell(r, 4).value = PAYMENT_METHOD_LABELS[normalize_payment_method(entry.payment_method)]
            _write_text(ws, r, 5, entry.description)
            r += 1

    rows_written = r - 2

    ws.column_dimensions["A"].width = 14
    ws.column_dimensions["B"].width = 32
    ws.column_dimensions["C"].width = 16
    ws.column_dimensions["D"].width = 20
    ws.column_dimensions["E"].width = 50

    return rows_written


def _write_warnings_sheet(ws, warnings: List[RecordWarning]) -> None:
    for c, header in enumerate(["Spesa", "Codice", "Messaggio"], start=1):
        ws.cell(1, c).value = header
        ws.cell(1, c).font = bold
    for r, warning in enumerate(warnings, start=2):
        _write_text(ws, r, 1, warning.entry_id)
        ws.cell(r, 2).value = warning.code
        _write_text(ws, r, 3, warning.message)
    ws.column_dimensions["A"].width = 38
    ws.column_dimensions["B"].width = 24
    ws.column_dimensions["C"].width = 60


def _filename(spec: ReportSpec) -> str:
    scope = spec.scope_label.replace(" ", "_")
    if spec.kind == DETAIL:
        return f"Dettaglio_Spese_{scope}.xlsx"
    if spec.month is not None:
        return f"Riepilogo_{scope}.xlsx"
    if spec.period == MONTHLY:
        return f"Riepilogo_Mensile_{scope}.xlsx"
    return f"Riepilogo_Annuale_{scope}.xlsx"


def export_report(entries: Iterable[Entry], suppliers: Iterable[Supplier],
                  spec: ReportSpec) -> Union[ReportFile, NoData]:
    """
    Build the workbook described by ``spec``.

    detail            one row per entry on a "Dettaglio Spese" sheet
    summary/annual    a single "Riepilogo" sheet with totals and per-supplier breakdown
    summary/monthly   one sheet per month with entries, then a "Totale Annuale" rollup
    summary + month   a single sheet for that month

    Returns NoData instead of a workbook when nothing matches the filters.
    Malformed entries are left out and listed on an "Avvisi" sheet.
    """
    suppliers = list(suppliers)
    suppliers_by_id = {s.id: s for s in suppliers}

    result = aggregate(entries, suppliers, year=spec.year, month=spec.month)
    warnings = list(result.warnings)

    if result.is_empty:
        common.logger.info(f"Export {spec} requested but no data for {spec.scope_label}")
        return NoData(f"Nessuna spesa per il periodo {spec.scope_label}", warnings)

    book = _SheetBook()

    if spec.kind == DETAIL:
        title = "Dettaglio Spese" if spec.month is None else f"Dettaglio {spec.scope_label}"
        _write_detail_sheet(book.sheet(title), result, suppliers_by_id)

    elif spec.month is not None:
        _write_summary_sheet(book.sheet(spec.scope_label), f"Riepilogo {spec.scope_label}",
                             result.totals, result.per_supplier.values(), result.unassigned)

    elif spec.period == MONTHLY:
        for group in result.per_month.values():
            if not group.entries:
                continue
            _write_summary_sheet(book.sheet(group.label), f"Riepilogo {group.label}",
                                 group.totals, group.per_supplier.values(), group.unassigned)

        annual_title = f"Totale Annuale {spec.year}" if spec.year is not None else "Totale Complessivo"
        _write_summary_sheet(book.sheet(annual_title), f"Riepilogo Annuale {spec.scope_label}",
                             result.totals, result.per_supplier.values(), result.unassigned)

    else:
        _write_summary_sheet(book.sheet("Riepilogo"), f"Riepilogo Totali {spec.scope_label}",
                             result.totals, result.per_supplier.values(), result.unassigned)

    if warnings:
        _write_warnings_sheet(book.sheet("Avvisi"), warnings)

    filename = _filename(spec)
    common.logger.info(f"Export {filename}: sheets={book.wb.sheetnames} warnings={len(warnings)}")
    return ReportFile(workbook=book.wb, filename=filename, warnings=warnings)


def workbook_to_bytes(wb: Workbook) -> bytes:
    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()
