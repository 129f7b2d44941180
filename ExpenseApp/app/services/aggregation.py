# ExpenseApp/app/services/aggregation.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

import ExpenseApp.app.common as common
from ExpenseApp.app.services.records import (
    CASH,
    TRANSFER,
    Entry,
    RecordWarning,
    Supplier,
    normalize_payment_method,
)
from ExpenseApp.app.utils.dates import month_label, parse_iso_date
from ExpenseApp.app.utils.money import ZERO, InvalidAmount, to_decimal


@dataclass
class Totals:
    cash_total: Decimal = ZERO
    transfer_total: Decimal = ZERO
    count: int = 0

    @property
    def grand_total(self) -> Decimal:
        return self.cash_total + self.transfer_total

    def add(self, method: str, amount: Decimal) -> None:
        if method == CASH:
            self.cash_total += amount
        elif method == TRANSFER:
            self.transfer_total += amount
        else:
            raise ValueError(f"Unknown payment method: {method!r}")
        self.count += 1


@dataclass
class SupplierTotals:
    supplier: Supplier
    totals: Totals = field(default_factory=Totals)
    entries: List[Entry] = field(default_factory=list)


@dataclass
class MonthGroup:
    year: int
    month: int
    totals: Totals = field(default_factory=Totals)
    unassigned: Totals = field(default_factory=Totals)
    entries: List[Entry] = field(default_factory=list)
    per_supplier: Dict[str, SupplierTotals] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[int, int]:
        return (self.year, self.month)

    @property
    def label(self) -> str:
        return month_label(self.year, self.month)


@dataclass
class AggregationResult:
    totals: Totals = field(default_factory=Totals)
    # entries whose supplier_id does not resolve; included in totals only
    unassigned: Totals = field(default_factory=Totals)
    per_supplier: Dict[str, SupplierTotals] = field(default_factory=dict)
    per_month: Dict[Tuple[int, int], MonthGroup] = field(default_factory=dict)
    warnings: List[RecordWarning] = field(default_factory=list)
    skipped: int = 0

    @property
    def is_empty(self) -> bool:
        return self.totals.count == 0


@dataclass
class _Valid:
    entry: Entry
    date: date
    amount: Decimal
    method: str


def _validate(entry: Entry, year: Optional[int], month: Optional[int],
              warnings: List[RecordWarning]) -> Tuple[Optional[_Valid], bool]:
    """
    Returns (record, skipped). Entries outside the year/month filter are
    dropped silently; malformed entries are skipped with a warning.
    """
    entry_date = parse_iso_date(entry.date)
    if entry_date is None:
        warnings.append(RecordWarning(
            code="invalid_date",
            message=f"Invalid or missing date {entry.date!r}",
            entry_id=entry.id,
        ))
        return None, True

    if year is not None and entry_date.year != year:
        return None, False
    if month is not None and entry_date.month != month:
        return None, False

    try:
        amount = to_decimal(entry.amount)
    except InvalidAmount:
        warnings.append(RecordWarning(
            code="invalid_amount",
            message=f"Invalid or missing amount {entry.amount!r}",
            entry_id=entry.id,
        ))
        return None, True

    if amount < 0:
        warnings.append(RecordWarning(
            code="invalid_amount",
            message=f"Negative amount {amount}",
            entry_id=entry.id,
        ))
        return None, True

    method = normalize_payment_method(entry.payment_method)
    if method is None:
        warnings.append(RecordWarning(
            code="invalid_payment_method",
            message=f"Unknown payment method {entry.payment_method!r}",
            entry_id=entry.id,
        ))
        return None, True

    return _Valid(entry=entry, date=entry_date, amount=amount, method=method), False


def _supplier_bucket(buckets: Dict[str, SupplierTotals], supplier: Supplier) -> SupplierTotals:
    bucket = buckets.get(supplier.id)
    if bucket is None:
        bucket = buckets[supplier.id] = SupplierTotals(supplier)
    return bucket


def _sort_suppliers(buckets: Dict[str, SupplierTotals]) -> Dict[str, SupplierTotals]:
    ordered = sorted(buckets.values(), key=lambda b: ((b.supplier.name or "").casefold(), b.supplier.id))
    return {b.supplier.id: b for b in ordered}


def aggregate(
    entries: Iterable[Entry],
    suppliers: Iterable[Supplier],
    year: Optional[int] = None,
    month: Optional[int] = None,
    descending: bool = False,
) -> AggregationResult:
    """
    Totals by payment method, by supplier and by calendar month.

    Inputs are read only. Amounts are fixed-point Decimals quantized to
    cents, so sums carry no float drift. Per-supplier buckets are ordered
    by supplier name (case-insensitive), month groups chronologically and
    entries inside every group by date (ascending unless ``descending``).
    """
    if month is not None and not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month!r}")

    suppliers_by_id = {s.id: s for s in suppliers}
    result = AggregationResult()

    valid: List[_Valid] = []
    for entry in entries:
        record, skipped = _validate(entry, year, month, result.warnings)
        if skipped:
            result.skipped += 1
        elif record is not None:
            valid.append(record)

    # sort is stable: same-day entries keep their input order
    valid.sort(key=lambda r: r.date, reverse=descending)

    per_month: Dict[Tuple[int, int], MonthGroup] = {}
    for record in valid:
        result.totals.add(record.method, record.amount)

        key = (record.date.year, record.date.month)
        group = per_month.get(key)
        if group is None:
            group = per_month[key] = MonthGroup(year=key[0], month=key[1])
        group.totals.add(record.method, record.amount)
        group.entries.append(record.entry)

        supplier = suppliers_by_id.get(record.entry.supplier_id)
        if supplier is None:
            result.unassigned.add(record.method, record.amount)
            group.unassigned.add(record.method, record.amount)
            result.warnings.append(RecordWarning(
                code="unknown_supplier",
                message=f"Supplier {record.entry.supplier_id!r} not found",
                entry_id=record.entry.id,
            ))
            continue

        for buckets in (result.per_supplier, group.per_supplier):
            bucket = _supplier_bucket(buckets, supplier)
            bucket.totals.add(record.method, record.amount)
            bucket.entries.append(record.entry)

    result.per_supplier = _sort_suppliers(result.per_supplier)
    for key in sorted(per_month, reverse=descending):
        group = per_month[key]
        group.per_supplier = _sort_suppliers(group.per_supplier)
        result.per_month[key] = group

    if result.warnings:
        common.logger.warning(f"Aggregation skipped {result.skipped} entries, {len(result.warnings)} warnings")
    common.logger.debug(
        f"Aggregated {result.totals.count} entries (year={year}, month={month}): "
        f"cash={result.totals.cash_total} transfer={result.totals.transfer_total}"
    )

    return result
