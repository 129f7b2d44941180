from decimal import Decimal

import pytest

from ExpenseApp.app.services.aggregation import aggregate
from ExpenseApp.app.services.records import Entry, Supplier


def _suppliers():
    return [
        Supplier(id="S1", name="Acme", default_payment_method="contanti"),
        Supplier(id="S2", name="Beta", default_payment_method="bonifico"),
    ]


def _entries():
    return [
        Entry(id="e1", date="2024-03-01", supplier_id="S1", amount=100, payment_method="contanti"),
        Entry(id="e2", date="2024-03-15", supplier_id="S1", amount=50, payment_method="bonifico"),
        Entry(id="e3", date="2024-04-01", supplier_id="S2", amount=25, payment_method="contanti"),
    ]


def test_scenario_totals_per_supplier_and_month():
    result = aggregate(_entries(), _suppliers(), year=2024)

    assert result.totals.cash_total == Decimal("125.00")
    assert result.totals.transfer_total == Decimal("50.00")
    assert result.totals.grand_total == Decimal("175.00")

    acme = result.per_supplier["S1"].totals
    beta = result.per_supplier["S2"].totals
    assert (acme.cash_total, acme.transfer_total, acme.grand_total) == (100, 50, 150)
    assert (beta.cash_total, beta.transfer_total, beta.grand_total) == (25, 0, 25)

    assert list(result.per_month) == [(2024, 3), (2024, 4)]
    assert result.per_month[(2024, 3)].totals.grand_total == 150
    assert result.per_month[(2024, 4)].totals.grand_total == 25
    assert result.per_month[(2024, 3)].label == "Marzo 2024"
    assert result.warnings == []


def test_unknown_supplier_counts_in_totals_only():
    entries = _entries() + [
        Entry(id="e9", date="2024-03-20", supplier_id="S9", amount=10, payment_method="contanti"),
    ]
    result = aggregate(entries, _suppliers(), year=2024)

    assert result.totals.grand_total == Decimal("185.00")
    assert "S9" not in result.per_supplier
    assert result.unassigned.grand_total == Decimal("10.00")
    assert [w.code for w in result.warnings] == ["unknown_supplier"]
    assert result.warnings[0].entry_id == "e9"

    per_supplier_sum = sum(b.totals.grand_total for b in result.per_supplier.values())
    assert result.totals.grand_total == per_supplier_sum + result.unassigned.grand_total


def test_empty_input_yields_zeros():
    result = aggregate([], _suppliers())

    assert result.totals.cash_total == 0
    assert result.totals.transfer_total == 0
    assert result.totals.grand_total == 0
    assert result.per_supplier == {}
    assert result.per_month == {}
    assert result.warnings == []
    assert result.is_empty


def test_malformed_records_are_skipped_with_warnings():
    entries = _entries() + [
        Entry(id="bad-date", date="01/03/2024", supplier_id="S1", amount=5, payment_method="contanti"),
        Entry(id="no-date", date=None, supplier_id="S1", amount=5, payment_method="contanti"),
        Entry(id="bad-amount", date="2024-03-02", supplier_id="S1", amount="abc", payment_method="contanti"),
        Entry(id="negative", date="2024-03-02", supplier_id="S1", amount=-3, payment_method="contanti"),
        Entry(id="bad-method", date="2024-03-02", supplier_id="S1", amount=5, payment_method="assegno"),
    ]
    result = aggregate(entries, _suppliers())

    assert result.skipped == 5
    assert result.totals.grand_total == Decimal("175.00")
    codes = {w.entry_id: w.code for w in result.warnings}
    assert codes == {
        "bad-date": "invalid_date",
        "no-date": "invalid_date",
        "bad-amount": "invalid_amount",
        "negative": "invalid_amount",
        "bad-method": "invalid_payment_method",
    }

    grouped = sum(len(g.entries) for g in result.per_month.values())
    assert grouped + result.skipped == len(entries)


def test_group_counts_plus_skipped_equal_input_length_without_filter():
    entries = _entries() + [
        Entry(id="x", date="2023-12-31", supplier_id="S9", amount="1,50", payment_method="cash"),
        Entry(id="y", date="garbage", supplier_id="S1", amount=1, payment_method="contanti"),
    ]
    result = aggregate(entries, _suppliers())

    grouped = sum(len(g.entries) for g in result.per_month.values())
    assert grouped + result.skipped == len(entries)
    assert list(result.per_month)[0] == (2023, 12)


def test_decimal_sums_have_no_float_drift():
    entries = [
        Entry(id=str(i), date="2024-01-05", supplier_id="S1", amount=0.1, payment_method="contanti")
        for i in range(10)
    ]
    result = aggregate(entries, _suppliers())

    assert result.totals.cash_total == Decimal("1.00")
    assert str(result.totals.grand_total) == "1.00"


def test_aggregation_is_idempotent_and_does_not_mutate_input():
    entries = _entries()
    suppliers = _suppliers()
    snapshot = [(e.id, e.date, e.amount) for e in entries]

    first = aggregate(entries, suppliers)
    second = aggregate(entries, suppliers)

    assert first.totals == second.totals
    assert [(e.id, e.date, e.amount) for e in entries] == snapshot
    assert [s.id for s in suppliers] == ["S1", "S2"]


def test_suppliers_sorted_by_name_case_insensitive():
    suppliers = [
        Supplier(id="a", name="zeta"),
        Supplier(id="b", name="Alfa"),
        Supplier(id="c", name="beta"),
    ]
    entries = [
        Entry(id="1", date="2024-01-01", supplier_id="a", amount=1),
        Entry(id="2", date="2024-01-01", supplier_id="b", amount=1),
        Entry(id="3", date="2024-01-01", supplier_id="c", amount=1),
    ]
    result = aggregate(entries, suppliers)

    assert [b.supplier.name for b in result.per_supplier.values()] == ["Alfa", "beta", "zeta"]


def test_entries_ordered_by_date_within_groups():
    entries = [
        Entry(id="late", date="2024-03-20", supplier_id="S1", amount=1),
        Entry(id="early", date="2024-03-02", supplier_id="S1", amount=1),
        Entry(id="mid", date="2024-03-10", supplier_id="S1", amount=1),
    ]
    ascending = aggregate(entries, _suppliers())
    descending = aggregate(entries, _suppliers(), descending=True)

    assert [e.id for e in ascending.per_supplier["S1"].entries] == ["early", "mid", "late"]
    assert [e.id for e in descending.per_month[(2024, 3)].entries] == ["late", "mid", "early"]


def test_month_filter_and_invalid_month():
    result = aggregate(_entries(), _suppliers(), year=2024, month=4)

    assert result.totals.grand_total == Decimal("25.00")
    assert list(result.per_month) == [(2024, 4)]

    with pytest.raises(ValueError):
        aggregate(_entries(), _suppliers(), month=13)


def test_out_of_range_amount_is_skipped_not_fatal():
    entries = _entries() + [
        Entry(id="huge", date="2024-03-05", supplier_id="S1", amount="1e30", payment_method="contanti"),
        Entry(id="too-wide", date="2024-03-06", supplier_id="S1", amount="10000000000", payment_method="contanti"),
    ]
    result = aggregate(entries, _suppliers(), year=2024)

    assert result.skipped == 2
    assert result.totals.grand_total == Decimal("175.00")
    assert {w.entry_id: w.code for w in result.warnings} == {"huge": "invalid_amount", "too-wide": "invalid_amount"}


def test_month_groups_carry_unassigned_totals():
    entries = _entries() + [
        Entry(id="lost", date="2024-04-10", supplier_id="S9", amount=7, payment_method="bonifico"),
    ]
    result = aggregate(entries, _suppliers(), year=2024)

    assert result.per_month[(2024, 3)].unassigned.count == 0
    april = result.per_month[(2024, 4)]
    assert april.unassigned.transfer_total == Decimal("7.00")
    assert april.totals.grand_total == Decimal("32.00")
