from datetime import date
from decimal import Decimal

import pytest

from ExpenseApp.app.services import mapping
from ExpenseApp.app.services.aggregation import aggregate
from ExpenseApp.app.services.records import Entry, Supplier, User


def test_entry_row_uses_snake_case_columns():
    entry = Entry(id="e1", date=date(2024, 3, 1), supplier_id="S1", amount=Decimal("12.5"),
                  description="x", payment_method="bonifico")
    row = mapping.entry_to_row(entry)

    assert row == {
        "id": "e1",
        "date": "2024-03-01",
        "supplier_id": "S1",
        "amount": "12.50",
        "description": "x",
        "payment_method": "bonifico",
    }


def test_entry_without_id_omits_it_from_row():
    row = mapping.entry_to_row(Entry(id=None, date="2024-03-01", supplier_id="S1", amount=1))
    assert "id" not in row


def test_entry_payload_uses_camel_case_keys():
    entry = mapping.entry_from_row({
        "id": 7, "date": "2024-03-01", "supplier_id": "S1", "amount": "9.99",
        "description": None, "payment_method": "contanti",
    })
    payload = mapping.entry_to_payload(entry)

    assert payload == {
        "id": "7",
        "date": "2024-03-01",
        "supplierId": "S1",
        "amount": 9.99,
        "description": "",
        "paymentMethod": "contanti",
    }


def test_malformed_stored_amount_passes_through():
    entry = mapping.entry_from_row({"id": "e", "date": "nope", "supplier_id": "S1", "amount": "abc"})
    payload = mapping.entry_to_payload(entry)

    assert payload["amount"] == "abc"
    assert payload["date"] == "nope"


def test_partial_payload_keeps_only_present_fields():
    fields = mapping.entry_fields_from_payload({"amount": 3, "paymentMethod": "bonifico", "id": "ignored"})
    assert fields == {"amount": 3, "payment_method": "bonifico"}
    assert mapping.entry_fields_to_row(fields) == {"amount": "3.00", "payment_method": "bonifico"}


def test_unknown_entry_field_is_rejected():
    with pytest.raises(KeyError):
        mapping.entry_fields_to_row({"supplierId": "S1"})


def test_supplier_round_trip_through_row_and_payload():
    supplier = mapping.supplier_from_row({"id": "S1", "name": "Acme", "default_payment_method": "bonifico"})
    assert mapping.supplier_to_payload(supplier) == {"id": "S1", "name": "Acme", "defaultPaymentMethod": "bonifico"}
    assert mapping.supplier_to_row(mapping.supplier_from_payload(mapping.supplier_to_payload(supplier))) == {
        "id": "S1", "name": "Acme", "default_payment_method": "bonifico",
    }


def test_user_payload_never_carries_password():
    user = mapping.user_from_row({"id": "u1", "username": "mario", "password": "secret", "is_admin": 0})
    payload = mapping.user_to_payload(user)

    assert payload == {"id": "u1", "username": "mario", "isAdmin": False}
    assert mapping.user_to_row(user)["password"] == "secret"


def test_aggregation_payload_shape():
    suppliers = [Supplier(id="S1", name="Acme")]
    entries = [
        Entry(id="1", date="2024-03-01", supplier_id="S1", amount=10, payment_method="contanti"),
        Entry(id="2", date="2024-03-02", supplier_id="S9", amount=5, payment_method="bonifico"),
    ]
    payload = mapping.aggregation_to_payload(aggregate(entries, suppliers))

    assert payload["totals"] == {"cash_total": 10.0, "transfer_total": 5.0, "grand_total": 15.0, "count": 2}
    assert payload["unassigned"]["grand_total"] == 5.0
    assert [s["name"] for s in payload["perSupplier"]] == ["Acme"]
    assert payload["perMonth"][0]["label"] == "Marzo 2024"
    assert payload["perMonth"][0]["unassigned"]["transfer_total"] == 5.0
    assert payload["warnings"] == [
        {"code": "unknown_supplier", "message": "Supplier 'S9' not found", "entryId": "2"},
    ]
    assert payload["skipped"] == 0
