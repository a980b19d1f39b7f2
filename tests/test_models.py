from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from expense_ledger.errors import ValidationError
from expense_ledger.models import (
    Principal,
    Transaction,
    TransactionFields,
    TransactionPatch,
)
from expense_ledger.money import Money


def _fields(**overrides):
    base = {
        "amount": "40.00",
        "category": "Food",
        "description": "Groceries",
        "date": "2025-03-01",
        "kind": "expense",
    }
    base.update(overrides)
    return base


def test_transaction_fields_parse_valid_payload():
    f = TransactionFields.parse(_fields())
    assert f.amount == Money(Decimal("40"))
    assert f.kind == "expense"
    assert f.occurred_on == date(2025, 3, 1)


def test_original_client_field_names_are_accepted():
    raw = _fields(type="income", amount={"$numberDecimal": "99.99"})
    del raw["kind"]
    f = TransactionFields.parse(raw)
    assert f.kind == "income"
    assert f.amount.to_display() == "99.99"


def test_full_iso_timestamp_is_reduced_to_its_date():
    f = TransactionFields.parse(_fields(date="2025-03-01T00:00:00.000Z"))
    assert f.occurred_on == date(2025, 3, 1)


def test_text_is_stored_verbatim():
    f = TransactionFields.parse(_fields(category=" Food ", description="Lunch  "))
    assert f.category == " Food "
    assert f.description == "Lunch  "


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"amount": 0}, "amount"),
        ({"amount": -5}, "amount"),
        ({"amount": "ten"}, "amount"),
        ({"kind": "transfer"}, "kind"),
        ({"category": ""}, "category"),
        ({"description": "   "}, "description"),
        ({"date": "not-a-date"}, "date"),
        ({"date": ""}, "date"),
    ],
)
def test_invalid_field_is_reported_by_name(overrides, field):
    with pytest.raises(ValidationError) as ei:
        TransactionFields.parse(_fields(**overrides))
    assert field in ei.value.errors


def test_missing_fields_are_all_reported():
    with pytest.raises(ValidationError) as ei:
        TransactionFields.parse({})
    assert set(ei.value.fields) == {"amount", "kind", "category", "description", "date"}


def test_patch_applies_only_present_non_blank_fields():
    patch = TransactionPatch.parse({"description": "new desc"})
    assert patch.changes() == {"description": "new desc"}


def test_patch_treats_blank_values_as_absent():
    patch = TransactionPatch.parse(
        {"amount": 0, "category": "", "description": "  ", "kind": None, "date": ""}
    )
    assert patch.changes() == {}


def test_patch_validates_present_values():
    with pytest.raises(ValidationError) as ei:
        TransactionPatch.parse({"amount": "-3", "kind": "gift"})
    assert set(ei.value.fields) == {"amount", "kind"}


def test_patch_accepts_aliases():
    patch = TransactionPatch.parse({"type": "income", "date": "2025-01-02", "amount": "5"})
    assert patch.changes() == {
        "kind": "income",
        "occurred_on": date(2025, 1, 2),
        "amount": Money(Decimal("5")),
    }


def test_transaction_serializes_camel_case_with_exact_amount():
    now = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
    tx = Transaction(
        id=3,
        owner_id="u1",
        kind="expense",
        amount=Decimal("12.5"),
        category="Food",
        description="Lunch",
        occurred_on=date(2025, 3, 1),
        idempotency_key="k-1",
        created_at=now,
        updated_at=now,
    )
    data = tx.model_dump(mode="json", by_alias=True)
    assert data["amount"] == "12.50"
    assert data["ownerId"] == "u1"
    assert data["occurredOn"] == "2025-03-01"
    assert data["idempotencyKey"] == "k-1"
    assert set(data) == {
        "id",
        "ownerId",
        "kind",
        "amount",
        "category",
        "description",
        "occurredOn",
        "idempotencyKey",
        "createdAt",
        "updatedAt",
    }


def test_principal_requires_an_identity():
    assert Principal("user-1").owner_id == "user-1"
    with pytest.raises(ValueError):
        Principal(" ")


@pytest.mark.parametrize("amount", ["0.001", "0.004", {"$numberDecimal": "0.001"}])
def test_patch_rejects_sub_cent_amount_like_create(amount):
    with pytest.raises(ValidationError) as ei:
        TransactionPatch.parse({"amount": amount})
    assert "amount" in ei.value.errors
    with pytest.raises(ValidationError):
        TransactionFields.parse(_fields(amount=amount))


@pytest.mark.parametrize("amount", [0, "0", "0.00", Decimal("0")])
def test_patch_literal_zero_amount_is_blank(amount):
    assert TransactionPatch.parse({"amount": amount}).changes() == {}
