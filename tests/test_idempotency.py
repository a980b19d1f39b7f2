from __future__ import annotations

from typing import Any

import pytest
from db.client import session_scope

import expense_ledger.store as store_mod
from expense_ledger.errors import ValidationError
from expense_ledger.store import create_transaction
from tests.helpers.db import count_transactions

FIELDS: dict[str, Any] = {
    "amount": "40.00",
    "category": "Food",
    "description": "Groceries",
    "date": "2025-03-01",
    "kind": "expense",
}


def _submit(db_url: str, key: str | None, owner: str = "alice", **overrides: Any):
    with session_scope(database_url=db_url) as s:
        return create_transaction(
            s, owner_id=owner, fields={**FIELDS, **overrides}, idempotency_key=key
        )


def test_repeated_submission_with_same_key_creates_one_record(db_url):
    results = [_submit(db_url, "form-123") for _ in range(5)]

    assert results[0].created is True
    assert all(r.created is False for r in results[1:])
    assert {r.transaction.id for r in results} == {results[0].transaction.id}
    assert count_transactions(db_url) == 1

    first = results[0].transaction
    for r in results[1:]:
        t = r.transaction
        assert (t.amount, t.category, t.description, t.kind, t.occurred_on) == (
            first.amount,
            first.category,
            first.description,
            first.kind,
            first.occurred_on,
        )
        assert t.idempotency_key == "form-123"


def test_replay_returns_stored_record_even_if_payload_differs(db_url):
    original = _submit(db_url, "k-1")
    replay = _submit(db_url, "k-1", amount="999", description="different")
    assert replay.created is False
    assert replay.transaction.id == original.transaction.id
    assert replay.transaction.amount == original.transaction.amount
    assert replay.transaction.description == "Groceries"


def test_invalid_payload_is_rejected_before_the_key_is_consulted(db_url):
    _submit(db_url, "k-1")
    with pytest.raises(ValidationError):
        _submit(db_url, "k-1", amount="0")


def test_without_key_each_submission_creates_a_record(db_url):
    a = _submit(db_url, None)
    b = _submit(db_url, None)
    assert a.created and b.created
    assert a.transaction.id != b.transaction.id
    assert count_transactions(db_url) == 2


@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_key_counts_as_no_key(db_url, blank):
    a = _submit(db_url, blank)
    b = _submit(db_url, blank)
    assert a.created and b.created
    assert a.transaction.idempotency_key is None
    assert count_transactions(db_url) == 2


def test_distinct_keys_create_distinct_records(db_url):
    a = _submit(db_url, "k-1")
    b = _submit(db_url, "k-2")
    assert a.transaction.id != b.transaction.id
    assert count_transactions(db_url) == 2


def test_lost_race_at_unique_index_returns_the_winner(db_url, monkeypatch):
    winner = _submit(db_url, "race-key")

    # Simulate a concurrent request that checked for the key before the
    # winner committed: the first lookup misses, the insert then hits the
    # unique index.
    real_find = store_mod._find_by_idempotency_key
    calls = {"n": 0}

    def _stale_then_real(session, key):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(session, key)

    monkeypatch.setattr(store_mod, "_find_by_idempotency_key", _stale_then_real)

    loser = _submit(db_url, "race-key", description="second writer")

    assert loser.created is False
    assert loser.transaction.id == winner.transaction.id
    assert loser.transaction.description == "Groceries"
    assert calls["n"] == 2
    assert count_transactions(db_url) == 1
