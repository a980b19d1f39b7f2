"""Display ordering and free-text search over a user's transactions.

These helpers run on already-retrieved records (the store handles
``category``/``kind``/``sort`` filters). They accept anything shaped like
:class:`~expense_ledger.models.LedgerRecord`.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from .models import LedgerRecord

R = TypeVar("R", bound=LedgerRecord)

# Shown for records that carry no kind.
DEFAULT_KIND_TEXT = "expense"


def display_order(transactions: Iterable[R]) -> list[R]:
    """Newest ``occurred_on`` first; on equal dates the larger (later) id first.

    Ids are unique, so the ordering is total.
    """

    return sorted(transactions, key=lambda t: (t.occurred_on, t.id), reverse=True)


def matches_text(tx: LedgerRecord, query: str | None) -> bool:
    """Case-insensitive substring match on description, category or kind."""

    needle = (query or "").strip().lower()
    if not needle:
        return True
    haystacks = (
        tx.description or "",
        tx.category or "",
        getattr(tx, "kind", None) or DEFAULT_KIND_TEXT,
    )
    return any(needle in h.lower() for h in haystacks)


def search(transactions: Iterable[R], query: str | None) -> list[R]:
    return [t for t in transactions if matches_text(t, query)]


def browse(transactions: Iterable[R], query: str | None = None) -> list[R]:
    """The dashboard list: text search, then display order."""

    return display_order(search(transactions, query))


__all__ = [
    "DEFAULT_KIND_TEXT",
    "browse",
    "display_order",
    "matches_text",
    "search",
]
