"""Durable CRUD for ledger transactions.

Functions here read and write ``ledger_transactions`` through the ORM model in
``db.models.ledger``. Every function takes an active SQLAlchemy session as its
first argument; callers own the transaction scope (see
``db.client.session_scope``), which keeps each operation atomic as a unit.

Idempotency rules for :func:`create_transaction`:
- With an ``idempotency_key`` that already exists, the stored record is
  returned unchanged (``created=False``).
- Two concurrent creates with the same new key can both pass the existence
  check. The partial unique index on ``idempotency_key`` decides the winner;
  the loser's insert fails, the session is rolled back and the winning record
  is re-read and returned as a replay.
- Without a key no deduplication is attempted, so resubmitting the same form
  creates a second record.

Concurrent updates of one record are last-write-wins; there is no version
check.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from db.models.ledger import LedgerTransaction
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .authz import require_owner
from .errors import ConflictError, NotFoundError, StorageError, UnauthorizedError
from .logging_setup import get_logger
from .models import (
    KINDS,
    CreateResult,
    ListFilters,
    Transaction,
    TransactionFields,
    TransactionPatch,
)
from .money import Money

_log = get_logger("expense_ledger.store")


def _now() -> datetime:
    return datetime.now(UTC)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        _log.error("%s failed: %s", operation, e)
        raise StorageError(f"{operation} failed: {e.__class__.__name__}") from e


def _norm_key(raw: str | None) -> str | None:
    # Keys are opaque; only a blank key is treated as absent.
    if raw is None or not raw.strip():
        return None
    return raw


def _find_by_idempotency_key(session: Session, key: str) -> LedgerTransaction | None:
    return (
        session.execute(
            select(LedgerTransaction).where(LedgerTransaction.idempotency_key == key)
        )
        .scalars()
        .first()
    )


def _insert(session: Session, row: LedgerTransaction) -> None:
    session.add(row)
    try:
        session.flush()
    except IntegrityError as e:
        if row.idempotency_key is not None:
            raise ConflictError(row.idempotency_key) from e
        raise


def _load(session: Session, tx_id: int) -> LedgerTransaction:
    row = session.get(LedgerTransaction, tx_id)
    if row is None:
        raise NotFoundError(tx_id)
    return row


def _require_owner(row: LedgerTransaction, owner_id: str, action: str) -> None:
    try:
        require_owner(row, owner_id)
    except UnauthorizedError:
        _log.warning("Denied %s of transaction id=%s for owner=%s", action, row.id, owner_id)
        raise


def create_transaction(
    session: Session,
    *,
    owner_id: str,
    fields: Mapping[str, Any] | TransactionFields,
    idempotency_key: str | None = None,
) -> CreateResult:
    """Validate ``fields`` and persist a new transaction owned by ``owner_id``.

    Raises :class:`~expense_ledger.errors.ValidationError` before any write
    when a field is invalid. Returns the existing record with
    ``created=False`` when ``idempotency_key`` was already used.
    """

    parsed = TransactionFields.parse(fields)
    key = _norm_key(idempotency_key)

    with _storage_errors("create transaction"):
        if key is not None:
            existing = _find_by_idempotency_key(session, key)
            if existing is not None:
                _log.info("Idempotent replay: key=%s -> id=%s", key, existing.id)
                return CreateResult(Transaction.model_validate(existing), created=False)

        now = _now()
        row = LedgerTransaction(
            owner_id=owner_id,
            kind=parsed.kind,
            amount=parsed.amount.value,
            category=parsed.category,
            description=parsed.description,
            occurred_on=parsed.occurred_on,
            idempotency_key=key,
            created_at=now,
            updated_at=now,
        )
        try:
            _insert(session, row)
        except ConflictError as conflict:
            return _recover_conflict(session, conflict)

        _log.info("Created transaction id=%s owner=%s kind=%s", row.id, owner_id, row.kind)
        return CreateResult(Transaction.model_validate(row), created=True)


def _recover_conflict(session: Session, conflict: ConflictError) -> CreateResult:
    """Resolve a lost idempotency race by returning the winning record."""

    session.rollback()
    winner = _find_by_idempotency_key(session, conflict.idempotency_key)
    if winner is None:
        # The unique violation was not about the key after all.
        raise StorageError("create transaction failed: integrity error") from conflict
    _log.warning(
        "Idempotency race on key=%s resolved to id=%s", conflict.idempotency_key, winner.id
    )
    return CreateResult(Transaction.model_validate(winner), created=False)


def update_transaction(
    session: Session,
    tx_id: int,
    *,
    owner_id: str,
    patch: Mapping[str, Any] | TransactionPatch,
) -> Transaction:
    """Apply a merge-patch to a transaction owned by ``owner_id``.

    Raises ``NotFoundError`` for a missing id, ``UnauthorizedError`` when the
    caller is not the owner, and ``ValidationError`` for invalid present
    fields. ``owner_id`` and ``idempotency_key`` are never modified.
    """

    with _storage_errors("update transaction"):
        row = _load(session, tx_id)
        _require_owner(row, owner_id, "update")
        changes = TransactionPatch.parse(patch).changes()
        for name, value in changes.items():
            setattr(row, name, value.value if isinstance(value, Money) else value)
        if changes:
            row.updated_at = _now()
            session.flush()
            _log.info("Updated transaction id=%s fields=%s", row.id, sorted(changes))
        return Transaction.model_validate(row)


def delete_transaction(session: Session, tx_id: int, *, owner_id: str) -> None:
    """Hard-delete a transaction owned by ``owner_id``."""

    with _storage_errors("delete transaction"):
        row = _load(session, tx_id)
        _require_owner(row, owner_id, "delete")
        session.delete(row)
        session.flush()
        _log.info("Deleted transaction id=%s owner=%s", tx_id, owner_id)


def get_transaction(session: Session, tx_id: int) -> Transaction | None:
    with _storage_errors("get transaction"):
        row = session.get(LedgerTransaction, tx_id)
        return Transaction.model_validate(row) if row is not None else None


def list_transactions(
    session: Session,
    *,
    owner_id: str,
    filters: ListFilters | None = None,
) -> list[Transaction]:
    """Return the owner's transactions under store-level filters.

    ``category`` and ``kind`` are exact matches (an unknown ``kind`` means all
    kinds). ``sort`` is ``date_desc`` or ``date_asc`` with the id as
    tie-break in the same direction; anything else keeps insertion order.
    """

    f = filters or ListFilters()
    stmt = select(LedgerTransaction).where(LedgerTransaction.owner_id == owner_id)
    if f.category:
        stmt = stmt.where(LedgerTransaction.category == f.category)
    if f.kind in KINDS:
        stmt = stmt.where(LedgerTransaction.kind == f.kind)

    if f.sort == "date_desc":
        stmt = stmt.order_by(LedgerTransaction.occurred_on.desc(), LedgerTransaction.id.desc())
    elif f.sort == "date_asc":
        stmt = stmt.order_by(LedgerTransaction.occurred_on.asc(), LedgerTransaction.id.asc())
    else:
        stmt = stmt.order_by(LedgerTransaction.id.asc())

    with _storage_errors("list transactions"):
        rows = session.execute(stmt).scalars().all()
        return [Transaction.model_validate(r) for r in rows]


__all__ = [
    "create_transaction",
    "update_transaction",
    "delete_transaction",
    "get_transaction",
    "list_transactions",
]
