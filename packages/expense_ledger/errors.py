"""Error taxonomy for the transaction ledger.

Validation and authorization failures are terminal and reported to the caller.
``ConflictError`` is raised only inside the store when an idempotency key
races at the unique index; the store recovers from it and never lets it
escape. ``StorageError`` wraps any other persistence failure.
"""

from __future__ import annotations

from collections.abc import Mapping


class LedgerError(Exception):
    """Base class for all ledger errors."""


class ValidationError(LedgerError):
    """Malformed or missing input; nothing was written.

    ``errors`` maps each offending field name to a human-readable reason.
    """

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors: dict[str, str] = dict(errors)
        detail = "; ".join(f"{field}: {reason}" for field, reason in self.errors.items())
        super().__init__(f"Invalid transaction fields: {detail}")

    @property
    def fields(self) -> list[str]:
        return list(self.errors)


class NotFoundError(LedgerError):
    def __init__(self, tx_id: object) -> None:
        self.tx_id = tx_id
        super().__init__(f"Transaction not found: {tx_id!r}")


class UnauthorizedError(LedgerError):
    def __init__(self, tx_id: object, owner_id: str) -> None:
        self.tx_id = tx_id
        self.owner_id = owner_id
        super().__init__(f"Caller {owner_id!r} does not own transaction {tx_id!r}")


class ConflictError(LedgerError):
    def __init__(self, idempotency_key: str) -> None:
        self.idempotency_key = idempotency_key
        super().__init__(f"Idempotency key already used: {idempotency_key!r}")


class StorageError(LedgerError):
    """Underlying persistence failure (connectivity, timeout, constraint)."""


__all__ = [
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ConflictError",
    "StorageError",
]
