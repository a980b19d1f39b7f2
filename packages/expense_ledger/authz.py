"""Per-record ownership checks.

Only the identity that created a transaction may change or delete it. There
is no sharing, delegation or admin override.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from .errors import UnauthorizedError


class Access(Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


class Owned(Protocol):
    id: int
    owner_id: str


def authorize(record: Owned, owner_id: str) -> Access:
    """Pure predicate: may ``owner_id`` mutate ``record``?"""

    return Access.ALLOWED if record.owner_id == owner_id else Access.DENIED


def require_owner(record: Owned, owner_id: str) -> None:
    """Raise :class:`UnauthorizedError` unless ``owner_id`` owns ``record``."""

    if authorize(record, owner_id) is Access.DENIED:
        raise UnauthorizedError(record.id, owner_id)


__all__ = [
    "Access",
    "authorize",
    "require_owner",
]
