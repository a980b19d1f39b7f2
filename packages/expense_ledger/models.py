"""Data models for ``expense_ledger``.

Request payloads are validated with pydantic and every amount is routed
through :mod:`expense_ledger.money`. Validation failures are re-raised as the
ledger's own :class:`~expense_ledger.errors.ValidationError` so that callers
only ever handle one error taxonomy.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal, Protocol

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .money import InvalidMoneyError, Money, parse_amount, parse_decimal, parse_money

Kind = Literal["income", "expense"]

KINDS: tuple[str, ...] = ("income", "expense")
SORT_ORDERS: tuple[str, ...] = ("date_desc", "date_asc")

# Alternate spellings accepted on input, mapped to the canonical field names
# reported in validation errors.
_FIELD_ALIASES: dict[str, str] = {
    "type": "kind",
    "occurredOn": "date",
    "occurred_on": "date",
}


class LedgerRecord(Protocol):
    """Structural view of a transaction consumed by query/aggregation helpers."""

    id: int
    kind: str
    amount: Any
    category: str
    description: str
    occurred_on: date


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity, handed to the core per request."""

    owner_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.owner_id, str) or not self.owner_id.strip():
            raise ValueError("Principal.owner_id must be a non-empty string")


@dataclass(frozen=True, slots=True)
class ListFilters:
    """Store-level list filters; unknown ``kind``/``sort`` values are ignored."""

    category: str | None = None
    kind: str | None = None
    sort: str | None = None


# ---------------------------------------------------------------------------
# Field coercion shared by create and patch payloads
# ---------------------------------------------------------------------------


def _coerce_date(v: Any) -> date:
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        s = v.strip()
        if not s:
            raise ValueError("date is required")
        try:
            return date.fromisoformat(s)
        except ValueError:
            pass
        # Clients serializing a JS Date send a full ISO timestamp.
        try:
            return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValueError(f"invalid date: {v!r}") from None
    raise ValueError("date must be an ISO-8601 date string")


def _require_text(v: str, field: str) -> str:
    # Stored verbatim: category grouping is exact-match, so no trimming here.
    if not v.strip():
        raise ValueError(f"{field} must be non-empty")
    return v


def _is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _error_field(loc: tuple[Any, ...]) -> str:
    if not loc:
        return "__root__"
    name = str(loc[0])
    return _FIELD_ALIASES.get(name, name)


def _error_reason(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix) :] if msg.startswith(prefix) else msg


def to_ledger_validation_error(exc: PydanticValidationError) -> ValidationError:
    errors: dict[str, str] = {}
    for err in exc.errors():
        errors.setdefault(_error_field(tuple(err.get("loc", ()))), _error_reason(err["msg"]))
    return ValidationError(errors)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class TransactionFields(BaseModel):
    """Fields required to create a transaction."""

    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, arbitrary_types_allowed=True
    )

    amount: Money
    kind: Kind = Field(validation_alias=AliasChoices("kind", "type"))
    category: str
    description: str
    occurred_on: date = Field(validation_alias=AliasChoices("date", "occurredOn", "occurred_on"))

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> Money:
        try:
            return parse_amount(v)
        except InvalidMoneyError as e:
            raise ValueError(str(e)) from None

    @field_validator("occurred_on", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> date:
        return _coerce_date(v)

    @field_validator("category")
    @classmethod
    def _category_non_empty(cls, v: str) -> str:
        return _require_text(v, "category")

    @field_validator("description")
    @classmethod
    def _description_non_empty(cls, v: str) -> str:
        return _require_text(v, "description")

    @classmethod
    def parse(cls, raw: Mapping[str, Any] | TransactionFields) -> TransactionFields:
        """Validate ``raw`` or raise the ledger :class:`ValidationError`."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as e:
            raise to_ledger_validation_error(e) from None


class TransactionPatch(BaseModel):
    """Merge-patch for an existing transaction.

    A field is applied only when it is present in the request and not blank.
    ``None``, empty or whitespace-only text, and a literal zero amount are blank and
    leave the stored value unchanged; a caller cannot clear a field through an
    update. Present, non-blank values obey the same rules as on create.
    """

    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, arbitrary_types_allowed=True
    )

    amount: Money | None = None
    kind: Kind | None = Field(default=None, validation_alias=AliasChoices("kind", "type"))
    category: str | None = None
    description: str | None = None
    occurred_on: date | None = Field(
        default=None, validation_alias=AliasChoices("date", "occurredOn", "occurred_on")
    )

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> Money | None:
        if _is_blank(v):
            return None
        try:
            # Only a literal zero means "unchanged"; "0.001" is a sub-cent
            # amount and fails like it does on create.
            if parse_decimal(v) == 0:
                return None
            return parse_amount(v)
        except InvalidMoneyError as e:
            raise ValueError(str(e)) from None

    @field_validator("kind", "category", "description", mode="before")
    @classmethod
    def _blank_text_to_none(cls, v: Any) -> Any:
        return None if _is_blank(v) else v

    @field_validator("occurred_on", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> date | None:
        return None if _is_blank(v) else _coerce_date(v)

    def changes(self) -> dict[str, Any]:
        """Return ``{field: value}`` for the fields this patch applies."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }

    @classmethod
    def parse(cls, raw: Mapping[str, Any] | TransactionPatch) -> TransactionPatch:
        if isinstance(raw, cls):
            return raw
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as e:
            raise to_ledger_validation_error(e) from None


# ---------------------------------------------------------------------------
# Persisted record view
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """A persisted transaction, detached from any database session.

    Serializes with camelCase keys and the amount as an exact two-place
    decimal string.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True,
        frozen=True,
    )

    id: int
    owner_id: str
    kind: Kind
    amount: Money
    category: str
    description: str
    occurred_on: date
    idempotency_key: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_to_money(cls, v: Any) -> Money:
        return parse_money(v)

    @field_serializer("amount")
    def _amount_display(self, v: Money) -> str:
        return v.to_display()


@dataclass(frozen=True, slots=True)
class CreateResult:
    """Outcome of a create call; ``created`` is False for idempotent replays."""

    transaction: Transaction
    created: bool


__all__ = [
    "KINDS",
    "SORT_ORDERS",
    "CreateResult",
    "Kind",
    "LedgerRecord",
    "ListFilters",
    "Principal",
    "Transaction",
    "TransactionFields",
    "TransactionPatch",
    "to_ledger_validation_error",
]
