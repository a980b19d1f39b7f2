"""Exact currency amounts.

Every amount that crosses a boundary (API payloads, database rows, the
document store's structured decimal encoding) goes through :func:`parse_money`
or :func:`parse_amount` and comes out as a :class:`Money`. Arithmetic stays in
``decimal.Decimal`` so repeated aggregation never accumulates binary
floating-point error.

Values are held at cent precision (``0.01``, half-up), the same scale as the
``NUMERIC(18, 2)`` column they are stored in. The column's magnitude limit
applies to parsed input only; sums and differences of stored amounts may
exceed it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_CENT = Decimal("0.01")
# NUMERIC(18, 2) leaves sixteen integer digits.
_MAX_ABS = Decimal(10) ** 16
# Key used by the document store's extended-JSON decimal encoding.
STRUCTURED_DECIMAL_KEY = "$numberDecimal"


class InvalidMoneyError(ValueError):
    pass


def _quantize(value: Decimal) -> Decimal:
    if not value.is_finite():
        raise InvalidMoneyError("amount must be a finite number")
    try:
        return value.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context can carry at cent scale.
        raise InvalidMoneyError("amount is out of range") from None


@dataclass(frozen=True, slots=True, order=True)
class Money:
    """An exact decimal amount at cent precision."""

    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            raise TypeError(f"Money requires a Decimal, got {type(self.value).__name__}")
        object.__setattr__(self, "value", _quantize(self.value))

    @classmethod
    def zero(cls) -> Money:
        return cls(Decimal(0))

    def __add__(self, other: object) -> Money:
        if isinstance(other, Money):
            return Money(self.value + other.value)
        # ``sum()`` starts from the int 0.
        if isinstance(other, int) and not isinstance(other, bool) and other == 0:
            return self
        return NotImplemented

    __radd__ = __add__

    def __sub__(self, other: object) -> Money:
        if isinstance(other, Money):
            return Money(self.value - other.value)
        return NotImplemented

    @property
    def is_zero(self) -> bool:
        return self.value == 0

    def to_display(self) -> str:
        """Render with exactly two decimal places, e.g. ``"12.50"``."""
        return f"{self.value:.2f}"

    def __str__(self) -> str:
        return self.to_display()


def parse_decimal(raw: Any) -> Decimal:
    """Read an external amount as an exact, unrounded ``Decimal``.

    Accepts the same representations as :func:`parse_money` and enforces the
    storable range. Callers that must tell a literal zero from a sub-cent
    value use this instead of :func:`parse_money`, which rounds both to
    ``0.00``.
    """

    if isinstance(raw, Money):
        return raw.value
    if raw is None or isinstance(raw, bool):
        raise InvalidMoneyError("amount must be a number")
    if isinstance(raw, Mapping):
        if STRUCTURED_DECIMAL_KEY not in raw:
            raise InvalidMoneyError("amount must be a number")
        return parse_decimal(raw[STRUCTURED_DECIMAL_KEY])
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, float):
        value = _decimal_from_text(str(raw))
    elif isinstance(raw, str):
        value = _decimal_from_text(raw)
    else:
        raise InvalidMoneyError(f"unsupported amount type: {type(raw).__name__}")

    if abs(_quantize(value)) >= _MAX_ABS:
        raise InvalidMoneyError("amount is out of range")
    return value


def parse_money(raw: Any) -> Money:
    """Normalize any accepted external amount representation to :class:`Money`.

    Accepted: ``Money``, ``Decimal``, ``int``, ``float`` (through its shortest
    string form, so ``0.1`` is exactly one tenth), numeric strings, and
    structured decimals such as ``{"$numberDecimal": "12.50"}``. Zero and
    negative values are allowed here; use :func:`parse_amount` for transaction
    amounts. A ``Money`` is returned as is, whatever its magnitude.
    """

    if isinstance(raw, Money):
        return raw
    return Money(parse_decimal(raw))


def parse_amount(raw: Any) -> Money:
    """Parse a transaction amount, rejecting zero and negative values."""

    money = parse_money(raw)
    if money.value <= 0:
        raise InvalidMoneyError("amount must be greater than zero")
    return money


def _decimal_from_text(text: str) -> Decimal:
    s = text.strip()
    if not s:
        raise InvalidMoneyError("amount must be a number")
    try:
        return Decimal(s)
    except InvalidOperation:
        raise InvalidMoneyError(f"amount is not numeric: {text!r}") from None


__all__ = [
    "InvalidMoneyError",
    "Money",
    "STRUCTURED_DECIMAL_KEY",
    "parse_amount",
    "parse_decimal",
    "parse_money",
]
