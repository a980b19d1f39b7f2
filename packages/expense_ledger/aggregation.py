"""Summary statistics behind the spending-analysis view.

All sums use :class:`~expense_ledger.money.Money`, so totals are exact no
matter how many records are combined or in what order. Categories are grouped
by their exact stored text: "Food" and "food" are different categories.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .models import LedgerRecord
from .money import Money, parse_money

_ONE_PLACE = Decimal("0.1")


@dataclass(frozen=True, slots=True)
class CategoryShare:
    category: str
    total: Money
    percent: Decimal


@dataclass(frozen=True, slots=True)
class LedgerSummary:
    total_income: Money
    total_expense: Money
    net_balance: Money
    categories: tuple[CategoryShare, ...]

    @property
    def expense_by_category(self) -> dict[str, Money]:
        return {c.category: c.total for c in self.categories}


def percent_of_total(part: Money | Decimal | int, total: Money | Decimal | int) -> Decimal:
    """``part / total * 100`` rounded to one decimal place; ``0`` when total is zero."""

    part_v = parse_money(part).value
    total_v = parse_money(total).value
    if total_v == 0:
        return Decimal("0.0")
    return (part_v / total_v * 100).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)


def _accumulate(
    transactions: Iterable[LedgerRecord],
) -> tuple[Money, Money, dict[str, Money]]:
    income = Money.zero()
    expense = Money.zero()
    by_category: dict[str, Money] = {}
    for tx in transactions:
        amount = parse_money(tx.amount)
        if tx.kind == "income":
            income += amount
        elif tx.kind == "expense":
            expense += amount
            by_category[tx.category] = by_category.get(tx.category, Money.zero()) + amount
    return income, expense, by_category


def total_income(transactions: Iterable[LedgerRecord]) -> Money:
    return _accumulate(transactions)[0]


def total_expense(transactions: Iterable[LedgerRecord]) -> Money:
    return _accumulate(transactions)[1]


def net_balance(transactions: Iterable[LedgerRecord]) -> Money:
    income, expense, _ = _accumulate(transactions)
    return income - expense


def expense_by_category(transactions: Iterable[LedgerRecord]) -> dict[str, Money]:
    """Expense totals per category in order of first appearance."""

    return _accumulate(transactions)[2]


def summarize(transactions: Iterable[LedgerRecord]) -> LedgerSummary:
    """Totals, net balance and the category breakdown, largest category first.

    With no expenses the breakdown is empty and the net balance equals total
    income.
    """

    income, expense, by_category = _accumulate(transactions)
    shares = [
        CategoryShare(category=name, total=amount, percent=percent_of_total(amount, expense))
        for name, amount in by_category.items()
    ]
    # Stable sort: equal totals keep first-appearance order.
    shares.sort(key=lambda s: s.total, reverse=True)
    return LedgerSummary(
        total_income=income,
        total_expense=expense,
        net_balance=income - expense,
        categories=tuple(shares),
    )


__all__ = [
    "CategoryShare",
    "LedgerSummary",
    "expense_by_category",
    "net_balance",
    "percent_of_total",
    "summarize",
    "total_expense",
    "total_income",
]
