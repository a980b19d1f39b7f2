from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from expense_ledger.aggregation import (
    expense_by_category,
    net_balance,
    percent_of_total,
    summarize,
    total_expense,
    total_income,
)
from expense_ledger.money import Money


@dataclass
class Rec:
    kind: str
    amount: Any
    category: str = "Misc"
    id: int = 0
    description: str = "x"
    occurred_on: date = date(2025, 1, 1)


def _m(s: str) -> Money:
    return Money(Decimal(s))


def test_totals_and_net_balance():
    rows = [
        Rec("income", "100"),
        Rec("expense", "30"),
        Rec("expense", "20"),
    ]
    assert total_income(rows) == _m("100")
    assert total_expense(rows) == _m("50")
    assert net_balance(rows) == _m("50")


def test_totals_do_not_depend_on_order():
    rows = [Rec("income", "0.10"), Rec("expense", "0.20")] * 7 + [Rec("expense", "19.99")]
    expected = summarize(rows)
    shuffled = list(rows)
    random.Random(7).shuffle(shuffled)
    got = summarize(shuffled)
    assert got.total_income == expected.total_income == _m("0.70")
    assert got.total_expense == expected.total_expense == _m("21.39")
    assert got.net_balance == _m("-20.69")


def test_structured_decimal_amounts_are_summed():
    rows = [
        Rec("expense", {"$numberDecimal": "12.34"}, "Food"),
        Rec("expense", Decimal("0.66"), "Food"),
    ]
    assert expense_by_category(rows) == {"Food": _m("13.00")}


def test_category_shares():
    rows = [Rec("expense", "50", "Food"), Rec("expense", "50", "Rent")]
    s = summarize(rows)
    assert [(c.category, c.percent) for c in s.categories] == [
        ("Food", Decimal("50.0")),
        ("Rent", Decimal("50.0")),
    ]


def test_categories_are_exact_text_and_exclude_income():
    rows = [
        Rec("expense", "10", "Food"),
        Rec("expense", "5", "food"),
        Rec("income", "1000", "Food"),
    ]
    assert expense_by_category(rows) == {"Food": _m("10"), "food": _m("5")}


def test_breakdown_is_sorted_by_total_descending():
    rows = [
        Rec("expense", "5", "Coffee"),
        Rec("expense", "700", "Rent"),
        Rec("expense", "120", "Food"),
        Rec("expense", "80", "Food"),
    ]
    s = summarize(rows)
    assert [c.category for c in s.categories] == ["Rent", "Food", "Coffee"]
    assert s.expense_by_category["Food"] == _m("200")
    assert sum(c.percent for c in s.categories) == Decimal("100.0")


def test_percent_of_total():
    assert percent_of_total(50, 100) == Decimal("50.0")
    assert percent_of_total(_m("1"), _m("3")) == Decimal("33.3")
    assert percent_of_total(_m("2"), _m("3")) == Decimal("66.7")
    assert percent_of_total(10, 0) == Decimal("0.0")


def test_no_expenses():
    s = summarize([Rec("income", "250")])
    assert s.categories == ()
    assert s.total_expense == Money.zero()
    assert s.net_balance == s.total_income == _m("250")


def test_empty_input():
    s = summarize([])
    assert s.total_income.is_zero and s.total_expense.is_zero and s.net_balance.is_zero
    assert s.categories == ()


def test_expense_by_category_groups_and_sums():
    rows = [
        Rec("expense", "40", "Food"),
        Rec("expense", "10", "Food"),
        Rec("expense", "50", "Rent"),
    ]
    assert expense_by_category(rows) == {"Food": _m("50"), "Rent": _m("50")}


def test_totals_past_the_per_record_limit_stay_exact():
    # Each amount is storable; their sum is not, and must still be reported.
    rows = [Rec("expense", "6000000000000000", "Rent") for _ in range(2)]
    rows += [Rec("expense", "0.01", "Fees") for _ in range(1000)]
    rows.append(Rec("income", "9999999999999999.99", "Salary"))

    s = summarize(rows)
    assert s.total_expense.to_display() == "12000000000000010.00"
    assert s.net_balance.to_display() == "-2000000000000010.01"
    assert [c.category for c in s.categories] == ["Rent", "Fees"]
    assert s.categories[0].percent == Decimal("100.0")
    assert s.categories[1].percent == Decimal("0.0")
    assert total_expense(rows) == s.total_expense
    assert net_balance(rows) == s.net_balance
