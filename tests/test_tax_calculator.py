from decimal import Decimal

import pytest

from payroll_api.common.errors import ValidationError
from payroll_api.services.tax_calculator import (
    bracket_rate, compute_monthly_tax, add_tax_rate, list_tax_rates,
)


def test_monthly_tax_low_bracket():
    # 4000 * 12 = 48000 -> 15% flat
    assert compute_monthly_tax(Decimal("4000")) == Decimal("600")


def test_brackets_are_flat_not_marginal():
    # 120000 annual -> 35% on everything
    assert compute_monthly_tax(Decimal("10000")) == Decimal("3500")
    # 60000 annual -> 25% on everything
    assert compute_monthly_tax(Decimal("5000")) == Decimal("1250")


def test_bracket_boundaries():
    assert bracket_rate(Decimal("50000")) == Decimal("0.15")
    assert bracket_rate(Decimal("50000.01")) == Decimal("0.25")
    assert bracket_rate(Decimal("100000")) == Decimal("0.25")
    assert bracket_rate(Decimal("100000.01")) == Decimal("0.35")


def test_zero_gross_has_zero_tax():
    assert compute_monthly_tax(Decimal("0")) == Decimal("0")


def test_table_source_uses_rows_for_the_year(app):
    app.config["PAYROLL_TAX_SOURCE"] = "table"
    add_tax_rate(2024, 0, 60000, 10, "Low")
    add_tax_rate(2024, "60000.01", None, 20, "High")

    assert compute_monthly_tax(Decimal("4000"), tax_year=2024) == Decimal("400")
    assert compute_monthly_tax(Decimal("6000"), tax_year=2024) == Decimal("1200")
    # no rows for 2023 -> built-in brackets
    assert compute_monthly_tax(Decimal("4000"), tax_year=2023) == Decimal("600")


def test_table_ignored_when_source_is_brackets(app):
    add_tax_rate(2024, 0, None, 1, "Tiny")
    assert compute_monthly_tax(Decimal("4000"), tax_year=2024) == Decimal("600")


def test_list_tax_rates_ordered_by_min_income(app):
    add_tax_rate(2024, 50000, None, 25, "Upper")
    add_tax_rate(2024, 0, 50000, 15, "Lower")
    add_tax_rate(2025, 0, None, 10, "Other year")
    rows = list_tax_rates(2024)
    assert [r.tax_bracket_name for r in rows] == ["Lower", "Upper"]
    assert len(list_tax_rates()) == 3


@pytest.mark.parametrize("args", [
    (None, 0, None, 10, "x"),
    (2024, 0, None, 10, ""),
    (2024, -1, None, 10, "x"),
    (2024, 100, 50, 10, "x"),
    (2024, 0, None, 101, "x"),
    ("twenty", 0, None, 10, "x"),
    (2024, 0, None, "NaN", "x"),
    (2024, "Infinity", None, 10, "x"),
    (2024, 0, "sNaN", 10, "x"),
])
def test_add_tax_rate_validation(app, args):
    with pytest.raises(ValidationError):
        add_tax_rate(*args)
