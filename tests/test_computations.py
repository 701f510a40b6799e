"""Tests for the statement formula chain and decimal coercion."""
from decimal import Decimal

import pytest

from app.services.statements.aggregates import (
    EntryAggregate,
    ExpenseAggregate,
    OperationAggregate,
    to_decimal,
)
from app.services.statements.computations import (
    Statement,
    compute_automatic_taxes,
    compute_statement,
    gross_result_of,
)

WORKED_OPERATIONS = OperationAggregate.from_values(
    factor_value=1000,
    ad_valorem_value=200,
    fees_value=50,
    iof_value=30,
    net_value=1180,
    cofins=10,
    issqn=5,
)


def test_worked_example():
    expenses = ExpenseAggregate(value=Decimal("300"), taxable_value=Decimal("0"))
    gross_result = gross_result_of(WORKED_OPERATIONS, expenses, Decimal("0"))
    taxes = compute_automatic_taxes(gross_result)

    statement = compute_statement(
        WORKED_OPERATIONS,
        expenses,
        EntryAggregate.zero(),
        deduction=Decimal("0"),
        csll=taxes.csll,
        irpj=taxes.irpj,
    )

    assert statement.gross_revenue == Decimal("1250")
    assert statement.net_revenue == Decimal("1235")
    assert statement.gross_result == Decimal("935")
    assert statement.operational_result == Decimal("935")
    assert statement.taxes.irpj == Decimal("140.25")
    assert statement.taxes.csll == Decimal("84.15")
    assert statement.net_result == Decimal("710.6")
    assert statement.operation_value == Decimal("2460")
    assert statement.total_costs == Decimal("1230")


def test_deduction_is_added_into_gross_revenue():
    statement = compute_statement(
        WORKED_OPERATIONS, ExpenseAggregate.zero(), EntryAggregate.zero(), deduction=Decimal("100")
    )
    assert statement.gross_revenue == Decimal("1350")
    assert statement.deduction == Decimal("100")


def test_other_income_flows_into_net_result():
    statement = compute_statement(
        OperationAggregate.zero(),
        ExpenseAggregate.zero(),
        EntryAggregate(value=Decimal("75.5")),
        csll=Decimal("5"),
        irpj=Decimal("10"),
    )
    assert statement.other_income == Decimal("75.5")
    assert statement.net_result == Decimal("60.5")
    assert statement.taxes.total == Decimal("15")


def test_negative_result_clamp():
    taxes = compute_automatic_taxes(Decimal("-1000"))
    assert taxes.irpj == 0
    assert taxes.csll == 0


def test_zero_statement_has_every_field_zero():
    data = Statement.zero().to_dict()

    def _values(node):
        for value in node.values():
            if isinstance(value, dict):
                yield from _values(value)
            else:
                yield value

    assert all(value == 0 for value in _values(data))


def test_statement_round_trips_through_json_like_dict():
    statement = compute_statement(WORKED_OPERATIONS, ExpenseAggregate.zero(), EntryAggregate.zero())
    as_strings = {
        k: ({kk: str(vv) for kk, vv in v.items()} if isinstance(v, dict) else str(v))
        for k, v in statement.to_dict().items()
    }
    assert Statement.from_dict(as_strings) == statement


def test_aggregates_add_field_wise():
    total = WORKED_OPERATIONS + WORKED_OPERATIONS
    assert total.factor_value == Decimal("2000")
    assert total.issqn == Decimal("10")


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, Decimal("0")),
        ("12.50", Decimal("12.50")),
        (" 7 ", Decimal("7")),
        (3, Decimal("3")),
        ("not-a-number", Decimal("0")),
        ("NaN", Decimal("0")),
        (float("inf"), Decimal("0")),
        (True, Decimal("0")),
    ],
)
def test_to_decimal(raw, expected):
    assert to_decimal(raw) == expected


def test_corrupt_field_does_not_poison_aggregate():
    aggregate = OperationAggregate.from_values(factor_value="oops", fees_value="10")
    assert aggregate.factor_value == 0
    assert aggregate.fees_value == Decimal("10")
