"""Tests for StatementReportingService.get_statement."""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DataUnavailableError, PeriodValidationError
from app.services.statements import Granularity, StatementReportingService
from factories import (
    add_entry,
    add_expense,
    add_legacy_deduction,
    add_monthly_deduction,
    add_operation,
    add_quarterly_tax,
    utc,
    worked_example_operation,
)


@pytest.fixture
def service(db_session):
    return StatementReportingService(db_session)


def test_worked_example_quarterly(db_session, service):
    worked_example_operation(db_session, utc(2024, 3, 10))
    add_expense(db_session, utc(2024, 3, 11), "300")

    statement = service.get_statement(2024, month=3, quarterly=True).statement

    assert statement.gross_revenue == Decimal("1250")
    assert statement.net_revenue == Decimal("1235")
    assert statement.gross_result == Decimal("935")
    assert statement.taxes.irpj == Decimal("140.25")
    assert statement.taxes.csll == Decimal("84.15")
    assert statement.net_result == Decimal("710.6")


@pytest.mark.parametrize("month", range(1, 13))
def test_monthly_statements_never_carry_quarterly_taxes(db_session, service, month):
    worked_example_operation(db_session, utc(2024, month, 1))
    add_quarterly_tax(db_session, 2024, (month - 1) // 3 + 1, csll="50", irpj="60")

    statement = service.get_statement(2024, month=month).statement

    assert statement.taxes.csll == 0
    assert statement.taxes.irpj == 0
    assert statement.net_result == statement.gross_result


def test_zero_ledger_statement(service):
    report = service.get_statement(2024, annual=True)
    data = report.statement.to_dict()
    assert report.period.granularity is Granularity.ANNUAL
    assert all(
        value == 0
        for key, value in data.items()
        if not isinstance(value, dict)
    )
    assert all(v == 0 for v in data["taxes"].values())


def test_quarterly_legacy_fallback(db_session, service):
    add_monthly_deduction(db_session, 2024, 4, "0")
    add_legacy_deduction(db_session, 2024, 2, "150")

    statement = service.get_statement(2024, quarterly=True, quarter=2).statement

    assert statement.deduction == Decimal("150")
    assert statement.gross_revenue == Decimal("150")


def test_monthly_deduction_applied(db_session, service):
    add_monthly_deduction(db_session, 2024, 7, "33")
    assert service.get_statement(2024, month=7).statement.deduction == Decimal("33")


def test_negative_result_clamp(db_session, service):
    add_expense(db_session, utc(2024, 1, 5), "1000")

    statement = service.get_statement(2024, quarterly=True, quarter=1).statement

    assert statement.gross_result == Decimal("-1000")
    assert statement.taxes.irpj == 0
    assert statement.taxes.csll == 0
    assert statement.net_result == Decimal("-1000")


def test_annual_manual_taxes(db_session, service):
    worked_example_operation(db_session, utc(2024, 5, 5))
    add_quarterly_tax(db_session, 2024, 1, csll="1", irpj="2")
    add_quarterly_tax(db_session, 2024, 3, csll="3", irpj="4")

    statement = service.get_statement(2024, annual=True).statement

    assert statement.taxes.csll == Decimal("4")
    assert statement.taxes.irpj == Decimal("6")


def test_entries_are_other_income(db_session, service):
    add_entry(db_session, utc(2024, 9, 9), "120")
    statement = service.get_statement(2024, month=9).statement
    assert statement.other_income == Decimal("120")
    assert statement.net_result == Decimal("120")


def test_idempotent(db_session, service):
    worked_example_operation(db_session, utc(2024, 6, 1))
    add_monthly_deduction(db_session, 2024, 6, "10")

    first = service.get_statement(2024, month=6, quarterly=True)
    second = service.get_statement(2024, month=6, quarterly=True)

    assert first == second
    assert first.statement.to_dict() == second.statement.to_dict()


def test_all_years_window(db_session):
    service = StatementReportingService(db_session, today=date(2025, 3, 1))
    add_operation(db_session, utc(2022, 12, 31), factor_value=1000)
    add_operation(db_session, utc(2023, 1, 1), factor_value=10)
    add_operation(db_session, utc(2025, 12, 31), factor_value=5)
    add_monthly_deduction(db_session, 2024, 1, "99")

    report = service.get_statement(None)

    assert report.period.granularity is Granularity.ALL
    assert report.statement.gross_revenue == Decimal("15")
    assert report.statement.deduction == 0
    assert report.statement.taxes.irpj == 0


def test_under_specified_period_returns_zero_statement(db_session, service):
    worked_example_operation(db_session, utc(2024, 3, 10))
    report = service.get_statement(2024)
    assert report.period.is_empty
    assert report.statement.gross_revenue == 0


def test_invalid_month_raises(service):
    with pytest.raises(PeriodValidationError):
        service.get_statement(2024, month=13)


def test_store_failure_aborts_statement(db_session, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    service = StatementReportingService(db_session)
    monkeypatch.setattr(db_session, "query", boom)
    with pytest.raises(DataUnavailableError):
        service.get_statement(2024, month=1)
