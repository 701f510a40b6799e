"""Tests for deduction and quarterly tax resolution."""
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DataUnavailableError
from app.services.statements.adjustments import (
    AdjustmentStore,
    resolve_quarterly_taxes,
    resolve_tax_deduction,
)
from app.services.statements.computations import QuarterlyTax
from app.services.statements.period_utils import Granularity, resolve_period
from factories import add_legacy_deduction, add_monthly_deduction, add_quarterly_tax


def _monthly(values: dict):
    return lambda year, month: values.get((year, month), Decimal("0"))


def _legacy(values: dict):
    return lambda year, quarter: values.get((year, quarter), Decimal("0"))


def _no_taxes(year, quarter):
    return None


class TestResolveTaxDeduction:
    def test_monthly_uses_monthly_row(self):
        period = resolve_period(Granularity.MONTHLY, 2024, month=2)
        monthly = _monthly({(2024, 2): Decimal("40")})
        assert resolve_tax_deduction(period, monthly, _legacy({})) == Decimal("40")

    def test_monthly_missing_row_is_zero(self):
        period = resolve_period(Granularity.MONTHLY, 2024, month=2)
        assert resolve_tax_deduction(period, _monthly({}), _legacy({(2024, 1): Decimal("9")})) == 0

    def test_quarterly_sums_three_months(self):
        period = resolve_period(Granularity.QUARTERLY, 2024, quarter=1)
        monthly = _monthly({(2024, 1): Decimal("10"), (2024, 3): Decimal("5"), (2024, 4): Decimal("99")})
        legacy = _legacy({(2024, 1): Decimal("500")})
        assert resolve_tax_deduction(period, monthly, legacy) == Decimal("15")

    def test_quarterly_falls_back_to_legacy_when_monthly_sum_is_zero(self):
        period = resolve_period(Granularity.QUARTERLY, 2024, quarter=2)
        monthly = _monthly({(2024, 4): Decimal("0")})
        legacy = _legacy({(2024, 2): Decimal("250")})
        assert resolve_tax_deduction(period, monthly, legacy) == Decimal("250")

    def test_quarterly_fallback_fires_when_months_cancel_out(self):
        period = resolve_period(Granularity.QUARTERLY, 2024, quarter=1)
        monthly = _monthly({(2024, 1): Decimal("10"), (2024, 2): Decimal("-10")})
        legacy = _legacy({(2024, 1): Decimal("7")})
        assert resolve_tax_deduction(period, monthly, legacy) == Decimal("7")

    def test_annual_sums_twelve_months_without_legacy(self):
        period = resolve_period(Granularity.ANNUAL, 2024)
        monthly = _monthly({(2024, m): Decimal("1") for m in range(1, 13)})
        legacy = _legacy({(2024, 1): Decimal("1000")})
        assert resolve_tax_deduction(period, monthly, legacy) == Decimal("12")

    def test_all_window_resolves_to_zero(self):
        period = resolve_period(Granularity.ALL, None)
        assert resolve_tax_deduction(period, _monthly({(2024, 1): Decimal("5")}), _legacy({})) == 0


class TestResolveQuarterlyTaxes:
    def test_monthly_never_allocates_taxes(self):
        period = resolve_period(Granularity.MONTHLY, 2024, month=1)
        manual = lambda y, q: QuarterlyTax(csll=Decimal("1"), irpj=Decimal("2"))  # noqa: E731
        assert resolve_quarterly_taxes(period, manual, Decimal("1000")) == QuarterlyTax()

    def test_quarterly_prefers_manual_row(self):
        period = resolve_period(Granularity.QUARTERLY, 2024, quarter=3)
        manual = {(2024, 3): QuarterlyTax(csll=Decimal("11"), irpj=Decimal("22"))}
        taxes = resolve_quarterly_taxes(period, lambda y, q: manual.get((y, q)), Decimal("1000"))
        assert taxes == QuarterlyTax(csll=Decimal("11"), irpj=Decimal("22"))

    def test_quarterly_automatic_fallback(self):
        period = resolve_period(Granularity.QUARTERLY, 2024, quarter=3)
        taxes = resolve_quarterly_taxes(period, _no_taxes, Decimal("1000"))
        assert taxes.csll == Decimal("90")
        assert taxes.irpj == Decimal("150")

    def test_quarterly_automatic_clamps_negative_result(self):
        period = resolve_period(Granularity.QUARTERLY, 2024, quarter=3)
        assert resolve_quarterly_taxes(period, _no_taxes, Decimal("-1000")).is_zero

    def test_annual_sums_manual_rows(self):
        period = resolve_period(Granularity.ANNUAL, 2024)
        manual = {
            (2024, 1): QuarterlyTax(csll=Decimal("1"), irpj=Decimal("2")),
            (2024, 4): QuarterlyTax(csll=Decimal("3"), irpj=Decimal("4")),
        }
        taxes = resolve_quarterly_taxes(period, lambda y, q: manual.get((y, q)), Decimal("1000"))
        assert taxes == QuarterlyTax(csll=Decimal("4"), irpj=Decimal("6"))

    def test_annual_falls_back_to_automatic_when_manual_sum_is_zero(self):
        period = resolve_period(Granularity.ANNUAL, 2024)
        manual = {(2024, 2): QuarterlyTax()}
        taxes = resolve_quarterly_taxes(period, lambda y, q: manual.get((y, q)), Decimal("100"))
        assert taxes == QuarterlyTax(csll=Decimal("9"), irpj=Decimal("15"))


class TestAdjustmentStore:
    def test_lookups_read_rows(self, db_session):
        add_monthly_deduction(db_session, 2024, 3, "12.5")
        add_legacy_deduction(db_session, 2024, 1, "300")
        add_quarterly_tax(db_session, 2024, 2, csll="10", irpj="20")
        store = AdjustmentStore(db_session)

        assert store.monthly_deduction(2024, 3) == Decimal("12.5")
        assert store.monthly_deduction(2024, 4) == 0
        assert store.legacy_deduction(2024, 1) == Decimal("300")
        assert store.legacy_deduction(2023, 1) == 0
        assert store.quarterly_tax(2024, 2) == QuarterlyTax(csll=Decimal("10"), irpj=Decimal("20"))
        assert store.quarterly_tax(2024, 3) is None

    def test_corrupt_stored_values_count_as_zero(self, db_session):
        add_monthly_deduction(db_session, 2024, 1, "10")
        add_quarterly_tax(db_session, 2024, 1, csll="3", irpj="4")
        db_session.execute(text("UPDATE monthly_tax_deductions SET value = 'bad'"))
        db_session.execute(text("UPDATE manual_quarterly_taxes SET irpj = 'x'"))
        db_session.commit()
        store = AdjustmentStore(db_session)

        assert store.monthly_deduction(2024, 1) == 0
        assert store.quarterly_tax(2024, 1) == QuarterlyTax(csll=Decimal("3"), irpj=Decimal("0"))

    def test_store_failure_raises_data_unavailable(self, db_session, monkeypatch):
        def boom(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "query", boom)
        store = AdjustmentStore(db_session)
        with pytest.raises(DataUnavailableError) as exc_info:
            store.monthly_deduction(2024, 1)
        assert exc_info.value.status_code == 503
        assert exc_info.value.code == "SYS400"
