"""Manual adjustment resolution.

Two independent fallback chains:

Tax deduction (added into gross revenue)
- monthly:   monthly row for (year, month), default 0
- quarterly: sum of the quarter's three monthly rows; when that sum is
             exactly 0 the legacy (year, quarter) row is used instead
- annual:    sum of the twelve monthly rows, no legacy fallback

Quarterly taxes (CSLL, IRPJ)
- quarterly: manual (year, quarter) row when one exists, otherwise the
             automatic 9% / 15% of the positive gross result
- annual:    sum of the year's manual rows; automatic formula on the annual
             gross result when that sum is 0
- monthly:   always 0

The legacy deduction fallback keys on a literal-zero sum, so a quarter whose
months were deliberately entered as 0 still picks up a non-zero legacy value.
Kept as-is because changing it would alter historical reports.

Absent rows resolve to ``Decimal("0")``; they are never an error.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DataUnavailableError
from app.models.ledger_models import ManualQuarterlyTax, MonthlyTaxDeduction, TaxDeduction

from .aggregates import ZERO, to_decimal
from .computations import QuarterlyTax, compute_automatic_taxes
from .ledger import raw_amount
from .period_utils import Granularity, ResolvedPeriod, quarter_months

logger = logging.getLogger(__name__)

MonthlyLookup = Callable[[int, int], Decimal]
LegacyLookup = Callable[[int, int], Decimal]
TaxLookup = Callable[[int, int], Optional[QuarterlyTax]]


def quarterly_deduction(
    year: int,
    quarter: int,
    monthly_lookup: MonthlyLookup,
    legacy_lookup: LegacyLookup,
) -> Decimal:
    total = sum((monthly_lookup(year, m) for m in quarter_months(quarter)), ZERO)
    if total == 0:
        return legacy_lookup(year, quarter)
    return total


def resolve_tax_deduction(
    period: ResolvedPeriod,
    monthly_lookup: MonthlyLookup,
    legacy_lookup: LegacyLookup,
) -> Decimal:
    """Deduction for ``period`` following the per-granularity chain."""
    granularity = period.granularity
    if granularity is Granularity.MONTHLY:
        return monthly_lookup(period.year, period.month)
    if granularity is Granularity.QUARTERLY:
        return quarterly_deduction(period.year, period.quarter, monthly_lookup, legacy_lookup)
    if granularity is Granularity.ANNUAL:
        return sum((monthly_lookup(period.year, m) for m in range(1, 13)), ZERO)
    return ZERO


def resolve_quarterly_taxes(
    period: ResolvedPeriod,
    tax_lookup: TaxLookup,
    gross_result: Decimal,
) -> QuarterlyTax:
    """CSLL/IRPJ for ``period``.

    Args:
        period: Resolved period
        tax_lookup: Returns the manual row for (year, quarter) or None
        gross_result: Gross result of the same period, for the automatic fallback
    """
    granularity = period.granularity
    if granularity is Granularity.QUARTERLY:
        manual = tax_lookup(period.year, period.quarter)
        if manual is not None:
            return manual
        return compute_automatic_taxes(gross_result)
    if granularity is Granularity.ANNUAL:
        total = QuarterlyTax()
        for quarter in range(1, 5):
            manual = tax_lookup(period.year, quarter)
            if manual is not None:
                total = total + manual
        if total.is_zero:
            return compute_automatic_taxes(gross_result)
        return total
    return QuarterlyTax()


class AdjustmentStore:
    """Point lookups over the manual adjustment tables.

    Rows are loaded one year at a time and kept for the lifetime of the
    instance, which is a single request.
    """

    def __init__(self, db: Session):
        self.db = db
        self._monthly: dict[int, dict[int, Decimal]] = {}
        self._legacy: dict[int, dict[int, Decimal]] = {}
        self._taxes: dict[int, dict[int, QuarterlyTax]] = {}

    def _load(self, build_query: Callable, year: int) -> list:
        try:
            return build_query().all()
        except SQLAlchemyError as exc:
            logger.exception("Adjustment query failed year=%s", year)
            raise DataUnavailableError("adjustments", "lookup failed") from exc

    def _monthly_rows(self, year: int) -> dict[int, Decimal]:
        if year not in self._monthly:
            rows = self._load(
                lambda: self.db.query(MonthlyTaxDeduction.month, raw_amount(MonthlyTaxDeduction.value)).filter(
                    MonthlyTaxDeduction.year == year
                ),
                year,
            )
            by_month: dict[int, Decimal] = {}
            for month, value in rows:
                by_month[month] = by_month.get(month, ZERO) + to_decimal(value)
            self._monthly[year] = by_month
        return self._monthly[year]

    def _legacy_rows(self, year: int) -> dict[int, Decimal]:
        if year not in self._legacy:
            rows = self._load(
                lambda: self.db.query(TaxDeduction.quarter, raw_amount(TaxDeduction.value)).filter(TaxDeduction.year == year),
                year,
            )
            self._legacy[year] = {quarter: to_decimal(value) for quarter, value in rows}
        return self._legacy[year]

    def _tax_rows(self, year: int) -> dict[int, QuarterlyTax]:
        if year not in self._taxes:
            rows = self._load(
                lambda: self.db.query(
                    ManualQuarterlyTax.quarter,
                    raw_amount(ManualQuarterlyTax.csll),
                    raw_amount(ManualQuarterlyTax.irpj),
                ).filter(ManualQuarterlyTax.year == year),
                year,
            )
            self._taxes[year] = {
                quarter: QuarterlyTax(csll=to_decimal(csll), irpj=to_decimal(irpj))
                for quarter, csll, irpj in rows
            }
        return self._taxes[year]

    def monthly_deduction(self, year: int, month: int) -> Decimal:
        return self._monthly_rows(year).get(month, ZERO)

    def legacy_deduction(self, year: int, quarter: int) -> Decimal:
        return self._legacy_rows(year).get(quarter, ZERO)

    def quarterly_tax(self, year: int, quarter: int) -> Optional[QuarterlyTax]:
        return self._tax_rows(year).get(quarter)


class AdjustmentResolver:
    """Binds the resolution chains to an ``AdjustmentStore``."""

    def __init__(self, store: AdjustmentStore):
        self.store = store

    def deduction_for(self, period: ResolvedPeriod) -> Decimal:
        value = resolve_tax_deduction(period, self.store.monthly_deduction, self.store.legacy_deduction)
        logger.debug("Resolved deduction period=%s value=%s", period.label, value)
        return value

    def taxes_for(self, period: ResolvedPeriod, gross_result: Decimal) -> QuarterlyTax:
        taxes = resolve_quarterly_taxes(period, self.store.quarterly_tax, gross_result)
        logger.debug("Resolved quarterly taxes period=%s csll=%s irpj=%s", period.label, taxes.csll, taxes.irpj)
        return taxes
