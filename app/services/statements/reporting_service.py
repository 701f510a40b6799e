"""Statement Reporting Service.

Entry point for the two read-only operations:

- ``get_statement``: one DRE for a month, quarter, year or the bounded
  all-years window
- ``get_series``: one DRE per day, month or quarter for chart consumers

Period flags are collapsed to a single granularity here; everything below
works on ``ResolvedPeriod``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from app import metrics
from app.core.cache import StatementCache
from app.core.config import settings
from app.core.exceptions import DataUnavailableError, PeriodValidationError

from .adjustments import AdjustmentResolver, AdjustmentStore
from .computations import Statement, compute_statement, gross_result_of
from .ledger import LedgerAggregator, LedgerSource
from .period_utils import (
    Bucket,
    ResolvedPeriod,
    resolve_series_period,
    resolve_statement_period,
    series_label,
)
from .series import SeriesBuilder, SeriesPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatementReport:
    period: ResolvedPeriod
    statement: Statement


@dataclass(frozen=True)
class Series:
    points: list[SeriesPoint]
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"points": [p.to_dict() for p in self.points], "meta": dict(self.meta)}


def _series_meta(period: ResolvedPeriod, bucket: Bucket, year: int, month, quarter) -> dict[str, Any]:
    return {
        "year": year,
        "month": month,
        "quarter": quarter,
        "granularity": bucket.value,
        "period_label": series_label(period, bucket),
        "start": period.start.isoformat(),
        "end": period.end.isoformat(),
    }


class StatementReportingService:
    """Builds statements and series for one request.

    Responsibilities:
    - Resolve period parameters (ValidationError on malformed input)
    - Aggregate operations, expenses and entries over the period
    - Resolve manual deductions and quarterly taxes with their fallbacks
    - Compute the statement(s) and optionally cache them
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[StatementCache] = None,
        today: Optional[date] = None,
    ):
        self.db = db
        self.cache = cache
        self.today = today
        self.aggregator = LedgerAggregator(db)
        self.adjustments = AdjustmentResolver(AdjustmentStore(db))
        self.series_builder = SeriesBuilder(self.aggregator, self.adjustments)

    def compute_for_period(self, period: ResolvedPeriod) -> Statement:
        """Statement for an already-resolved, non-empty period."""
        operations = self.aggregator.sum_range(LedgerSource.OPERATIONS, period.start, period.end)
        expenses = self.aggregator.sum_range(LedgerSource.EXPENSES, period.start, period.end)
        entries = self.aggregator.sum_range(LedgerSource.ENTRIES, period.start, period.end)

        deduction = self.adjustments.deduction_for(period)
        gross_result = gross_result_of(operations, expenses, deduction)
        taxes = self.adjustments.taxes_for(period, gross_result)

        return compute_statement(
            operations,
            expenses,
            entries,
            deduction=deduction,
            csll=taxes.csll,
            irpj=taxes.irpj,
        )

    def get_statement(
        self,
        year: Any,
        month: Any = None,
        quarterly: bool = False,
        annual: bool = False,
        quarter: Any = None,
    ) -> StatementReport:
        """Compute the DRE for the requested period.

        Args:
            year: Calendar year, or None for the bounded all-years window
            month: Month (1-12); with ``quarterly`` it selects its quarter
            quarterly: Quarterly statement
            annual: Annual statement (takes precedence over quarterly/month)
            quarter: Explicit quarter (1-4) for quarterly statements

        Returns:
            StatementReport; all-zero when the period is under-specified

        Raises:
            PeriodValidationError: Malformed period parameters
            DataUnavailableError: Ledger or adjustment store failure
        """
        try:
            period = resolve_statement_period(
                year,
                month=month,
                quarterly=quarterly,
                annual=annual,
                quarter=quarter,
                today=self.today,
                window=settings.ALL_YEARS_WINDOW,
            )
        except PeriodValidationError as exc:
            metrics.report_failed("validation")
            logger.warning("Invalid statement period: %s details=%s", exc.message, exc.details)
            raise

        if period.is_empty:
            logger.warning(
                "Under-specified statement period, returning zero statement year=%s month=%s quarterly=%s annual=%s",
                period.year,
                month,
                quarterly,
                annual,
            )
            metrics.statement_served(period.granularity.value)
            return StatementReport(period=period, statement=Statement.zero())

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.make_key(
                "statement",
                period.granularity.value,
                period.year,
                period.month,
                period.quarter,
                period.start.date().isoformat(),
            )
            cached = self.cache.get(cache_key)
            if cached is not None:
                metrics.statement_served(period.granularity.value)
                return StatementReport(period=period, statement=Statement.from_dict(cached))

        try:
            with metrics.time_compute("statement"):
                statement = self.compute_for_period(period)
        except DataUnavailableError:
            metrics.report_failed("data_unavailable")
            raise

        if self.cache is not None:
            self.cache.set(cache_key, statement.to_dict())

        metrics.statement_served(period.granularity.value)
        logger.info(
            "Statement generated period=%s granularity=%s gross_revenue=%s gross_result=%s net_result=%s",
            period.label,
            period.granularity.value,
            statement.gross_revenue,
            statement.gross_result,
            statement.net_result,
        )
        return StatementReport(period=period, statement=statement)

    def get_series(
        self,
        year: Any = None,
        month: Any = None,
        quarter: Any = None,
        monthly: bool = False,
        quarterly: bool = False,
    ) -> Series:
        """Compute one statement per bucket.

        Args:
            year: Calendar year (defaults to the current year)
            month: Month for a daily series (required with ``monthly``)
            quarter: Narrows a quarterly series to that single quarter
            monthly: One point per day of ``month``
            quarterly: One point per quarter

        Raises:
            PeriodValidationError: Malformed or contradictory parameters
            DataUnavailableError: Ledger or adjustment store failure
        """
        try:
            period, bucket = resolve_series_period(
                year,
                month=month,
                quarter=quarter,
                monthly=monthly,
                quarterly=quarterly,
                today=self.today,
            )
        except PeriodValidationError as exc:
            metrics.report_failed("validation")
            logger.warning("Invalid series period: %s details=%s", exc.message, exc.details)
            raise

        meta = _series_meta(
            period,
            bucket,
            period.year,
            period.month if bucket is Bucket.DAY else None,
            period.quarter if bucket is Bucket.QUARTER else None,
        )

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.make_key(
                "series", bucket.value, period.granularity.value, period.year, period.month, period.quarter
            )
            cached = self.cache.get(cache_key)
            if cached is not None:
                metrics.series_served(bucket.value)
                points = [
                    SeriesPoint(label=p["label"], statement=Statement.from_dict(p["statement"]))
                    for p in cached.get("points", [])
                ]
                return Series(points=points, meta=meta)

        try:
            with metrics.time_compute("series"):
                points = self.series_builder.build(period, bucket)
        except DataUnavailableError:
            metrics.report_failed("data_unavailable")
            raise

        series = Series(points=points, meta=meta)
        if self.cache is not None:
            self.cache.set(cache_key, series.to_dict())

        metrics.series_served(bucket.value)
        logger.info(
            "Series generated period=%s bucket=%s points=%d",
            meta["period_label"],
            bucket.value,
            len(points),
        )
        return series
