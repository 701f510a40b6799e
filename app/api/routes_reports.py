"""
Statement (DRE) Report Routes.

- GET /reports/statement: one statement for a month, quarter, year or all years
- GET /reports/series: one statement per day, month or quarter
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Query

from app.api.dependencies import ReportingServiceDep
from app.core.exceptions import PeriodValidationError
from app.models.schemas import SeriesResponse, StatementResponse
from app.services.statements import Granularity, ResolvedPeriod, Statement

logger = logging.getLogger(__name__)
router = APIRouter()

ALL_YEARS = "null"


def _period_out(period: ResolvedPeriod) -> dict[str, Any]:
    return {
        "granularity": period.granularity.value,
        "label": period.label,
        "year": period.year,
        "month": period.month,
        "quarter": period.quarter,
        "start": period.start,
        "end": period.end,
    }


def _parse_year(raw: str | None) -> str | None:
    """``"null"`` selects the all-years window; a missing year is an error."""
    if raw is None or raw == "":
        raise PeriodValidationError("Year parameter is required", field="year", value=None)
    if raw.strip().lower() == ALL_YEARS:
        return None
    return raw


@router.get("/reports/statement", response_model=StatementResponse)
def get_statement(
    service: ReportingServiceDep,
    year: str | None = Query(None, description='Year, or "null" for all years'),
    month: str | None = Query(None, description="Month (1-12)"),
    quarter: str | None = Query(None, description="Quarter (1-4)"),
    quarterly: bool = Query(False, description="Quarterly statement"),
    annual: bool = Query(False, description="Annual statement"),
):
    """Income statement for one period.

    Invalid parameters still return 200 with an all-zero statement and an
    ``error`` object so dependent dashboards keep rendering.
    """
    try:
        report = service.get_statement(
            _parse_year(year),
            month=month,
            quarterly=quarterly,
            annual=annual,
            quarter=quarter,
        )
    except PeriodValidationError as exc:
        logger.info("Statement request rejected: %s", exc.message)
        return {
            "period": _period_out(ResolvedPeriod(Granularity.EMPTY, None)),
            "statement": Statement.zero().to_dict(),
            "error": exc.to_dict()["error"],
        }

    return {
        "period": _period_out(report.period),
        "statement": report.statement.to_dict(),
        "error": None,
    }


@router.get("/reports/series", response_model=SeriesResponse)
def get_series(
    service: ReportingServiceDep,
    year: str | None = Query(None, description="Year (defaults to current year)"),
    month: str | None = Query(None, description="Month for a daily series"),
    quarter: str | None = Query(None, description="Single quarter for a quarterly series"),
    monthly: bool = Query(False, description="One point per day of month"),
    quarterly: bool = Query(False, description="One point per quarter"),
):
    """Statement series for charts. Errors map to 400 (validation) or 503 (store)."""
    series = service.get_series(
        year=year,
        month=month,
        quarter=quarter,
        monthly=monthly,
        quarterly=quarterly,
    )
    return series.to_dict()
