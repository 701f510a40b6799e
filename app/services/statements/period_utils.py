"""Period resolution and bucketing utilities.

Turns loose period parameters (year, month, quarter and the
monthly/quarterly/annual flags) into a single ``Granularity`` and one concrete
UTC date range. The flags are only looked at here; everything downstream works
on ``ResolvedPeriod``.

``bucket_key`` is the one function that decides which sub-period a ledger
record belongs to. Statements (one implicit bucket) and series (many buckets)
both go through it.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Hashable, Optional

from app.core.exceptions import ValidationError

MONTH_LABELS = ("Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez")

MIN_YEAR = 1
MAX_YEAR = 9999


class Granularity(str, Enum):
    """Reporting resolution of a period."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    ALL = "all"      # bounded multi-year window (year=null)
    EMPTY = "empty"  # under-specified period, yields a zero statement


class Bucket(str, Enum):
    """Sub-period used to group ledger records."""
    DAY = "day"
    MONTH = "month"
    QUARTER = "quarter"
    NONE = "none"  # whole range in a single bucket


@dataclass(frozen=True)
class ResolvedPeriod:
    granularity: Granularity
    year: Optional[int]
    month: Optional[int] = None
    quarter: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.granularity is Granularity.EMPTY

    @property
    def label(self) -> str:
        if self.granularity is Granularity.MONTHLY:
            return f"{self.month:02d}/{self.year}"
        if self.granularity is Granularity.QUARTERLY:
            return f"Q{self.quarter}/{self.year}"
        if self.granularity is Granularity.ANNUAL:
            return str(self.year)
        if self.granularity is Granularity.ALL:
            return f"{self.start.year}-{self.end.year}"
        return ""


# ---------------------------------------------------------------------------
# Parameter coercion
# ---------------------------------------------------------------------------

def _coerce_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field, value=value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Invalid {field}: {value!r}", field=field, value=value)


def coerce_year(value: Any) -> Optional[int]:
    """Coerce a raw year. ``None`` is returned as-is (the "all years" mode)."""
    if value is None:
        return None
    year = _coerce_int(value, "year")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Invalid year: {year}", field="year", value=value)
    return year


def coerce_month(value: Any) -> Optional[int]:
    if value is None:
        return None
    month = _coerce_int(value, "month")
    if not 1 <= month <= 12:
        raise ValidationError("Invalid month (must be 1-12)", field="month", value=value)
    return month


def coerce_quarter(value: Any) -> Optional[int]:
    if value is None:
        return None
    quarter = _coerce_int(value, "quarter")
    if not 1 <= quarter <= 4:
        raise ValidationError("Invalid quarter (must be 1-4)", field="quarter", value=value)
    return quarter


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def quarter_of(month: int) -> int:
    return (month - 1) // 3 + 1


def quarter_months(quarter: int) -> range:
    """Calendar months (1-12) belonging to a quarter."""
    first = (quarter - 1) * 3 + 1
    return range(first, first + 3)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min).replace(tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max).replace(tzinfo=timezone.utc)


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _range(first_day: date, last_day: date) -> tuple[datetime, datetime]:
    return start_of_day(first_day), end_of_day(last_day)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve_period(
    granularity: Granularity,
    year: Optional[int],
    month: Optional[int] = None,
    quarter: Optional[int] = None,
    today: Optional[date] = None,
    window: int = 2,
) -> ResolvedPeriod:
    """Resolve an already-coerced period to a concrete date range.

    Args:
        granularity: Target granularity
        year: Calendar year (ignored for ``ALL``)
        month: Required for ``MONTHLY``
        quarter: Required for ``QUARTERLY``
        today: Reference date for the ``ALL`` window (defaults to UTC today)
        window: Number of years before the current one covered by ``ALL``

    Returns:
        ResolvedPeriod with start (inclusive, 00:00) and end (last instant)

    Raises:
        ValidationError: If a parameter required by the granularity is missing
    """
    if granularity is Granularity.EMPTY:
        return ResolvedPeriod(Granularity.EMPTY, year, month, quarter)

    if granularity is Granularity.ALL:
        current_year = (today or datetime.now(timezone.utc).date()).year
        start, end = _range(date(current_year - window, 1, 1), date(current_year, 12, 31))
        return ResolvedPeriod(Granularity.ALL, None, start=start, end=end)

    if year is None:
        raise ValidationError("year is required for this period", field="year", value=None)

    if granularity is Granularity.ANNUAL:
        start, end = _range(date(year, 1, 1), date(year, 12, 31))
        return ResolvedPeriod(Granularity.ANNUAL, year, start=start, end=end)

    if granularity is Granularity.QUARTERLY:
        if quarter is None:
            raise ValidationError("quarter required for quarterly reports", field="quarter", value=None)
        first_month = (quarter - 1) * 3 + 1
        start, end = _range(date(year, first_month, 1), last_day_of_month(year, first_month + 2))
        return ResolvedPeriod(Granularity.QUARTERLY, year, quarter=quarter, start=start, end=end)

    if granularity is Granularity.MONTHLY:
        if month is None:
            raise ValidationError("month required for monthly reports", field="month", value=None)
        start, end = _range(date(year, month, 1), last_day_of_month(year, month))
        return ResolvedPeriod(Granularity.MONTHLY, year, month=month, quarter=quarter_of(month), start=start, end=end)

    raise ValidationError(f"Invalid granularity: {granularity}", field="granularity", value=granularity)


def resolve_statement_period(
    year: Any,
    month: Any = None,
    quarterly: bool = False,
    annual: bool = False,
    quarter: Any = None,
    today: Optional[date] = None,
    window: int = 2,
) -> ResolvedPeriod:
    """Collapse statement flags into one granularity and resolve it.

    Precedence: year=None -> ALL, annual -> ANNUAL, quarterly with a quarter
    (or a month to derive it from) -> QUARTERLY, month -> MONTHLY, else EMPTY.
    """
    year = coerce_year(year)
    month = coerce_month(month)
    quarter = coerce_quarter(quarter)

    if year is None:
        granularity = Granularity.ALL
    elif annual:
        granularity = Granularity.ANNUAL
    elif quarterly and (quarter is not None or month is not None):
        granularity = Granularity.QUARTERLY
        if quarter is None:
            quarter = quarter_of(month)
    elif month is not None:
        granularity = Granularity.MONTHLY
    else:
        granularity = Granularity.EMPTY

    return resolve_period(granularity, year, month=month, quarter=quarter, today=today, window=window)


def resolve_series_period(
    year: Any,
    month: Any = None,
    quarter: Any = None,
    monthly: bool = False,
    quarterly: bool = False,
    today: Optional[date] = None,
) -> tuple[ResolvedPeriod, Bucket]:
    """Resolve series parameters to a period and the bucket granularity.

    monthly -> one bucket per day of ``month``; quarterly -> one bucket per
    quarter (only ``quarter`` when given); neither -> one bucket per month.
    """
    if monthly and quarterly:
        raise ValidationError("monthly and quarterly are mutually exclusive", field="monthly", value=True)

    year = coerce_year(year)
    if year is None:
        year = (today or datetime.now(timezone.utc).date()).year
    month = coerce_month(month)
    quarter = coerce_quarter(quarter)

    if monthly:
        if month is None:
            raise ValidationError("month required for a daily series", field="month", value=None)
        return resolve_period(Granularity.MONTHLY, year, month=month), Bucket.DAY
    if quarterly:
        if quarter is not None:
            return resolve_period(Granularity.QUARTERLY, year, quarter=quarter), Bucket.QUARTER
        return resolve_period(Granularity.ANNUAL, year), Bucket.QUARTER
    return resolve_period(Granularity.ANNUAL, year), Bucket.MONTH


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------

def _as_utc_date(moment: date | datetime) -> date:
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment.date()
    return moment


def bucket_key(moment: date | datetime, bucket: Bucket) -> Hashable:
    """Key of the bucket ``moment`` falls into.

    Naive datetimes are taken as UTC.
    """
    day = _as_utc_date(moment)
    if bucket is Bucket.DAY:
        return day
    if bucket is Bucket.MONTH:
        return (day.year, day.month)
    if bucket is Bucket.QUARTER:
        return (day.year, quarter_of(day.month))
    return None


def iter_buckets(period: ResolvedPeriod, bucket: Bucket) -> list[tuple[Hashable, str]]:
    """Ordered ``(key, label)`` pairs covering the period."""
    if period.is_empty:
        return []
    first = _as_utc_date(period.start)
    last = _as_utc_date(period.end)

    if bucket is Bucket.NONE:
        return [(None, period.label)]

    if bucket is Bucket.DAY:
        buckets = []
        day = first
        while day <= last:
            buckets.append((day, day.strftime("%d/%m/%Y")))
            day += timedelta(days=1)
        return buckets

    buckets = []
    seen = set()
    year, month = first.year, first.month
    while (year, month) <= (last.year, last.month):
        key = bucket_key(date(year, month, 1), bucket)
        if key not in seen:
            seen.add(key)
            label = MONTH_LABELS[month - 1] if bucket is Bucket.MONTH else f"Q{key[1]}"
            buckets.append((key, label))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return buckets


def series_label(period: ResolvedPeriod, bucket: Bucket) -> str:
    """Human label for a whole series (e.g. ``Q1-Q4/2024``)."""
    if bucket is Bucket.QUARTER and period.granularity is Granularity.ANNUAL:
        return f"Q1-Q4/{period.year}"
    return period.label
