"""Series builder: one statement per sub-period bucket.

Ledger aggregates come from ``sum_grouped`` keyed by the bucket. Adjustments
are resolved at their OWN granularity and copied onto every bucket inside it:

- annual series (month buckets): deduction per month; CSLL/IRPJ per quarter,
  the same value on each of the quarter's three months
- quarterly series (quarter buckets): deduction and CSLL/IRPJ per quarter
- daily series (day buckets): the month's deduction on every day; no
  CSLL/IRPJ, quarterly taxes are never allocated below a quarter

Every bucket goes through the same ``compute_statement``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Hashable

from .adjustments import AdjustmentResolver
from .computations import QuarterlyTax, Statement, compute_statement, gross_result_of
from .ledger import Aggregate, LedgerAggregator, LedgerSource, zero_aggregate
from .period_utils import (
    Bucket,
    Granularity,
    ResolvedPeriod,
    iter_buckets,
    quarter_of,
    resolve_period,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesPoint:
    label: str
    statement: Statement

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "statement": self.statement.to_dict()}


def _quarter_key(key: Hashable, bucket: Bucket) -> tuple[int, int]:
    if bucket is Bucket.MONTH:
        year, month = key
        return (year, quarter_of(month))
    return key


def _roll_up(grouped: dict[Hashable, Aggregate], bucket: Bucket) -> dict[tuple[int, int], Aggregate]:
    """Re-key month/quarter sums by quarter."""
    rolled: dict[tuple[int, int], Aggregate] = {}
    for key, aggregate in grouped.items():
        qkey = _quarter_key(key, bucket)
        current = rolled.get(qkey)
        rolled[qkey] = aggregate if current is None else current + aggregate
    return rolled


class SeriesBuilder:
    def __init__(self, aggregator: LedgerAggregator, resolver: AdjustmentResolver):
        self.aggregator = aggregator
        self.resolver = resolver

    def _deductions(
        self,
        period: ResolvedPeriod,
        bucket: Bucket,
        keys: list[Hashable],
    ) -> dict[Hashable, Decimal]:
        if bucket is Bucket.DAY:
            value = self.resolver.deduction_for(period)
            return {key: value for key in keys}
        if bucket is Bucket.MONTH:
            return {
                key: self.resolver.deduction_for(resolve_period(Granularity.MONTHLY, key[0], month=key[1]))
                for key in keys
            }
        if bucket is Bucket.QUARTER:
            return {
                key: self.resolver.deduction_for(resolve_period(Granularity.QUARTERLY, key[0], quarter=key[1]))
                for key in keys
            }
        return {key: self.resolver.deduction_for(period) for key in keys}

    def _taxes(
        self,
        bucket: Bucket,
        keys: list[Hashable],
        operations: dict[Hashable, Aggregate],
        expenses: dict[Hashable, Aggregate],
        deductions: dict[Hashable, Decimal],
    ) -> dict[Hashable, QuarterlyTax]:
        if bucket not in (Bucket.MONTH, Bucket.QUARTER):
            return {}

        quarter_ops = _roll_up(operations, bucket)
        quarter_exps = _roll_up(expenses, bucket)

        by_quarter: dict[tuple[int, int], QuarterlyTax] = {}
        for key in keys:
            qkey = _quarter_key(key, bucket)
            if qkey in by_quarter:
                continue
            quarter_period = resolve_period(Granularity.QUARTERLY, qkey[0], quarter=qkey[1])
            if bucket is Bucket.QUARTER:
                deduction = deductions[key]
            else:
                deduction = self.resolver.deduction_for(quarter_period)
            gross_result = gross_result_of(
                quarter_ops.get(qkey, zero_aggregate(LedgerSource.OPERATIONS)),
                quarter_exps.get(qkey, zero_aggregate(LedgerSource.EXPENSES)),
                deduction,
            )
            by_quarter[qkey] = self.resolver.taxes_for(quarter_period, gross_result)

        return {key: by_quarter[_quarter_key(key, bucket)] for key in keys}

    def build(self, period: ResolvedPeriod, bucket: Bucket) -> list[SeriesPoint]:
        """Ordered points covering ``period``, zero-filled where the ledger is empty."""
        buckets = iter_buckets(period, bucket)
        if not buckets:
            return []
        keys = [key for key, _ in buckets]

        operations = self.aggregator.sum_grouped(LedgerSource.OPERATIONS, period.start, period.end, bucket)
        expenses = self.aggregator.sum_grouped(LedgerSource.EXPENSES, period.start, period.end, bucket)
        entries = self.aggregator.sum_grouped(LedgerSource.ENTRIES, period.start, period.end, bucket)

        deductions = self._deductions(period, bucket, keys)
        taxes = self._taxes(bucket, keys, operations, expenses, deductions)

        points = []
        for key, label in buckets:
            tax = taxes.get(key, QuarterlyTax())
            statement = compute_statement(
                operations.get(key, zero_aggregate(LedgerSource.OPERATIONS)),
                expenses.get(key, zero_aggregate(LedgerSource.EXPENSES)),
                entries.get(key, zero_aggregate(LedgerSource.ENTRIES)),
                deduction=deductions[key],
                csll=tax.csll,
                irpj=tax.irpj,
            )
            points.append(SeriesPoint(label=label, statement=statement))

        logger.debug("Series built period=%s bucket=%s points=%d", period.label, bucket.value, len(points))
        return points
