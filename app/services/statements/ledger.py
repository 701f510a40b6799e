"""Ledger aggregation over the three record sets.

Both the single-statement path (``sum_range``) and the series path
(``sum_grouped``) fetch the same rows and fold them with the same grouping
routine; ``sum_range`` is simply the single-bucket case.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Hashable, Union

from sqlalchemy import String, type_coerce
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DataUnavailableError
from app.models.ledger_models import Entry, Expense, FinancialOperation

from .aggregates import ZERO, EntryAggregate, ExpenseAggregate, OperationAggregate, to_decimal
from .period_utils import Bucket, bucket_key

logger = logging.getLogger(__name__)

Aggregate = Union[OperationAggregate, ExpenseAggregate, EntryAggregate]


def raw_amount(column):
    """Select an amount column without the Numeric result conversion.

    The stored value reaches ``to_decimal`` as-is, so a malformed cell
    counts as 0 instead of failing the whole fetch.
    """
    return type_coerce(column, String).label(column.key)


class LedgerSource(str, Enum):
    OPERATIONS = "operations"
    EXPENSES = "expenses"
    ENTRIES = "entries"


_AGGREGATE_TYPES: dict[LedgerSource, type] = {
    LedgerSource.OPERATIONS: OperationAggregate,
    LedgerSource.EXPENSES: ExpenseAggregate,
    LedgerSource.ENTRIES: EntryAggregate,
}


def zero_aggregate(source: LedgerSource) -> Aggregate:
    return _AGGREGATE_TYPES[source].zero()


def _row_aggregate(source: LedgerSource, row) -> Aggregate:
    values = row._mapping
    if source is LedgerSource.OPERATIONS:
        return OperationAggregate.from_values(**values)
    if source is LedgerSource.EXPENSES:
        value = to_decimal(values["value"])
        return ExpenseAggregate(value=value, taxable_value=value if values["is_taxable"] else ZERO)
    return EntryAggregate.from_values(value=values["value"])


class LedgerAggregator:
    """Range sums and grouped sums over operations, expenses and entries."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, source: LedgerSource):
        if source is LedgerSource.OPERATIONS:
            m = FinancialOperation
            return m, self.db.query(
                m.date,
                raw_amount(m.factor_value),
                raw_amount(m.ad_valorem_value),
                raw_amount(m.iof_value),
                raw_amount(m.fees_value),
                raw_amount(m.net_value),
                raw_amount(m.pis),
                raw_amount(m.cofins),
                raw_amount(m.issqn),
            )
        if source is LedgerSource.EXPENSES:
            return Expense, self.db.query(Expense.date, raw_amount(Expense.value), Expense.is_taxable)
        if source is LedgerSource.ENTRIES:
            return Entry, self.db.query(Entry.date, raw_amount(Entry.value))
        raise ValueError(f"Unknown ledger source: {source}")

    def _fetch_rows(self, source: LedgerSource, start: datetime, end: datetime) -> list:
        try:
            model, query = self._query(source)
            return query.filter(model.date >= start, model.date <= end).all()
        except SQLAlchemyError as exc:
            logger.exception("Ledger query failed source=%s start=%s end=%s", source.value, start, end)
            raise DataUnavailableError("ledger", f"{source.value} query failed") from exc

    def _group(self, source: LedgerSource, rows: list, bucket: Bucket) -> dict[Hashable, Aggregate]:
        grouped: dict[Hashable, Aggregate] = {}
        for row in rows:
            if row.date is None:
                continue
            key = bucket_key(row.date, bucket)
            current = grouped.get(key)
            aggregate = _row_aggregate(source, row)
            grouped[key] = aggregate if current is None else current + aggregate
        return grouped

    def sum_range(self, source: LedgerSource, start: datetime, end: datetime) -> Aggregate:
        """Sum every record of ``source`` dated within [start, end]."""
        grouped = self.sum_grouped(source, start, end, Bucket.NONE)
        return grouped.get(None, zero_aggregate(source))

    def sum_grouped(
        self,
        source: LedgerSource,
        start: datetime,
        end: datetime,
        bucket: Bucket,
    ) -> dict[Hashable, Aggregate]:
        """Sums per bucket key. Buckets without records are absent from the map."""
        rows = self._fetch_rows(source, start, end)
        grouped = self._group(source, rows, bucket)
        logger.debug(
            "Ledger aggregated source=%s bucket=%s rows=%d buckets=%d",
            source.value,
            bucket.value,
            len(rows),
            len(grouped),
        )
        return grouped
