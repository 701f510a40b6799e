"""Statement (DRE) Reporting Module.

Derives income statements and statement series from the ledger and the
manual adjustment tables.

Sub-modules:
- period_utils: Period resolution and the shared bucketing function
- aggregates: Immutable ledger sums and safe Decimal coercion
- ledger: Range and grouped sums over operations, expenses and entries
- adjustments: Tax deduction and quarterly tax fallback chains
- computations: The statement formula chain (pure)
- series: One statement per day/month/quarter bucket
- reporting_service: StatementReportingService entry point
"""
from .aggregates import EntryAggregate, ExpenseAggregate, OperationAggregate, to_decimal
from .adjustments import (
    AdjustmentResolver,
    AdjustmentStore,
    resolve_quarterly_taxes,
    resolve_tax_deduction,
)
from .computations import (
    CSLL_RATE,
    IRPJ_RATE,
    QuarterlyTax,
    Statement,
    Taxes,
    compute_automatic_taxes,
    compute_statement,
)
from .ledger import LedgerAggregator, LedgerSource
from .period_utils import (
    Bucket,
    Granularity,
    ResolvedPeriod,
    bucket_key,
    resolve_period,
    resolve_series_period,
    resolve_statement_period,
)
from .reporting_service import Series, StatementReport, StatementReportingService
from .series import SeriesBuilder, SeriesPoint

__all__ = [
    # Constants
    "IRPJ_RATE",
    "CSLL_RATE",
    # Records
    "OperationAggregate",
    "ExpenseAggregate",
    "EntryAggregate",
    "QuarterlyTax",
    "Taxes",
    "Statement",
    "SeriesPoint",
    "Series",
    "StatementReport",
    # Period utilities
    "Granularity",
    "Bucket",
    "ResolvedPeriod",
    "bucket_key",
    "resolve_period",
    "resolve_statement_period",
    "resolve_series_period",
    # Computation functions
    "to_decimal",
    "compute_statement",
    "compute_automatic_taxes",
    "resolve_tax_deduction",
    "resolve_quarterly_taxes",
    # Collaborators
    "LedgerSource",
    "LedgerAggregator",
    "AdjustmentStore",
    "AdjustmentResolver",
    "SeriesBuilder",
    # Service class
    "StatementReportingService",
]
