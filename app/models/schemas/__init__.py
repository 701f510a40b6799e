"""Pydantic schemas for API responses.

Sub-modules:
- statement: Statement (DRE) and series schemas
"""
from .statement import (
    EntryTotals,
    ErrorOut,
    ExpenseTotals,
    OperationTotals,
    PeriodOut,
    SeriesMeta,
    SeriesPointOut,
    SeriesResponse,
    StatementOut,
    StatementResponse,
    TaxesOut,
)

__all__ = [
    "OperationTotals",
    "ExpenseTotals",
    "EntryTotals",
    "TaxesOut",
    "StatementOut",
    "PeriodOut",
    "ErrorOut",
    "StatementResponse",
    "SeriesPointOut",
    "SeriesMeta",
    "SeriesResponse",
]
