"""Statement (DRE) response schemas.

Amounts are Decimal and serialise as strings in JSON.
"""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class OperationTotals(BaseModel):
    factor_value: Decimal
    ad_valorem_value: Decimal
    iof_value: Decimal
    fees_value: Decimal
    net_value: Decimal
    pis: Decimal
    cofins: Decimal
    issqn: Decimal


class ExpenseTotals(BaseModel):
    value: Decimal
    taxable_value: Decimal


class EntryTotals(BaseModel):
    value: Decimal


class TaxesOut(BaseModel):
    pis: Decimal
    cofins: Decimal
    issqn: Decimal
    irpj: Decimal
    csll: Decimal
    total: Decimal


class StatementOut(BaseModel):
    """Derived income statement."""
    operations: OperationTotals
    expenses: ExpenseTotals
    entries: EntryTotals
    deduction: Decimal
    operation_value: Decimal
    gross_revenue: Decimal
    net_revenue: Decimal
    total_expenses: Decimal
    taxable_expenses: Decimal
    total_costs: Decimal  # factor + ad valorem + iof
    gross_result: Decimal
    operational_result: Decimal
    other_income: Decimal
    taxes: TaxesOut
    net_result: Decimal


class PeriodOut(BaseModel):
    granularity: str
    label: str
    year: Optional[int] = None
    month: Optional[int] = None
    quarter: Optional[int] = None
    start: Optional[dt.datetime] = None
    end: Optional[dt.datetime] = None


class ErrorOut(BaseModel):
    code: str
    message: str
    details: dict = {}


class StatementResponse(BaseModel):
    period: PeriodOut
    statement: StatementOut
    error: Optional[ErrorOut] = None


class SeriesPointOut(BaseModel):
    label: str  # "05/03/2024", "Mar", "Q1"
    statement: StatementOut


class SeriesMeta(BaseModel):
    year: int
    month: Optional[int] = None
    quarter: Optional[int] = None
    granularity: str  # bucket granularity: day, month or quarter
    period_label: str
    start: dt.datetime
    end: dt.datetime


class SeriesResponse(BaseModel):
    points: list[SeriesPointOut]
    meta: SeriesMeta
