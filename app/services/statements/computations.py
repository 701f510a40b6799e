"""Statement (DRE) computation.

Pure functions over already-fetched aggregates. No database access here.
All arithmetic is ``Decimal``; nothing is rounded inside the calculator so
repeated summation across buckets cannot drift.

Formula chain:
    operation_value    = factor + ad_valorem + iof + fees + net
    gross_revenue      = factor + ad_valorem + fees + deduction
    net_revenue        = gross_revenue - cofins - issqn
    total_expenses     = expenses.value
    gross_result       = net_revenue - total_expenses
    other_income       = entries.value
    operational_result = gross_result
    net_result         = gross_result + other_income - irpj - csll

The tax deduction is ADDED into gross revenue. That is the domain's
convention, not a sign error.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .aggregates import ZERO, EntryAggregate, ExpenseAggregate, OperationAggregate, to_decimal

# Presumptive-profit rates applied to a positive gross result
IRPJ_RATE = Decimal("0.15")
CSLL_RATE = Decimal("0.09")


@dataclass(frozen=True)
class QuarterlyTax:
    csll: Decimal = ZERO
    irpj: Decimal = ZERO

    @property
    def is_zero(self) -> bool:
        return self.csll == 0 and self.irpj == 0

    def __add__(self, other: QuarterlyTax) -> QuarterlyTax:
        return QuarterlyTax(csll=self.csll + other.csll, irpj=self.irpj + other.irpj)


@dataclass(frozen=True)
class Taxes:
    pis: Decimal = ZERO
    cofins: Decimal = ZERO
    issqn: Decimal = ZERO
    irpj: Decimal = ZERO
    csll: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.pis + self.cofins + self.issqn + self.irpj + self.csll


@dataclass(frozen=True)
class Statement:
    """Derived income statement. Either fully computed or not produced."""

    operations: OperationAggregate = field(default_factory=OperationAggregate.zero)
    expenses: ExpenseAggregate = field(default_factory=ExpenseAggregate.zero)
    entries: EntryAggregate = field(default_factory=EntryAggregate.zero)
    deduction: Decimal = ZERO

    operation_value: Decimal = ZERO
    gross_revenue: Decimal = ZERO
    net_revenue: Decimal = ZERO
    total_expenses: Decimal = ZERO
    taxable_expenses: Decimal = ZERO
    total_costs: Decimal = ZERO
    gross_result: Decimal = ZERO
    operational_result: Decimal = ZERO
    other_income: Decimal = ZERO
    taxes: Taxes = field(default_factory=Taxes)
    net_result: Decimal = ZERO

    @classmethod
    def zero(cls) -> Statement:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Statement:
        """Rebuild from ``to_dict`` output (amounts may be strings after JSON)."""
        taxes = data.get("taxes") or {}
        return cls(
            operations=OperationAggregate.from_values(**(data.get("operations") or {})),
            expenses=ExpenseAggregate.from_values(**(data.get("expenses") or {})),
            entries=EntryAggregate.from_values(**(data.get("entries") or {})),
            deduction=to_decimal(data.get("deduction")),
            operation_value=to_decimal(data.get("operation_value")),
            gross_revenue=to_decimal(data.get("gross_revenue")),
            net_revenue=to_decimal(data.get("net_revenue")),
            total_expenses=to_decimal(data.get("total_expenses")),
            taxable_expenses=to_decimal(data.get("taxable_expenses")),
            total_costs=to_decimal(data.get("total_costs")),
            gross_result=to_decimal(data.get("gross_result")),
            operational_result=to_decimal(data.get("operational_result")),
            other_income=to_decimal(data.get("other_income")),
            taxes=Taxes(
                pis=to_decimal(taxes.get("pis")),
                cofins=to_decimal(taxes.get("cofins")),
                issqn=to_decimal(taxes.get("issqn")),
                irpj=to_decimal(taxes.get("irpj")),
                csll=to_decimal(taxes.get("csll")),
            ),
            net_result=to_decimal(data.get("net_result")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "operations": self.operations.as_dict(),
            "expenses": self.expenses.as_dict(),
            "entries": self.entries.as_dict(),
            "deduction": self.deduction,
            "operation_value": self.operation_value,
            "gross_revenue": self.gross_revenue,
            "net_revenue": self.net_revenue,
            "total_expenses": self.total_expenses,
            "taxable_expenses": self.taxable_expenses,
            "total_costs": self.total_costs,
            "gross_result": self.gross_result,
            "operational_result": self.operational_result,
            "other_income": self.other_income,
            "taxes": {
                "pis": self.taxes.pis,
                "cofins": self.taxes.cofins,
                "issqn": self.taxes.issqn,
                "irpj": self.taxes.irpj,
                "csll": self.taxes.csll,
                "total": self.taxes.total,
            },
            "net_result": self.net_result,
        }


def compute_automatic_taxes(gross_result: Decimal) -> QuarterlyTax:
    """IRPJ/CSLL from the gross result, used when nothing was entered manually.

    A negative result is clamped to zero, so the tax is never negative.
    """
    base = max(ZERO, gross_result)
    return QuarterlyTax(csll=base * CSLL_RATE, irpj=base * IRPJ_RATE)


def gross_result_of(
    operations: OperationAggregate,
    expenses: ExpenseAggregate,
    deduction: Decimal,
) -> Decimal:
    """Steps 2-5 of the chain; feeds the automatic tax fallback."""
    gross_revenue = operations.factor_value + operations.ad_valorem_value + operations.fees_value + deduction
    net_revenue = gross_revenue - operations.cofins - operations.issqn
    return net_revenue - expenses.value


def compute_statement(
    operations: OperationAggregate,
    expenses: ExpenseAggregate,
    entries: EntryAggregate,
    deduction: Decimal = ZERO,
    csll: Decimal = ZERO,
    irpj: Decimal = ZERO,
) -> Statement:
    """Build a Statement from aggregates and resolved adjustments."""
    op = operations
    operation_value = op.factor_value + op.ad_valorem_value + op.iof_value + op.fees_value + op.net_value
    gross_revenue = op.factor_value + op.ad_valorem_value + op.fees_value + deduction
    net_revenue = gross_revenue - op.cofins - op.issqn
    total_expenses = expenses.value
    gross_result = net_revenue - total_expenses
    other_income = entries.value
    net_result = gross_result + other_income - irpj - csll

    return Statement(
        operations=operations,
        expenses=expenses,
        entries=entries,
        deduction=deduction,
        operation_value=operation_value,
        gross_revenue=gross_revenue,
        net_revenue=net_revenue,
        total_expenses=total_expenses,
        taxable_expenses=expenses.taxable_value,
        total_costs=op.factor_value + op.ad_valorem_value + op.iof_value,
        gross_result=gross_result,
        operational_result=gross_result,
        other_income=other_income,
        taxes=Taxes(pis=op.pis, cofins=op.cofins, issqn=op.issqn, irpj=irpj, csll=csll),
        net_result=net_result,
    )
