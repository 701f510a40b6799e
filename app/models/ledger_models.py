"""
Ledger and manual-adjustment tables read by the DRE engine.

Ledger record sets (summed by date):
- FinancialOperation: imported receivable operations (one row per operation)
- Expense: operating expenses, optionally taxable
- Entry: additional income entries

Manual adjustments (point lookups):
- MonthlyTaxDeduction: tax deduction per (year, month)
- TaxDeduction: legacy tax deduction per (year, quarter)
- ManualQuarterlyTax: manually entered CSLL/IRPJ per (year, quarter)

The engine never writes to these tables.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from app.db.base_class import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FinancialOperation(Base):
    """Receivable operation imported from the operations spreadsheet."""
    __tablename__ = "financial_operations"

    id = Column(Integer, primary_key=True, index=True)
    operation_id = Column(String(64), nullable=False, unique=True)
    assignor_document = Column(String(32), nullable=True)
    date = Column(DateTime(timezone=True), nullable=True, index=True)

    factor_value = Column(Numeric(19, 6), nullable=True)
    ad_valorem_value = Column(Numeric(19, 6), nullable=True)
    iof_value = Column(Numeric(19, 6), nullable=True)
    fees_value = Column(Numeric(19, 6), nullable=True)
    net_value = Column(Numeric(19, 6), nullable=True)

    # Taxes withheld on the operation
    pis = Column(Numeric(19, 6), nullable=True)
    cofins = Column(Numeric(19, 6), nullable=True)
    issqn = Column(Numeric(19, 6), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Expense(Base):
    """Operating expense. Only ``value`` and ``is_taxable`` feed the statement."""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    value = Column(Numeric(19, 6), nullable=False)
    is_taxable = Column(Boolean, nullable=False, default=False)
    is_payroll = Column(Boolean, nullable=False, default=False)
    category_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Entry(Base):
    """Additional income outside the operations ledger."""
    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    value = Column(Numeric(19, 6), nullable=False)
    category_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class MonthlyTaxDeduction(Base):
    """Tax deduction entered per month. Added into gross revenue."""
    __tablename__ = "monthly_tax_deductions"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_monthly_tax_deduction_period"),)

    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)  # 1-12
    value = Column(Numeric(19, 6), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class TaxDeduction(Base):
    """Legacy quarterly tax deduction.

    Superseded by MonthlyTaxDeduction; still consulted when a quarter's
    monthly deductions sum to zero.
    """
    __tablename__ = "tax_deductions"
    __table_args__ = (UniqueConstraint("year", "quarter", name="uq_tax_deduction_period"),)

    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False)
    quarter = Column(Integer, nullable=False)  # 1-4
    value = Column(Numeric(19, 6), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ManualQuarterlyTax(Base):
    """Manually entered CSLL and IRPJ for a quarter."""
    __tablename__ = "manual_quarterly_taxes"
    __table_args__ = (UniqueConstraint("year", "quarter", name="uq_manual_quarterly_tax_period"),)

    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False)
    quarter = Column(Integer, nullable=False)  # 1-4
    csll = Column(Numeric(19, 6), nullable=False, default=0)
    irpj = Column(Numeric(19, 6), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


LEDGER_MODELS = (FinancialOperation, Expense, Entry)
ADJUSTMENT_MODELS = (MonthlyTaxDeduction, TaxDeduction, ManualQuarterlyTax)
