"""Immutable ledger aggregates.

Each aggregate is a frozen dataclass of ``Decimal`` sums. ``zero()`` is the
value for "no matching records", so callers can always add aggregates
together without checking for ``None``.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored value to Decimal, mapping anything malformed to 0.

    One corrupt record must not poison a whole aggregate, so ``None``,
    non-numeric strings, NaN and infinities all become ``Decimal("0")``.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not result.is_finite():
        return ZERO
    return result


class _Summable:
    """Field-wise addition shared by the aggregate dataclasses."""

    @classmethod
    def zero(cls):
        return cls(**{f.name: ZERO for f in fields(cls)})

    @classmethod
    def from_values(cls, **values: Any):
        """Build from raw stored values; missing or bad fields become 0."""
        return cls(**{f.name: to_decimal(values.get(f.name)) for f in fields(cls)})

    def __add__(self, other):
        if not isinstance(other, type(self)):
            return NotImplemented
        return type(self)(**{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)})

    def as_dict(self) -> dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class OperationAggregate(_Summable):
    factor_value: Decimal = ZERO
    ad_valorem_value: Decimal = ZERO
    iof_value: Decimal = ZERO
    fees_value: Decimal = ZERO
    net_value: Decimal = ZERO
    pis: Decimal = ZERO
    cofins: Decimal = ZERO
    issqn: Decimal = ZERO


@dataclass(frozen=True)
class ExpenseAggregate(_Summable):
    value: Decimal = ZERO
    taxable_value: Decimal = ZERO


@dataclass(frozen=True)
class EntryAggregate(_Summable):
    value: Decimal = ZERO
