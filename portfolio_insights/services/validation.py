"""Snapshot validation for the insights engine.

Every holding is checked before any totals are computed, so a bad field is
reported once, by name, instead of leaking NaN into the metrics.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from dateutil import parser as date_parser

from ..database.models import DebtType, PortfolioSnapshot


class InvalidSnapshotError(ValueError):
    """Raised when a snapshot field violates the input contract."""

    def __init__(self, field_name: str, value, reason: str):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"{field_name}: {reason} (got {value!r})")


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp into an aware datetime (naive values are UTC)."""
    return as_utc(date_parser.parse(value))


def _check_amount(field_name: str, value, optional: bool = False):
    if value is None:
        if optional:
            return
        raise InvalidSnapshotError(field_name, value, "value is required")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidSnapshotError(field_name, value, "must be a number")
    if not math.isfinite(value):
        raise InvalidSnapshotError(field_name, value, "must be finite")
    if value < 0:
        raise InvalidSnapshotError(field_name, value, "must not be negative")


def _check_timestamp(field_name: str, value: Optional[str]):
    if value is None:
        return
    try:
        parse_timestamp(value)
    except (ValueError, OverflowError, TypeError):
        raise InvalidSnapshotError(field_name, value, "not a valid timestamp")


def _check_each(prefix: str, items: Iterable, amounts, optional_amounts=()):
    for i, item in enumerate(items):
        for name in amounts:
            _check_amount(f"{prefix}[{i}].{name}", getattr(item, name))
        for name in optional_amounts:
            _check_amount(f"{prefix}[{i}].{name}", getattr(item, name), optional=True)
        _check_timestamp(f"{prefix}[{i}].created_at", getattr(item, 'created_at', None))


def validate_snapshot(snapshot: PortfolioSnapshot) -> PortfolioSnapshot:
    """Check every numeric and timestamp field; return the snapshot unchanged."""
    _check_each('real_estate', snapshot.real_estate,
                ('estimated_value', 'mortgage_balance'),
                ('monthly_mortgage_payment',))
    _check_each('stocks', snapshot.stocks,
                ('shares', 'cost_basis_per_share'),
                ('current_price',))
    _check_each('crypto', snapshot.crypto,
                ('quantity', 'cost_basis_per_unit'),
                ('current_price',))
    _check_each('retirement', snapshot.retirement,
                ('balance',),
                ('contributions',))
    _check_each('debts', snapshot.debts,
                ('current_balance', 'interest_rate', 'minimum_payment'),
                ('monthly_payment',))

    for i, debt in enumerate(snapshot.debts):
        if not isinstance(debt.debt_type, DebtType):
            raise InvalidSnapshotError(f"debts[{i}].debt_type", debt.debt_type, "unknown debt type")

    if snapshot.age is not None:
        if isinstance(snapshot.age, bool) or not isinstance(snapshot.age, int) or snapshot.age < 0:
            raise InvalidSnapshotError('age', snapshot.age, "must be a non-negative integer")

    return snapshot


def coerce_debt_type(value, field_name: str = 'debt_type') -> DebtType:
    """Convert a stored debt type string into a DebtType."""
    if isinstance(value, DebtType):
        return value
    try:
        return DebtType(value)
    except ValueError:
        raise InvalidSnapshotError(field_name, value, "unknown debt type")
