"""
Value helpers shared by engines and services.

Hours arrive from clients as ints, floats, Decimals or numeric strings.
They are normalized once, here, to a two-place ``Decimal``; nothing
downstream sees a float.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from timesheet_kernel.exceptions import InvalidEntryError, InvalidPeriodError

HOURS_DECIMAL_PLACES = 2
HOURS_QUANTUM = Decimal(1).scaleb(-HOURS_DECIMAL_PLACES)
ZERO_HOURS = Decimal("0.00")


def round_hours(value: Decimal) -> Decimal:
    """Quantize hours to two places, rounding half up."""
    return value.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def parse_hours(value: object, field: str) -> Decimal:
    """
    Normalize a client-supplied hours value.

    Raises:
        InvalidEntryError: value is missing, boolean, non-numeric,
            non-finite or negative.
    """
    if value is None or isinstance(value, bool):
        raise InvalidEntryError(field, f"Hours must be a number, got {value!r}")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, (int, float, str)):
        try:
            # str() keeps 7.1 as 7.1 rather than its binary expansion
            dec = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidEntryError(
                field, f"Hours must be a number, got {value!r}"
            ) from None
    else:
        raise InvalidEntryError(field, f"Hours must be a number, got {value!r}")

    if not dec.is_finite():
        raise InvalidEntryError(field, f"Hours must be finite, got {value!r}")
    if dec < 0:
        raise InvalidEntryError(field, f"Hours must not be negative, got {value!r}")
    try:
        return round_hours(dec)
    except InvalidOperation:
        raise InvalidEntryError(field, f"Hours value out of range: {value!r}") from None


def validate_period(year: object, month: object) -> tuple[int, int]:
    """Return (year, month) or raise InvalidPeriodError."""
    if (
        not isinstance(month, int)
        or isinstance(month, bool)
        or not 1 <= month <= 12
    ):
        raise InvalidPeriodError(year, month)
    if (
        not isinstance(year, int)
        or isinstance(year, bool)
        or not 1 <= year <= 9999
    ):
        raise InvalidPeriodError(year, month)
    return year, month


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar date of the month."""
    validate_period(year, month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
