"""
Module: timesheet_kernel.db.types
Responsibility: Column types for hours and money, so that every ORM model
    declares them with identical precision.
Architecture position: Kernel > DB.  May be imported by ORM modules and
    services.  MUST NOT import from those layers.

Invariants enforced:
    - Hours are stored as Numeric(10, 2); the values written are already
      normalized by ``timesheet_kernel.domain.values.parse_hours``.
    - Invoice amounts are stored as Numeric(38, 9).
    - No floats in any column.
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import Numeric, String

# Hours with two decimal places (0.25 = quarter hour)
HoursType = Numeric(10, 2)

# Invoice amount with high precision
MoneyType = Numeric(38, 9)

# Status values
StatusType = String(50)

# File system paths relative to a document store root
FilePathType = String(1024)


MONEY_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(amount: Decimal, decimal_places: int = 2) -> Decimal:
    """Round a monetary amount for presentation, half up."""
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return amount.quantize(Decimal(quantize_str), rounding=DEFAULT_ROUNDING)
