"""
Holiday Categories Module (``timesheet_modules.holidays``).

Reference data for daily records: statutory leave types (sick leave,
parental leave, vacation...) and company-specific day types (remote work,
conference, training).  A daily record carrying a category counts toward
holiday hours instead of regular hours.
"""

from timesheet_modules.holidays.models import (
    DEFAULT_HOLIDAY_CATEGORIES,
    HolidayCategory,
    HolidayCategoryDef,
)
from timesheet_modules.holidays.service import HolidayCategoryService

__all__ = [
    "DEFAULT_HOLIDAY_CATEGORIES",
    "HolidayCategory",
    "HolidayCategoryDef",
    "HolidayCategoryService",
]
