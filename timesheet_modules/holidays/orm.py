"""
Holiday Category ORM Model (``timesheet_modules.holidays.orm``).

Reference data: the categories a daily record may carry to mark its hours
as holiday hours rather than regular hours.  Names are unique.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import TrackedBase


class HolidayCategoryModel(TrackedBase):
    """ORM model for ``HolidayCategory``."""

    __tablename__ = "timesheet_holiday_categories"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_government: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self):
        from timesheet_modules.holidays.models import HolidayCategory

        return HolidayCategory(
            category_id=self.id,
            name=self.name,
            description=self.description,
            is_government=self.is_government,
        )
