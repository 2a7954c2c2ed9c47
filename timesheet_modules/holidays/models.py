"""Holiday category DTOs, the default reference list, and public holidays."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class HolidayCategory:
    """A kind of non-regular day (leave type, remote day, training...)."""

    category_id: UUID
    name: str
    description: str | None
    is_government: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.category_id),
            "name": self.name,
            "description": self.description,
            "isGovernment": self.is_government,
        }


@dataclass(frozen=True)
class HolidayCategoryDef:
    """Seed definition of a category."""

    name: str
    description: str
    is_government: bool


DEFAULT_HOLIDAY_CATEGORIES: tuple[HolidayCategoryDef, ...] = (
    # Statutory leave
    HolidayCategoryDef("Sjukledighet", "Sick leave", True),
    HolidayCategoryDef("Föräldraledighet", "Parental leave", True),
    HolidayCategoryDef("Semester", "Vacation", True),
    HolidayCategoryDef("VAB (Vård av barn)", "Care of child", True),
    HolidayCategoryDef("Tjänstledighet", "Leave of absence", True),
    HolidayCategoryDef("Studieledighet", "Study leave", True),
    # Company-specific
    HolidayCategoryDef("Work from home", "Remote work day", False),
    HolidayCategoryDef("Conference", "Attending a conference", False),
    HolidayCategoryDef("Training", "Training/education day", False),
)


@dataclass(frozen=True)
class PublicHoliday:
    """A public holiday on a specific date."""

    holiday_date: date
    name: str

    def to_payload(self) -> dict[str, Any]:
        return {"date": self.holiday_date.isoformat(), "name": self.name}
