"""
HolidayCategoryService -- reference data for holiday-coded daily records,
and the public holidays of a date range.

Owns the transaction boundary for category writes.  Reads never commit.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from timesheet_config import get_active_config
from timesheet_engines.calendar import HolidayProvider
from timesheet_kernel.domain.caller import Caller, Role
from timesheet_kernel.exceptions import (
    DuplicateHolidayCategoryError,
    HolidayCategoryNotFoundError,
    ValidationError,
)
from timesheet_kernel.logging_config import get_logger
from timesheet_modules._transaction_helpers import require_role, service_transaction
from timesheet_modules.holidays.models import (
    DEFAULT_HOLIDAY_CATEGORIES,
    HolidayCategory,
    HolidayCategoryDef,
    PublicHoliday,
)
from timesheet_modules.holidays.orm import HolidayCategoryModel

logger = get_logger("modules.holidays.service")

ENTITY_TYPE = "holiday_category"


class HolidayCategoryService:
    """Holiday categories (reference data) and public holidays by date range."""

    def __init__(self, session: Session, holiday_provider: HolidayProvider | None = None):
        self._session = session
        self._holidays = holiday_provider

    def seed_defaults(
        self,
        actor_id: UUID,
        definitions: tuple[HolidayCategoryDef, ...] = DEFAULT_HOLIDAY_CATEGORIES,
    ) -> int:
        """Insert any missing default categories. Returns the number created."""
        with service_transaction(self._session, "seed_holiday_categories", ENTITY_TYPE):
            existing = set(
                self._session.execute(select(HolidayCategoryModel.name)).scalars()
            )
            created = 0
            for definition in definitions:
                if definition.name in existing:
                    continue
                self._session.add(
                    HolidayCategoryModel(
                        name=definition.name,
                        description=definition.description,
                        is_government=definition.is_government,
                        created_by_id=actor_id,
                    )
                )
                existing.add(definition.name)
                created += 1

        logger.info(
            "holiday_categories_seeded",
            extra={"created_count": created, "defined_count": len(definitions)},
        )
        return created

    def list_categories(self, government_only: bool = False) -> list[HolidayCategory]:
        stmt = select(HolidayCategoryModel).order_by(
            HolidayCategoryModel.is_government.desc(), HolidayCategoryModel.name
        )
        if government_only:
            stmt = stmt.where(HolidayCategoryModel.is_government.is_(True))
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    def get_category(self, category_id: UUID) -> HolidayCategory:
        model = self._session.get(HolidayCategoryModel, category_id)
        if model is None:
            raise HolidayCategoryNotFoundError(str(category_id))
        return model.to_dto()

    def create_category(
        self,
        caller: Caller,
        name: str,
        description: str | None = None,
        is_government: bool = False,
    ) -> HolidayCategory:
        """Admin-only: add a category with a unique name."""
        require_role(caller, "create_holiday_category", (Role.ADMIN.value,))
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("name", "Category name must not be blank")

        with service_transaction(self._session, "create_holiday_category", ENTITY_TYPE):
            taken = self._session.execute(
                select(HolidayCategoryModel.id).where(
                    HolidayCategoryModel.name == clean_name
                )
            ).first()
            if taken is not None:
                raise DuplicateHolidayCategoryError(clean_name)
            model = HolidayCategoryModel(
                name=clean_name,
                description=description,
                is_government=is_government,
                created_by_id=caller.user_id,
            )
            self._session.add(model)
            self._session.flush()

        logger.info(
            "holiday_category_created",
            extra={
                "category_id": str(model.id),
                "category_name": clean_name,
                "is_government": is_government,
            },
        )
        return model.to_dto()

    # =========================================================================
    # Public holidays
    # =========================================================================

    def list_public_holidays(self, start: date, end: date) -> list[PublicHoliday]:
        """Public holidays from the configured provider in ``[start, end]``."""
        if start > end:
            raise ValidationError("start", "Start date must not be after end date")
        provider = self._holidays or get_active_config().holiday_provider()

        found: list[PublicHoliday] = []
        year, month = start.year, start.month
        while (year, month) <= (end.year, end.month):
            for day, name in sorted(provider.holidays_in_month(year, month).items()):
                if start <= day <= end:
                    found.append(PublicHoliday(holiday_date=day, name=name))
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        return found
