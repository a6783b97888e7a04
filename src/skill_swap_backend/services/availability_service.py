'''
Availability Service
'''
import datetime
from typing import Annotated, Iterable, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends

from ..common.config import settings
from ..common.exceptions import (
    AllSlotsInPastError,
    AvailabilityNotFoundError,
    InputValidationError,
    InvalidDayOfWeekError,
    InvalidRangeError,
    NoSlotsGeneratedError,
    RangeTooLargeError,
    SlotBookedError,
    SlotNotFoundError,
)
from ..common.logger import log
from ..core import slot_generator
from ..database.db_enums import SlotListType
from ..models import availability as availability_models
from .availability_store import AvailabilityStore


class AvailabilityService:
    """
    Service for all reads and writes of a user's availability.
    Enforces the rules the store does not: required timezone, weekday bounds,
    future-only slots, date-range limits and booked-slot protection.
    """
    def __init__(self, store: Annotated[AvailabilityStore, Depends(AvailabilityStore)]):
        self.store = store

    # --- Helpers ---

    @staticmethod
    def _today(user_timezone: Optional[str]) -> datetime.date:
        """Today's date as seen from the user's timezone (UTC if unknown)."""
        tz = datetime.timezone.utc
        if user_timezone:
            try:
                tz = ZoneInfo(user_timezone)
            except (ZoneInfoNotFoundError, ValueError):
                log.warning(f"Invalid timezone '{user_timezone}', defaulting to UTC.")
        return datetime.datetime.now(tz).date()

    @staticmethod
    def _validate_range(start_date: datetime.date, end_date: datetime.date) -> None:
        if start_date > end_date:
            raise InvalidRangeError()
        max_days = settings.MAX_AVAILABILITY_RANGE_DAYS
        if (end_date - start_date).days > max_days:
            raise RangeTooLargeError(f"Date range too large. Maximum {max_days} days allowed.")

    @staticmethod
    def _validate_days_of_week(days: Iterable[int]) -> None:
        invalid = [day for day in days if not 0 <= day <= 6]
        if invalid:
            log.warning(f"Rejecting batch with invalid day_of_week values: {invalid}")
            raise InvalidDayOfWeekError()

    @staticmethod
    def _to_read(record) -> availability_models.UserAvailabilityRead:
        return availability_models.UserAvailabilityRead.model_validate(record)

    async def _get_record_timezone(self, user_id: UUID) -> Optional[str]:
        record = await self.store.find_by_user_id(user_id)
        return record.timezone if record else None

    # --- Whole record ---

    async def get_user_availability(self, user_id: UUID) -> Optional[availability_models.UserAvailabilityRead]:
        """Returns the full record, or None when the user never set availability."""
        log.info(f"Fetching availability for user {user_id}.")
        record = await self.store.find_by_user_id(user_id)
        if record is None:
            return None
        return self._to_read(record)

    async def set_user_availability(
        self,
        user_id: UUID,
        data: availability_models.UserAvailabilitySet
    ) -> availability_models.UserAvailabilityRead:
        log.info(f"User {user_id} replacing their availability record.")
        if not data.timezone or not data.timezone.strip():
            raise InputValidationError("timezone is required.")
        self._validate_days_of_week(t.day_of_week for t in data.recurring_availability)

        record = await self.store.upsert(
            user_id,
            data.timezone.strip(),
            templates=data.recurring_availability,
            slots=data.available_slots
        )
        return self._to_read(record)

    # --- Dated slots ---

    async def add_available_slots(
        self,
        user_id: UUID,
        slots: list[availability_models.AvailabilitySlotCreate]
    ) -> availability_models.UserAvailabilityRead:
        """
        Appends the slots dated strictly after today. Past and same-day slots
        are dropped; if nothing is left the whole call fails.
        """
        today = self._today(await self._get_record_timezone(user_id))
        future_slots = [slot for slot in slots if slot.date > today]

        if not future_slots:
            log.warning(f"User {user_id} submitted {len(slots)} slots, all in the past.")
            raise AllSlotsInPastError()
        if len(future_slots) < len(slots):
            log.info(f"Dropped {len(slots) - len(future_slots)} past slots for user {user_id}.")

        record, _ = await self.store.add_slots(user_id, future_slots)
        return self._to_read(record)

    async def remove_available_slot(self, user_id: UUID, date: datetime.date, time_slot: str) -> None:
        log.info(f"User {user_id} removing slot {date} {time_slot}.")
        record = await self.store.find_by_user_id(user_id)
        if record is None:
            raise SlotNotFoundError()

        slot = next((s for s in record.available_slots if s.key == (date, time_slot)), None)
        if slot is None:
            raise SlotNotFoundError()
        if slot.is_booked:
            log.warning(f"User {user_id} tried to remove booked slot {date} {time_slot}.")
            raise SlotBookedError()

        await self.store.remove_slot(user_id, date, time_slot)

    async def get_slots(
        self,
        user_id: UUID,
        start_date: datetime.date,
        end_date: datetime.date,
        list_type: SlotListType = SlotListType.AVAILABLE
    ) -> list[availability_models.AvailabilitySlotRead]:
        self._validate_range(start_date, end_date)
        booked = {
            SlotListType.AVAILABLE: False,
            SlotListType.BOOKED: True,
            SlotListType.ALL: None,
        }[list_type]
        slots = await self.store.list_slots(user_id, start_date, end_date, booked=booked)
        return [availability_models.AvailabilitySlotRead.model_validate(slot) for slot in slots]

    async def get_available_slots(
        self,
        user_id: UUID,
        start_date: datetime.date,
        end_date: datetime.date
    ) -> list[availability_models.AvailabilitySlotRead]:
        return await self.get_slots(user_id, start_date, end_date, SlotListType.AVAILABLE)

    async def get_user_booked_slots(
        self,
        user_id: UUID,
        start_date: datetime.date,
        end_date: datetime.date
    ) -> list[availability_models.AvailabilitySlotRead]:
        return await self.get_slots(user_id, start_date, end_date, SlotListType.BOOKED)

    async def is_slot_available(self, user_id: UUID, date: datetime.date, time_slot: str) -> bool:
        slot = await self.store.find_slot(user_id, date, time_slot)
        return slot is not None and not slot.is_booked

    # --- Recurring templates & generation ---

    async def set_recurring_availability(
        self,
        user_id: UUID,
        templates: list[availability_models.RecurringAvailabilityBase]
    ) -> availability_models.UserAvailabilityRead:
        log.info(f"User {user_id} setting {len(templates)} recurring templates.")
        self._validate_days_of_week(t.day_of_week for t in templates)
        record = await self.store.set_recurring(user_id, templates)
        return self._to_read(record)

    async def generate_slots_from_recurring(
        self,
        user_id: UUID,
        start_date: datetime.date,
        end_date: datetime.date
    ) -> availability_models.UserAvailabilityRead:
        """
        Materializes the active templates into dated slots for the range.
        Never goes back before today; re-running over the same range adds nothing.
        """
        if start_date > end_date:
            raise InvalidRangeError()

        record = await self.store.find_by_user_id(user_id)
        if record is None:
            raise AvailabilityNotFoundError()

        effective_start = max(start_date, self._today(record.timezone))
        new_keys = slot_generator.expand_recurring(
            record.recurring_availability,
            effective_start,
            end_date,
            existing_keys=[slot.key for slot in record.available_slots]
        )
        log.info(f"Generated {len(new_keys)} slots from recurring availability for user {user_id}.")

        if new_keys:
            record, _ = await self.store.add_slots(user_id, [
                availability_models.AvailabilitySlotCreate(date=date, time_slot=time_slot)
                for date, time_slot in new_keys
            ])
        return self._to_read(record)

    async def bulk_generate_slots(
        self,
        user_id: UUID,
        config: availability_models.BulkGenerateConfig
    ) -> availability_models.UserAvailabilityRead:
        if config.start_date > config.end_date:
            raise InvalidRangeError()
        self._validate_days_of_week(config.days_of_week)

        keys = slot_generator.expand_bulk(
            config.start_date,
            config.end_date,
            config.days_of_week,
            config.time_slots,
            config.exclude_dates
        )
        if not keys:
            raise NoSlotsGeneratedError()

        log.info(f"Bulk generating {len(keys)} slots for user {user_id}.")
        record, _ = await self.store.add_slots(user_id, [
            availability_models.AvailabilitySlotCreate(date=date, time_slot=time_slot)
            for date, time_slot in keys
        ])
        return self._to_read(record)

    # --- Cross-user ---

    async def get_common_availability(
        self,
        user_id_a: UUID,
        user_id_b: UUID,
        start_date: datetime.date,
        end_date: datetime.date
    ) -> list[availability_models.AvailabilitySlotRead]:
        """Free slots of user A whose (date, time_slot) is also free for user B, in A's order."""
        slots_a = await self.get_available_slots(user_id_a, start_date, end_date)
        slots_b = await self.get_available_slots(user_id_b, start_date, end_date)

        keys_b = {(slot.date, slot.time_slot) for slot in slots_b}
        return [slot for slot in slots_a if (slot.date, slot.time_slot) in keys_b]
