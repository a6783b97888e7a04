'''
Persistence for a user's availability record.

No business rules live here (past dates, range caps, booking guards across
users); the AvailabilityService and ConnectionService own those. What this
layer does guarantee is per-row consistency: a user never holds two slots for
the same (date, time_slot) and a slot is only booked if it exists and is free.
'''
import datetime
from typing import Annotated, Iterable, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..models import availability as availability_models
from ..common.logger import log


class AvailabilityStore:
    """
    Reads and writes UserAvailability records with their templates and slots.
    Every write flushes so later reads in the same unit of work see it.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- Reads ---

    async def find_by_user_id(self, user_id: UUID) -> Optional[db_models.UserAvailability]:
        """Fetches the full record (templates and slots eager-loaded) or None."""
        stmt = select(db_models.UserAvailability).options(
            selectinload(db_models.UserAvailability.recurring_availability),
            selectinload(db_models.UserAvailability.available_slots)
        ).filter(
            db_models.UserAvailability.user_id == user_id
        ).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_slots(
        self,
        user_id: UUID,
        start_date: datetime.date,
        end_date: datetime.date,
        booked: Optional[bool] = None
    ) -> list[db_models.AvailabilitySlots]:
        """
        Slots dated within [start_date, end_date], in slot order (date, then insertion).
        booked=None returns both booked and free slots.
        """
        stmt = select(db_models.AvailabilitySlots).join(
            db_models.UserAvailability,
            db_models.AvailabilitySlots.availability_id == db_models.UserAvailability.id
        ).filter(
            db_models.UserAvailability.user_id == user_id,
            db_models.AvailabilitySlots.date >= start_date,
            db_models.AvailabilitySlots.date <= end_date
        )
        if booked is not None:
            stmt = stmt.filter(db_models.AvailabilitySlots.is_booked == booked)
        stmt = stmt.order_by(db_models.AvailabilitySlots.date, db_models.AvailabilitySlots.id)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_slot(
        self,
        user_id: UUID,
        date: datetime.date,
        time_slot: str,
        for_update: bool = False
    ) -> Optional[db_models.AvailabilitySlots]:
        stmt = select(db_models.AvailabilitySlots).join(
            db_models.UserAvailability,
            db_models.AvailabilitySlots.availability_id == db_models.UserAvailability.id
        ).filter(
            db_models.UserAvailability.user_id == user_id,
            db_models.AvailabilitySlots.date == date,
            db_models.AvailabilitySlots.time_slot == time_slot
        )
        if for_update:
            # Row lock on PostgreSQL; SQLite ignores it.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return result.scalars().first()

    # --- Whole-record writes ---

    async def _get_or_create(self, user_id: UUID, timezone: str = 'UTC') -> db_models.UserAvailability:
        record = await self.find_by_user_id(user_id)
        if record is None:
            log.info(f"Creating availability record for user {user_id}.")
            record = db_models.UserAvailability(
                user_id=user_id,
                timezone=timezone,
                recurring_availability=[],
                available_slots=[]
            )
            self.db.add(record)
            await self.db.flush()
        return record

    @staticmethod
    def _build_templates(
        templates: Iterable[availability_models.RecurringAvailabilityBase]
    ) -> list[db_models.RecurringAvailability]:
        return [
            db_models.RecurringAvailability(
                day_of_week=template.day_of_week,
                time_slots=list(dict.fromkeys(template.time_slots)),
                is_active=template.is_active
            )
            for template in templates
        ]

    def _append_new_slots(
        self,
        record: db_models.UserAvailability,
        slots: Iterable[availability_models.AvailabilitySlotCreate]
    ) -> int:
        """Appends unbooked slots whose (date, time_slot) the record does not hold yet."""
        existing_keys = {slot.key for slot in record.available_slots}
        added = 0
        for slot in slots:
            key = (slot.date, slot.time_slot)
            if key in existing_keys:
                continue
            existing_keys.add(key)
            record.available_slots.append(db_models.AvailabilitySlots(
                date=slot.date,
                time_slot=slot.time_slot,
                notes=slot.notes,
                is_booked=False
            ))
            added += 1
        return added

    async def upsert(
        self,
        user_id: UUID,
        timezone: str,
        templates: Iterable[availability_models.RecurringAvailabilityBase] = (),
        slots: Iterable[availability_models.AvailabilitySlotCreate] = ()
    ) -> db_models.UserAvailability:
        """
        Creates or replaces the record. Booked slots survive the replacement
        so that no counterpart booking is left orphaned.
        """
        record = await self._get_or_create(user_id, timezone)
        record.timezone = timezone
        record.recurring_availability = self._build_templates(templates)

        for slot in [s for s in record.available_slots if not s.is_booked]:
            record.available_slots.remove(slot)
        # The deletes must hit the database before re-inserting the same keys.
        await self.db.flush()

        self._append_new_slots(record, slots)
        await self.db.flush()
        return await self.find_by_user_id(user_id)

    async def set_recurring(
        self,
        user_id: UUID,
        templates: Iterable[availability_models.RecurringAvailabilityBase]
    ) -> db_models.UserAvailability:
        record = await self._get_or_create(user_id)
        record.recurring_availability = self._build_templates(templates)
        await self.db.flush()
        return await self.find_by_user_id(user_id)

    # --- Slot writes ---

    async def add_slots(
        self,
        user_id: UUID,
        slots: Iterable[availability_models.AvailabilitySlotCreate]
    ) -> tuple[db_models.UserAvailability, int]:
        """Returns the refreshed record and how many slots were actually added."""
        record = await self._get_or_create(user_id)
        added = self._append_new_slots(record, slots)
        await self.db.flush()
        log.info(f"Added {added} new slots for user {user_id}.")
        return await self.find_by_user_id(user_id), added

    async def remove_slot(self, user_id: UUID, date: datetime.date, time_slot: str) -> bool:
        record = await self.find_by_user_id(user_id)
        if record is None:
            return False
        for slot in record.available_slots:
            if slot.key == (date, time_slot):
                record.available_slots.remove(slot)
                await self.db.flush()
                return True
        return False

    async def book_slot(
        self,
        user_id: UUID,
        date: datetime.date,
        time_slot: str,
        booked_by: UUID,
        connection_id: UUID
    ) -> bool:
        """Marks a free slot as booked. False if the slot is missing or already taken."""
        slot = await self.find_slot(user_id, date, time_slot, for_update=True)
        if slot is None or slot.is_booked:
            log.warning(f"Cannot book {date} {time_slot} for user {user_id}: slot missing or already booked.")
            return False

        slot.is_booked = True
        slot.booked_by = booked_by
        slot.connection_id = connection_id
        await self.db.flush()
        return True

    async def unbook_slot(
        self,
        user_id: UUID,
        date: datetime.date,
        time_slot: str,
        connection_id: Optional[UUID] = None
    ) -> bool:
        """
        Releases a booked slot. With a connection_id, only a booking owned by
        that connection is released.
        """
        slot = await self.find_slot(user_id, date, time_slot, for_update=True)
        if slot is None or not slot.is_booked:
            return False
        if connection_id is not None and slot.connection_id != connection_id:
            log.warning(
                f"Not unbooking {date} {time_slot} for user {user_id}: "
                f"owned by connection {slot.connection_id}, not {connection_id}."
            )
            return False

        slot.is_booked = False
        slot.booked_by = None
        slot.connection_id = None
        await self.db.flush()
        return True
