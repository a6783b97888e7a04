'''
Two-sided slot booking with compensation.
'''
import datetime
from uuid import UUID

from ..common.exceptions import BookingFailedError
from ..common.logger import log
from .availability_store import AvailabilityStore


class SlotBookingSaga:
    """
    Books the same (date, time_slot) for each participant of a connection.

    Every successful booking is remembered; if a later step fails the caller
    runs compensate(), which releases only those bookings, newest first,
    exactly once. Releases are scoped to this connection so a step that lost
    a race never frees somebody else's booking.
    """
    def __init__(
        self,
        store: AvailabilityStore,
        connection_id: UUID,
        date: datetime.date,
        time_slot: str
    ):
        self.store = store
        self.connection_id = connection_id
        self.date = date
        self.time_slot = time_slot
        self._booked_user_ids: list[UUID] = []

    @property
    def booked_user_ids(self) -> list[UUID]:
        return list(self._booked_user_ids)

    async def book(self, user_id: UUID, counterpart_id: UUID) -> None:
        """Books user_id's slot for counterpart_id. Raises BookingFailedError if it is gone."""
        booked = await self.store.book_slot(
            user_id,
            self.date,
            self.time_slot,
            booked_by=counterpart_id,
            connection_id=self.connection_id
        )
        if not booked:
            log.warning(
                f"Booking step failed for user {user_id} on {self.date} {self.time_slot} "
                f"(connection {self.connection_id})."
            )
            raise BookingFailedError()
        self._booked_user_ids.append(user_id)

    async def compensate(self) -> None:
        """Releases every booking made so far. Failures are logged, never retried."""
        while self._booked_user_ids:
            user_id = self._booked_user_ids.pop()
            try:
                released = await self.store.unbook_slot(
                    user_id, self.date, self.time_slot, connection_id=self.connection_id
                )
                if not released:
                    log.error(
                        f"Compensation found nothing to release for user {user_id} "
                        f"on {self.date} {self.time_slot}."
                    )
                else:
                    log.info(f"Compensated booking for user {user_id} on {self.date} {self.time_slot}.")
            except Exception as e:
                log.error(
                    f"Compensation failed for user {user_id} on {self.date} {self.time_slot}: {e}",
                    exc_info=True
                )
