'''
Connection lifecycle and two-sided session scheduling.
'''
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import IntegrityError

from ..common.config import settings
from ..common.exceptions import (
    BookingFailedError,
    ConnectionExistsError,
    ConnectionNotFoundError,
    NotAcceptedError,
    NotAuthorizedError,
    NotPendingError,
    NotScheduledError,
    SelfConnectionError,
    SlotNotFoundError,
    SlotNotMutuallyAvailableError,
)
from ..common.logger import log
from ..database import models as db_models
from ..database.db_enums import ConnectionStatus, SessionStatus
from ..models import connection as connection_models
from .availability_store import AvailabilityStore
from .booking import SlotBookingSaga
from .connection_store import ConnectionStore
from .user_service import UserService


class ConnectionService:
    """
    Service for connection requests, their state machine and the sessions
    scheduled inside an accepted connection.
    """
    def __init__(
        self,
        connection_store: Annotated[ConnectionStore, Depends(ConnectionStore)],
        availability_store: Annotated[AvailabilityStore, Depends(AvailabilityStore)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.connection_store = connection_store
        self.availability_store = availability_store
        self.user_service = user_service

    # --- Helpers ---

    @staticmethod
    def _to_read(connection: db_models.Connections) -> connection_models.ConnectionRead:
        return connection_models.ConnectionRead.model_validate(connection)

    def _to_list(self, connections: list[db_models.Connections]) -> connection_models.ConnectionListRead:
        return connection_models.ConnectionListRead(
            connections=[self._to_read(c) for c in connections],
            total=len(connections)
        )

    async def _get_existing(self, connection_id: UUID) -> db_models.Connections:
        connection = await self.connection_store.get_by_id(connection_id)
        if connection is None:
            log.warning(f"Connection {connection_id} not found.")
            raise ConnectionNotFoundError()
        return connection

    @staticmethod
    def _ensure_party(connection: db_models.Connections, user_id: UUID) -> None:
        if not connection.is_party(user_id):
            log.warning(f"User {user_id} is not a party to connection {connection.id}.")
            raise NotAuthorizedError()

    @staticmethod
    def _get_session(connection: db_models.Connections, index: int) -> db_models.ScheduledSessions:
        if index < 0 or index >= len(connection.scheduled_slots):
            log.warning(f"Session index {index} out of bounds for connection {connection.id}.")
            raise SlotNotFoundError("Scheduled session not found.")
        return connection.scheduled_slots[index]

    async def _release_session_slots(
        self,
        connection: db_models.Connections,
        session: db_models.ScheduledSessions
    ) -> None:
        """
        Unbooks both participants' slots for a session. Each side is released
        independently; a failure on one side is logged and does not stop the other.
        """
        for user_id in (connection.requester_id, connection.recipient_id):
            try:
                released = await self.availability_store.unbook_slot(
                    user_id, session.date, session.time_slot, connection_id=connection.id
                )
                if not released:
                    log.warning(
                        f"No booking to release for user {user_id} on {session.date} "
                        f"{session.time_slot} (connection {connection.id})."
                    )
            except Exception as e:
                log.error(
                    f"Failed to release slot for user {user_id} on {session.date} "
                    f"{session.time_slot}: {e}",
                    exc_info=True
                )

    # --- Requests and state transitions ---

    async def create_connection_request(
        self,
        requester_id: UUID,
        data: connection_models.ConnectionCreate
    ) -> connection_models.ConnectionRead:
        log.info(f"User {requester_id} requesting a {data.connection_type.value} connection with {data.recipient_id}.")
        if requester_id == data.recipient_id:
            raise SelfConnectionError()

        await self.user_service.get_existing_user(data.recipient_id)

        if await self.connection_store.find_between(requester_id, data.recipient_id) is not None:
            log.warning(f"Connection between {requester_id} and {data.recipient_id} already exists.")
            raise ConnectionExistsError()

        try:
            connection = await self.connection_store.create(
                requester_id=requester_id,
                recipient_id=data.recipient_id,
                status=ConnectionStatus.PENDING.value,
                connection_type=data.connection_type.value,
                message=data.message,
                skills_offered=list(data.skills_offered),
                skills_requested=list(data.skills_requested)
            )
        except IntegrityError as e:
            # A concurrent request for the same pair won the unique pair_key.
            log.warning(f"Duplicate connection detected at insert time: {e}")
            raise ConnectionExistsError() from e

        log.info(f"Created connection {connection.id}.")
        return self._to_read(connection)

    async def _respond(
        self,
        connection_id: UUID,
        acting_user_id: UUID,
        new_status: ConnectionStatus
    ) -> connection_models.ConnectionRead:
        connection = await self._get_existing(connection_id)
        if connection.recipient_id != acting_user_id:
            log.warning(f"User {acting_user_id} is not the recipient of connection {connection_id}.")
            raise NotAuthorizedError("Only the recipient can respond to a connection request.")
        if connection.status != ConnectionStatus.PENDING.value:
            raise NotPendingError()

        connection = await self.connection_store.set_status(connection, new_status)
        log.info(f"Connection {connection_id} is now {new_status.value}.")
        return self._to_read(connection)

    async def accept_connection(self, connection_id: UUID, acting_user_id: UUID) -> connection_models.ConnectionRead:
        return await self._respond(connection_id, acting_user_id, ConnectionStatus.ACCEPTED)

    async def decline_connection(self, connection_id: UUID, acting_user_id: UUID) -> connection_models.ConnectionRead:
        return await self._respond(connection_id, acting_user_id, ConnectionStatus.DECLINED)

    async def cancel_connection(self, connection_id: UUID, acting_user_id: UUID) -> connection_models.ConnectionRead:
        """
        Either party may cancel. Every still-scheduled session has its bookings
        released on both sides and is marked cancelled before the connection is.
        """
        connection = await self._get_existing(connection_id)
        self._ensure_party(connection, acting_user_id)
        log.info(f"User {acting_user_id} cancelling connection {connection_id}.")

        for index, session in enumerate(list(connection.scheduled_slots)):
            if session.status != SessionStatus.SCHEDULED.value:
                continue
            await self._release_session_slots(connection, session)
            connection = await self.connection_store.update_session(
                connection, index, status=SessionStatus.CANCELLED.value
            )

        connection = await self.connection_store.set_status(connection, ConnectionStatus.CANCELLED)
        return self._to_read(connection)

    # --- Sessions ---

    async def schedule_session(
        self,
        connection_id: UUID,
        acting_user_id: UUID,
        data: connection_models.ScheduledSessionCreate
    ) -> connection_models.ConnectionRead:
        """
        Books (date, time_slot) for both parties and records the session.

        Both bookings and the session append run as a saga: if any step fails
        after the availability check, the bookings already made are released
        and BookingFailedError is raised.
        """
        connection = await self._get_existing(connection_id)
        if connection.status != ConnectionStatus.ACCEPTED.value:
            raise NotAcceptedError()
        self._ensure_party(connection, acting_user_id)
        other_user_id = connection.other_party(acting_user_id)

        for user_id in (acting_user_id, other_user_id):
            free_slots = await self.availability_store.list_slots(user_id, data.date, data.date, booked=False)
            if not any(slot.time_slot == data.time_slot for slot in free_slots):
                log.warning(f"{data.date} {data.time_slot} is not free for user {user_id}.")
                raise SlotNotMutuallyAvailableError()

        saga = SlotBookingSaga(self.availability_store, connection.id, data.date, data.time_slot)
        try:
            await saga.book(acting_user_id, counterpart_id=other_user_id)
            await saga.book(other_user_id, counterpart_id=acting_user_id)
            connection = await self.connection_store.add_session(
                connection,
                date=data.date,
                time_slot=data.time_slot,
                duration=data.duration or settings.DEFAULT_SESSION_DURATION_MINS,
                meeting_link=data.meeting_link,
                notes=data.notes
            )
        except BookingFailedError:
            await saga.compensate()
            raise
        except Exception as e:
            log.error(f"Scheduling session for connection {connection_id} failed: {e}", exc_info=True)
            await saga.compensate()
            raise BookingFailedError() from e

        log.info(f"Scheduled session on {data.date} {data.time_slot} for connection {connection_id}.")
        return self._to_read(connection)

    async def cancel_session(
        self,
        connection_id: UUID,
        index: int,
        acting_user_id: UUID
    ) -> connection_models.ConnectionRead:
        connection = await self._get_existing(connection_id)
        self._ensure_party(connection, acting_user_id)
        session = self._get_session(connection, index)
        if session.status != SessionStatus.SCHEDULED.value:
            raise NotScheduledError()

        log.info(f"User {acting_user_id} cancelling session {index} of connection {connection_id}.")
        await self._release_session_slots(connection, session)
        connection = await self.connection_store.update_session(
            connection, index, status=SessionStatus.CANCELLED.value
        )
        return self._to_read(connection)

    async def complete_session(
        self,
        connection_id: UUID,
        index: int,
        acting_user_id: UUID,
        notes: Optional[str] = None
    ) -> connection_models.ConnectionRead:
        """Marks a session completed. Its slots stay booked."""
        connection = await self._get_existing(connection_id)
        self._ensure_party(connection, acting_user_id)
        session = self._get_session(connection, index)
        if session.status != SessionStatus.SCHEDULED.value:
            raise NotScheduledError()

        fields = {'status': SessionStatus.COMPLETED.value}
        if notes is not None:
            fields['notes'] = notes
        connection = await self.connection_store.update_session(connection, index, **fields)
        log.info(f"Session {index} of connection {connection_id} completed.")
        return self._to_read(connection)

    # --- Reads ---

    async def get_connection(self, connection_id: UUID, acting_user_id: UUID) -> connection_models.ConnectionRead:
        connection = await self._get_existing(connection_id)
        self._ensure_party(connection, acting_user_id)
        return self._to_read(connection)

    async def get_user_connections(
        self,
        user_id: UUID,
        status: Optional[ConnectionStatus] = None
    ) -> connection_models.ConnectionListRead:
        log.info(f"Listing connections for user {user_id} (status={status}).")
        return self._to_list(await self.connection_store.list_for_user(user_id, status))

    async def get_pending_requests(self, user_id: UUID) -> connection_models.ConnectionListRead:
        return self._to_list(await self.connection_store.list_pending_received(user_id))

    async def get_sent_requests(self, user_id: UUID) -> connection_models.ConnectionListRead:
        return self._to_list(await self.connection_store.list_pending_sent(user_id))

    async def list_all_connections(self, status: Optional[ConnectionStatus] = None) -> connection_models.ConnectionListRead:
        log.info(f"Admin listing all connections (status={status}).")
        return self._to_list(await self.connection_store.list_all(status))
