'''
Persistence for connections and their scheduled sessions.
'''
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import ConnectionStatus, SessionStatus


class ConnectionStore:
    """
    Reads and writes Connections. Every read eager-loads both parties and the
    scheduled sessions, so results can be serialized straight to ConnectionRead.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    def _base_stmt(self):
        return select(db_models.Connections).options(
            selectinload(db_models.Connections.requester),
            selectinload(db_models.Connections.recipient),
            selectinload(db_models.Connections.scheduled_slots)
        ).execution_options(populate_existing=True)

    async def _list(self, stmt) -> list[db_models.Connections]:
        stmt = stmt.order_by(db_models.Connections.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # --- Reads ---

    async def get_by_id(self, connection_id: UUID) -> Optional[db_models.Connections]:
        stmt = self._base_stmt().filter(db_models.Connections.id == connection_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_between(self, user_a: UUID, user_b: UUID) -> Optional[db_models.Connections]:
        """Any connection for the unordered pair, whatever its status or direction."""
        pair_key = db_models.Connections.make_pair_key(user_a, user_b)
        stmt = select(db_models.Connections).filter(db_models.Connections.pair_key == pair_key)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_for_user(self, user_id: UUID, status: Optional[ConnectionStatus] = None) -> list[db_models.Connections]:
        stmt = self._base_stmt().filter(or_(
            db_models.Connections.requester_id == user_id,
            db_models.Connections.recipient_id == user_id
        ))
        if status is not None:
            stmt = stmt.filter(db_models.Connections.status == status.value)
        return await self._list(stmt)

    async def list_pending_received(self, user_id: UUID) -> list[db_models.Connections]:
        stmt = self._base_stmt().filter(
            db_models.Connections.recipient_id == user_id,
            db_models.Connections.status == ConnectionStatus.PENDING.value
        )
        return await self._list(stmt)

    async def list_pending_sent(self, user_id: UUID) -> list[db_models.Connections]:
        stmt = self._base_stmt().filter(
            db_models.Connections.requester_id == user_id,
            db_models.Connections.status == ConnectionStatus.PENDING.value
        )
        return await self._list(stmt)

    async def list_all(self, status: Optional[ConnectionStatus] = None) -> list[db_models.Connections]:
        stmt = self._base_stmt()
        if status is not None:
            stmt = stmt.filter(db_models.Connections.status == status.value)
        return await self._list(stmt)

    # --- Writes ---

    async def create(self, **fields: Any) -> db_models.Connections:
        connection = db_models.Connections(
            pair_key=db_models.Connections.make_pair_key(fields['requester_id'], fields['recipient_id']),
            scheduled_slots=[],
            **fields
        )
        self.db.add(connection)
        await self.db.flush()
        return await self.get_by_id(connection.id)

    async def set_status(self, connection: db_models.Connections, status: ConnectionStatus) -> db_models.Connections:
        connection.status = status.value
        await self.db.flush()
        return await self.get_by_id(connection.id)

    async def add_session(self, connection: db_models.Connections, **fields: Any) -> db_models.Connections:
        """Appends a 'scheduled' session at the end of the connection's list."""
        connection.scheduled_slots.append(db_models.ScheduledSessions(
            position=len(connection.scheduled_slots),
            status=SessionStatus.SCHEDULED.value,
            **fields
        ))
        await self.db.flush()
        return await self.get_by_id(connection.id)

    async def update_session(
        self,
        connection: db_models.Connections,
        index: int,
        **fields: Any
    ) -> db_models.Connections:
        session = connection.scheduled_slots[index]
        for key, value in fields.items():
            setattr(session, key, value)
        await self.db.flush()
        return await self.get_by_id(connection.id)
