'''
Connection & Scheduled Session API Models
'''
import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import ConnectionStatus, ConnectionType, SessionStatus
from .user import UserRead


class ConnectionCreate(BaseModel):
    """
    Payload for a new connection request.
    The requester is never taken from the body; it is the authenticated user.
    """
    recipient_id: UUID
    connection_type: ConnectionType
    message: Optional[str] = Field(None, max_length=500)
    skills_offered: list[str] = Field(default_factory=list)
    skills_requested: list[str] = Field(default_factory=list)


class ScheduledSessionCreate(BaseModel):
    date: datetime.date
    time_slot: str = Field(..., min_length=1, max_length=32)
    duration: Optional[int] = Field(None, gt=0, description="Minutes. Defaults to the configured session length.")
    meeting_link: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)


class ScheduledSessionRead(BaseModel):
    """
    A session inside a connection. 'position' is its index in the
    connection's 'scheduled_slots' list and is how clients address it.
    """
    position: int
    date: datetime.date
    time_slot: str
    duration: int
    status: SessionStatus
    meeting_link: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ConnectionRead(BaseModel):
    id: UUID
    requester: UserRead
    recipient: UserRead
    status: ConnectionStatus
    connection_type: ConnectionType
    message: Optional[str] = None
    skills_offered: list[str]
    skills_requested: list[str]
    scheduled_slots: list[ScheduledSessionRead]
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class ConnectionListRead(BaseModel):
    connections: list[ConnectionRead]
    total: int


# --- Actions ---

class ConnectionActionType(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"

class ConnectionListType(str, Enum):
    ALL = "all"
    RECEIVED = "received"
    SENT = "sent"

class SessionActionType(str, Enum):
    CANCEL = "cancel"
    COMPLETE = "complete"


class ConnectionAction(BaseModel):
    action: ConnectionActionType


class SessionAction(BaseModel):
    action: SessionActionType
    notes: Optional[str] = Field(None, max_length=1000)
