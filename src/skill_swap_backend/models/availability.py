'''
Availability API Models
'''
import datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .user import UserRead

# Same bounds as the time_slot database column
TimeSlotStr = Annotated[str, Field(min_length=1, max_length=32)]


# --- Slots ---

class AvailabilitySlotCreate(BaseModel):
    """
    A single dated slot as submitted by the frontend.
    'is_booked' is never accepted from clients; new slots are always free.
    """
    date: datetime.date
    time_slot: str = Field(..., min_length=1, max_length=32, description="e.g. '09:00-10:00'")
    notes: Optional[str] = Field(None, max_length=200)


class AvailabilitySlotRead(BaseModel):
    date: datetime.date
    time_slot: str
    is_booked: bool
    booked_by: Optional[UUID] = None
    connection_id: Optional[UUID] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# --- Recurring templates ---

class RecurringAvailabilityBase(BaseModel):
    """
    A weekday template. 'day_of_week' is validated by the service
    (0=Sunday .. 6=Saturday) so a whole batch can be rejected at once.
    """
    day_of_week: int
    time_slots: list[TimeSlotStr] = Field(default_factory=list)
    is_active: bool = True


class RecurringAvailabilityRead(RecurringAvailabilityBase):
    model_config = ConfigDict(from_attributes=True)


# --- Whole record ---

class UserAvailabilitySet(BaseModel):
    """
    Payload for replacing a user's whole availability record.
    'timezone' is optional here so the service can report it as a domain error.
    """
    timezone: Optional[str] = None
    recurring_availability: list[RecurringAvailabilityBase] = Field(default_factory=list)
    available_slots: list[AvailabilitySlotCreate] = Field(default_factory=list)


class UserAvailabilityRead(BaseModel):
    id: UUID
    user_id: UUID
    timezone: str
    recurring_availability: list[RecurringAvailabilityRead]
    available_slots: list[AvailabilitySlotRead]

    model_config = ConfigDict(from_attributes=True)


class AvailabilitySlotsAdd(BaseModel):
    slots: list[AvailabilitySlotCreate]


class RecurringAvailabilitySet(BaseModel):
    recurring_availability: list[RecurringAvailabilityBase]


# --- Generation ---

class GenerateSlotsRequest(BaseModel):
    start_date: datetime.date
    end_date: datetime.date


class BulkGenerateConfig(BaseModel):
    start_date: datetime.date
    end_date: datetime.date
    days_of_week: list[int] = Field(..., description="0=Sunday .. 6=Saturday")
    time_slots: list[TimeSlotStr]
    exclude_dates: list[datetime.date] = Field(default_factory=list)


# --- Query responses ---

class SlotListRead(BaseModel):
    slots: list[AvailabilitySlotRead]
    total: int


class CommonAvailabilityRead(BaseModel):
    common_availability: list[AvailabilitySlotRead]
    total: int
    current_user: UserRead
    other_user: UserRead


class SlotCheckRead(BaseModel):
    user_id: UUID
    date: datetime.date
    time_slot: str
    is_available: bool
