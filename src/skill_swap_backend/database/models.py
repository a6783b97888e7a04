from typing import Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, Date, DateTime, Enum, ForeignKeyConstraint, Integer, PrimaryKeyConstraint, SmallInteger, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import uuid

from .db_enums import ConnectionStatus, ConnectionType, SessionStatus


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    pass


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(Text)
    image: Mapped[Optional[str]] = mapped_column(Text)
    level: Mapped[int] = mapped_column(Integer, default=1, server_default=text('1'))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text('true'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)

    availability: Mapped[Optional['UserAvailability']] = relationship('UserAvailability', back_populates='user', uselist=False)


class UserAvailability(Base):
    __tablename__ = 'user_availability'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='user_availability_user_id_fkey'),
        PrimaryKeyConstraint('id', name='user_availability_pkey'),
        UniqueConstraint('user_id', name='user_availability_user_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    timezone: Mapped[str] = mapped_column(Text, default='UTC', server_default=text("'UTC'"))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)

    user: Mapped['Users'] = relationship('Users', back_populates='availability')
    recurring_availability: Mapped[list['RecurringAvailability']] = relationship(
        'RecurringAvailability',
        back_populates='availability',
        cascade='all, delete-orphan',
        order_by='RecurringAvailability.id'
    )
    available_slots: Mapped[list['AvailabilitySlots']] = relationship(
        'AvailabilitySlots',
        back_populates='availability',
        cascade='all, delete-orphan',
        order_by=lambda: [AvailabilitySlots.date, AvailabilitySlots.id]
    )


class RecurringAvailability(Base):
    __tablename__ = 'recurring_availability'
    __table_args__ = (
        CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='recurring_availability_day_of_week_check'),
        ForeignKeyConstraint(['availability_id'], ['user_availability.id'], ondelete='CASCADE', name='recurring_availability_availability_id_fkey'),
        PrimaryKeyConstraint('id', name='recurring_availability_pkey')
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    availability_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    day_of_week: Mapped[int] = mapped_column(SmallInteger)  # 0=Sunday .. 6=Saturday
    time_slots: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text('true'))

    availability: Mapped['UserAvailability'] = relationship('UserAvailability', back_populates='recurring_availability')


class Connections(Base):
    __tablename__ = 'connections'
    __table_args__ = (
        CheckConstraint('requester_id <> recipient_id', name='connections_not_self_check'),
        ForeignKeyConstraint(['requester_id'], ['users.id'], ondelete='CASCADE', name='connections_requester_id_fkey'),
        ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE', name='connections_recipient_id_fkey'),
        PrimaryKeyConstraint('id', name='connections_pkey'),
        UniqueConstraint('pair_key', name='connections_pair_key_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    recipient_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    # Order-independent "low|high" key of the two user ids
    pair_key: Mapped[str] = mapped_column(String(73))
    status: Mapped[str] = mapped_column(Enum(*ConnectionStatus.get_all_names(), name='connection_status_enum'), default='pending')
    connection_type: Mapped[str] = mapped_column(Enum(*ConnectionType.get_all_names(), name='connection_type_enum'))
    message: Mapped[Optional[str]] = mapped_column(String(500))
    skills_offered: Mapped[list] = mapped_column(JSON, default=list)
    skills_requested: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)

    requester: Mapped['Users'] = relationship('Users', foreign_keys='[Connections.requester_id]')
    recipient: Mapped['Users'] = relationship('Users', foreign_keys='[Connections.recipient_id]')
    scheduled_slots: Mapped[list['ScheduledSessions']] = relationship(
        'ScheduledSessions',
        back_populates='connection',
        cascade='all, delete-orphan',
        order_by='ScheduledSessions.position'
    )

    @staticmethod
    def make_pair_key(user_a: uuid.UUID, user_b: uuid.UUID) -> str:
        return '|'.join(sorted([str(user_a), str(user_b)]))

    def is_party(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.requester_id, self.recipient_id)

    def other_party(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.recipient_id if user_id == self.requester_id else self.requester_id


class AvailabilitySlots(Base):
    __tablename__ = 'availability_slots'
    __table_args__ = (
        CheckConstraint(
            '(is_booked AND booked_by IS NOT NULL AND connection_id IS NOT NULL) OR '
            '(NOT is_booked AND booked_by IS NULL AND connection_id IS NULL)',
            name='availability_slots_booking_refs_check'
        ),
        ForeignKeyConstraint(['availability_id'], ['user_availability.id'], ondelete='CASCADE', name='availability_slots_availability_id_fkey'),
        ForeignKeyConstraint(['booked_by'], ['users.id'], name='availability_slots_booked_by_fkey'),
        ForeignKeyConstraint(['connection_id'], ['connections.id'], name='availability_slots_connection_id_fkey'),
        PrimaryKeyConstraint('id', name='availability_slots_pkey'),
        UniqueConstraint('availability_id', 'date', 'time_slot', name='availability_slots_date_time_slot_key')
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    availability_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    date: Mapped[datetime.date] = mapped_column(Date)
    time_slot: Mapped[str] = mapped_column(String(32))  # e.g. "09:00-10:00"
    is_booked: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text('false'))
    booked_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    connection_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    notes: Mapped[Optional[str]] = mapped_column(String(200))

    availability: Mapped['UserAvailability'] = relationship('UserAvailability', back_populates='available_slots')

    @property
    def key(self) -> tuple[datetime.date, str]:
        return (self.date, self.time_slot)


class ScheduledSessions(Base):
    __tablename__ = 'scheduled_sessions'
    __table_args__ = (
        CheckConstraint('duration > 0', name='scheduled_sessions_duration_check'),
        ForeignKeyConstraint(['connection_id'], ['connections.id'], ondelete='CASCADE', name='scheduled_sessions_connection_id_fkey'),
        PrimaryKeyConstraint('id', name='scheduled_sessions_pkey'),
        UniqueConstraint('connection_id', 'position', name='scheduled_sessions_connection_id_position_key')
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    connection_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    position: Mapped[int] = mapped_column(Integer)
    date: Mapped[datetime.date] = mapped_column(Date)
    time_slot: Mapped[str] = mapped_column(String(32))
    duration: Mapped[int] = mapped_column(Integer, default=60, server_default=text('60'))  # minutes
    status: Mapped[str] = mapped_column(Enum(*SessionStatus.get_all_names(), name='session_status_enum'), default='scheduled')
    meeting_link: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(String(1000))

    connection: Mapped['Connections'] = relationship('Connections', back_populates='scheduled_slots')
