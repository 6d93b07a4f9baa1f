# salon_scheduler/models.py

from typing import Optional, List
from datetime import datetime, timezone

from sqlalchemy import Index
from sqlalchemy.types import JSON, DateTime, TypeDecorator
from sqlmodel import SQLModel, Field, Column

from salon_scheduler.core import to_utc


class UTCDateTime(TypeDecorator):
    """Stores datetimes as naive UTC and hands them back as aware UTC.

    SQLite has no timezone support, so offsets are normalised on the way in.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Appointment(SQLModel, table=True):
    __table_args__ = (
        Index("ix_appointment_staff_start", "staff_id", "start_time"),
    )

    id: Optional[str] = Field(default=None, primary_key=True)

    client_id: str = Field(index=True)
    staff_id: Optional[str] = Field(default=None, index=True)
    start_time: datetime = Field(sa_column=Column(UTCDateTime, nullable=False, index=True))
    end_time: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))
    service_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    status: str = "pending"

    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    total_price: Optional[float] = None
    deposit_paid: bool = False
    deposit_amount: Optional[float] = None
    has_unread_messages: bool = False
    is_recurring: bool = False

    cancellation_reason: Optional[str] = None
    canceled_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))

    created_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    updated_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))


# Owned by the staff/client/service collaborators; this service only reads them.

class Staff(SQLModel, table=True):
    id: str = Field(primary_key=True)
    display_name: str
    is_active: bool = True
    color: Optional[str] = None


class Client(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str


class Service(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str
    duration: int  # minutes
    price: float
