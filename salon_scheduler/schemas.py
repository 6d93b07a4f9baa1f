# salon_scheduler/schemas.py

from datetime import datetime, date as Date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    checked_in = "checked-in"
    in_progress = "in-progress"
    completed = "completed"
    canceled = "canceled"
    no_show = "no-show"


class CalendarView(str, Enum):
    day = "day"
    week = "week"
    month = "month"


class ApiModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AppointmentCreate(ApiModel):
    client_id: str
    staff_id: Optional[str] = None
    start_time: datetime
    # derived from the services' durations when omitted
    end_time: Optional[datetime] = None
    service_ids: List[str] = Field(default_factory=list)
    status: AppointmentStatus = AppointmentStatus.pending
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    total_price: Optional[float] = None
    deposit_paid: bool = False
    deposit_amount: Optional[float] = None
    has_unread_messages: bool = False
    is_recurring: bool = False


class AppointmentUpdate(ApiModel):
    client_id: Optional[str] = None
    staff_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    service_ids: Optional[List[str]] = None
    status: Optional[AppointmentStatus] = None
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    total_price: Optional[float] = None
    deposit_paid: Optional[bool] = None
    deposit_amount: Optional[float] = None
    has_unread_messages: Optional[bool] = None
    is_recurring: Optional[bool] = None


class AppointmentMove(ApiModel):
    start_time: datetime
    staff_id: Optional[str] = None


class CancelRequest(ApiModel):
    reason: Optional[str] = None


class StatusChange(ApiModel):
    status: AppointmentStatus
    reason: Optional[str] = None


class ReopenRequest(ApiModel):
    status: AppointmentStatus = AppointmentStatus.confirmed


class AppointmentPublic(ApiModel):
    id: str
    client_id: str
    staff_id: Optional[str]
    start_time: datetime
    end_time: datetime
    service_ids: List[str]
    status: AppointmentStatus
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    total_price: Optional[float] = None
    deposit_paid: bool = False
    deposit_amount: Optional[float] = None
    has_unread_messages: bool = False
    is_recurring: bool = False
    cancellation_reason: Optional[str] = None
    canceled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StaffSummary(ApiModel):
    id: str
    display_name: str
    color: Optional[str] = None


class ClientSummary(ApiModel):
    id: str
    name: str


class AppointmentDetail(AppointmentPublic):
    client: Optional[ClientSummary] = None
    staff: Optional[StaffSummary] = None


class AvailabilityCheck(ApiModel):
    staff_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    exclude_appointment_id: Optional[str] = None


class ConflictSummary(ApiModel):
    id: str
    start_time: datetime
    end_time: datetime


class AvailabilityResponse(ApiModel):
    available: bool
    conflicts: List[ConflictSummary] = Field(default_factory=list)


class OpenSlotsResponse(ApiModel):
    staff_id: str
    date: Date
    duration_minutes: int
    available_starts: List[datetime]


# Calendar projections

class PlacedAppointment(ApiModel):
    appointment: AppointmentPublic
    # in day-view slot units, measured from the window start
    offset: float
    span: float


class DayColumn(ApiModel):
    staff: StaffSummary
    appointments: List[PlacedAppointment]


class DayViewProjection(ApiModel):
    view: Literal["day"] = "day"
    date: Date
    window_start: datetime
    window_end: datetime
    slot_minutes: int
    columns: List[DayColumn]


class WeekDay(ApiModel):
    date: Date
    appointments: List[AppointmentPublic]


class WeekViewProjection(ApiModel):
    view: Literal["week"] = "week"
    week_start: Date
    week_end: Date
    staff: Optional[StaffSummary] = None
    days: List[WeekDay]


class MonthDay(ApiModel):
    date: Date
    in_month: bool
    count: int
    preview: List[AppointmentPublic]
    overflow: int


class MonthViewProjection(ApiModel):
    view: Literal["month"] = "month"
    month: Date
    grid_start: Date
    grid_end: Date
    days: List[MonthDay]
