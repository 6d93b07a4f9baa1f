# salon_scheduler/routers/appointments_routes.py

from datetime import datetime, timedelta, time, date as Date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from salon_scheduler.config import ShopSettings
from salon_scheduler.conflicts import ConflictDetector
from salon_scheduler.core import to_utc
from salon_scheduler.deps import get_detector, get_directory, get_gateway, get_ledger, get_settings
from salon_scheduler.directory import Directory
from salon_scheduler.gateway import SchedulingGateway
from salon_scheduler.ledger import AppointmentLedger
from salon_scheduler.models import Appointment
from salon_scheduler.results import Conflict, NotFound, Ok, SchedulingResult
from salon_scheduler.schemas import (
    AppointmentCreate,
    AppointmentDetail,
    AppointmentMove,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentUpdate,
    AvailabilityCheck,
    AvailabilityResponse,
    CancelRequest,
    ClientSummary,
    ConflictSummary,
    ReopenRequest,
    StaffSummary,
    StatusChange,
)

router = APIRouter(
    tags=["appointments"],
)


def _validation_error(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": message})


def _unwrap(result: SchedulingResult) -> Appointment:
    if isinstance(result, Ok):
        return result.appointment
    if isinstance(result, Conflict):
        raise HTTPException(
            status_code=409,
            detail={
                "code": "APPOINTMENT_CONFLICT",
                "message": "This time slot conflicts with another appointment",
                "details": {
                    "conflictingAppointments": [
                        ConflictSummary.model_validate(a).model_dump(mode="json", by_alias=True)
                        for a in result.conflicts
                    ],
                },
            },
        )
    if isinstance(result, NotFound):
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": result.message})
    raise _validation_error(result.reason)


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    gateway: SchedulingGateway = Depends(get_gateway),
    directory: Directory = Depends(get_directory),
):
    data = appt.model_dump()
    data["status"] = appt.status.value

    # 1) Fill end time and price from the booked services when omitted
    if appt.end_time is None or appt.total_price is None:
        duration, price = directory.service_defaults(appt.service_ids)
        if appt.end_time is None:
            if duration <= 0:
                raise _validation_error("end_time is required when no known services are given")
            data["end_time"] = appt.start_time + timedelta(minutes=duration)
        if appt.total_price is None and duration > 0:
            data["total_price"] = price

    # 2) Hand the candidate to the gateway
    return _unwrap(gateway.create(Appointment(**data)))


@router.get("/appointments", response_model=List[AppointmentPublic])
def list_appointments(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    client_id: Optional[str] = Query(None, alias="clientId"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    status: Optional[AppointmentStatus] = None,
    on_date: Optional[Date] = Query(None, alias="date"),
    ledger: AppointmentLedger = Depends(get_ledger),
    shop: ShopSettings = Depends(get_settings),
):
    start = to_utc(start_date) if start_date is not None else None
    end = to_utc(end_date) if end_date is not None else None

    # a shop-local calendar day narrows whatever range was given
    if on_date is not None:
        day_start = to_utc(datetime.combine(on_date, time.min, tzinfo=shop.tz))
        day_end = to_utc(datetime.combine(on_date + timedelta(days=1), time.min, tzinfo=shop.tz))
        start = day_start if start is None else max(start, day_start)
        end = day_end if end is None else min(end, day_end)

    return ledger.find_by_date_range(
        start,
        end,
        client_id=client_id,
        staff_id=staff_id,
        status=status.value if status is not None else None,
    )


@router.post("/appointments/check-availability", response_model=AvailabilityResponse)
def check_availability(
    check: AvailabilityCheck,
    detector: ConflictDetector = Depends(get_detector),
):
    if to_utc(check.start_time) >= to_utc(check.end_time):
        raise _validation_error("start_time must be before end_time")

    conflicts = detector.find_conflicts(
        check.staff_id, check.start_time, check.end_time, exclude_id=check.exclude_appointment_id
    )
    return AvailabilityResponse(
        available=not conflicts,
        conflicts=[ConflictSummary.model_validate(a) for a in conflicts],
    )


@router.get("/appointments/{appt_id}", response_model=AppointmentDetail)
def get_appointment(
    appt_id: str,
    ledger: AppointmentLedger = Depends(get_ledger),
    directory: Directory = Depends(get_directory),
):
    appointment = ledger.find_by_id(appt_id)
    if appointment is None:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": "Appointment not found"})

    client = directory.get_client_by_id(appointment.client_id)
    staff = directory.get_staff_by_id(appointment.staff_id) if appointment.staff_id else None

    detail = AppointmentDetail.model_validate(appointment)
    detail.client = ClientSummary.model_validate(client) if client is not None else None
    detail.staff = StaffSummary.model_validate(staff) if staff is not None else None
    return detail


@router.put("/appointments/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: str,
    changes: AppointmentUpdate,
    gateway: SchedulingGateway = Depends(get_gateway),
):
    patch = changes.model_dump(exclude_unset=True)
    if patch.get("status") is not None:
        patch["status"] = patch["status"].value
    return _unwrap(gateway.update(appt_id, patch))


@router.post("/appointments/{appt_id}/move", response_model=AppointmentPublic)
def move_appointment(
    appt_id: str,
    move: AppointmentMove,
    gateway: SchedulingGateway = Depends(get_gateway),
):
    return _unwrap(gateway.move(appt_id, move.start_time, move.staff_id))


@router.patch("/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: str,
    cancel: Optional[CancelRequest] = None,
    gateway: SchedulingGateway = Depends(get_gateway),
):
    reason = cancel.reason if cancel is not None else None
    return _unwrap(gateway.cancel(appt_id, reason))


@router.post("/appointments/{appt_id}/status", response_model=AppointmentPublic)
def change_appointment_status(
    appt_id: str,
    change: StatusChange,
    gateway: SchedulingGateway = Depends(get_gateway),
):
    return _unwrap(gateway.change_status(appt_id, change.status, change.reason))


@router.post("/appointments/{appt_id}/reopen", response_model=AppointmentPublic)
def reopen_appointment(
    appt_id: str,
    reopen: Optional[ReopenRequest] = None,
    gateway: SchedulingGateway = Depends(get_gateway),
):
    target = reopen.status if reopen is not None else AppointmentStatus.confirmed
    return _unwrap(gateway.reopen(appt_id, target))
