# salon_scheduler/routers/calendar_routes.py

from datetime import date
from typing import List, Union

from fastapi import APIRouter, Depends, HTTPException, Query

from salon_scheduler.availability import available_starts
from salon_scheduler.config import ShopSettings
from salon_scheduler.conflicts import ConflictDetector
from salon_scheduler.deps import get_detector, get_directory, get_projector, get_settings
from salon_scheduler.directory import Directory
from salon_scheduler.projector import CalendarProjector
from salon_scheduler.schemas import (
    CalendarView,
    DayViewProjection,
    MonthViewProjection,
    OpenSlotsResponse,
    WeekViewProjection,
)

router = APIRouter(
    tags=["calendar"],
)


@router.get(
    "/calendar",
    response_model=Union[DayViewProjection, WeekViewProjection, MonthViewProjection],
)
def get_calendar(
    view: CalendarView = CalendarView.day,
    anchor_date: date = Query(..., alias="anchorDate"),
    staff_ids: List[str] = Query([], alias="staffIds"),
    projector: CalendarProjector = Depends(get_projector),
):
    # accept both ?staffIds=a&staffIds=b and ?staffIds=a,b
    selected = [s for raw in staff_ids for s in raw.split(",") if s]
    return projector.project(view, anchor_date, selected)


@router.get("/staff/{staff_id}/availability", response_model=OpenSlotsResponse)
def staff_availability(
    staff_id: str,
    on_date: date = Query(..., alias="date"),
    duration_minutes: int = Query(30, alias="durationMinutes", gt=0, le=24 * 60),
    detector: ConflictDetector = Depends(get_detector),
    directory: Directory = Depends(get_directory),
    shop: ShopSettings = Depends(get_settings),
):
    # 1) Lookup staff member
    if directory.get_staff_by_id(staff_id) is None:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": "Staff member not found"})

    # 2) Walk the day's grid
    starts = available_starts(detector, shop, staff_id, on_date, duration_minutes)
    return OpenSlotsResponse(
        staff_id=staff_id,
        date=on_date,
        duration_minutes=duration_minutes,
        available_starts=starts,
    )
