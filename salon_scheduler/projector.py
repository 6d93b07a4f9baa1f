# salon_scheduler/projector.py
"""
Calendar projections (day, week, month) built from the appointment ledger.

Projections are read-only: they never write to the ledger, and calling them
twice with the same inputs and no writes in between gives equal results.
Calendar days are shop-local days (``ShopSettings.timezone``).
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence, Union

from salon_scheduler.config import ShopSettings
from salon_scheduler.directory import Directory
from salon_scheduler.ledger import AppointmentLedger
from salon_scheduler.models import Appointment, Staff
from salon_scheduler.schemas import (
    AppointmentPublic,
    CalendarView,
    DayColumn,
    DayViewProjection,
    MonthDay,
    MonthViewProjection,
    PlacedAppointment,
    StaffSummary,
    WeekDay,
    WeekViewProjection,
)

logger = logging.getLogger(__name__)

Projection = Union[DayViewProjection, WeekViewProjection, MonthViewProjection]


def week_start_for(day: date, week_starts_on: int) -> date:
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    # clamp e.g. Jan 31 + 1 month to the last day of February
    next_month = date(year + month // 12, month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return date(year, month, min(day.day, last_day))


def shift_anchor(view: Union[str, CalendarView], anchor: date, steps: int = 1) -> date:
    """Move the anchor date by ``steps`` pages of ``view`` (negative = back)."""
    view = CalendarView(view)
    if view == CalendarView.day:
        return anchor + timedelta(days=steps)
    if view == CalendarView.week:
        return anchor + timedelta(days=7 * steps)
    return _add_months(anchor, steps)


class CalendarProjector:

    def __init__(self, ledger: AppointmentLedger, directory: Directory, settings: ShopSettings) -> None:
        self.ledger = ledger
        self.directory = directory
        self.settings = settings

    def project(
        self,
        view: Union[str, CalendarView],
        anchor_date: date,
        staff_ids: Sequence[str] = (),
    ) -> Projection:
        view = CalendarView(view)
        logger.debug("Projecting %s view at %s (staff filter: %s)", view.value, anchor_date, list(staff_ids))
        if view == CalendarView.day:
            return self.day_view(anchor_date, staff_ids)
        if view == CalendarView.week:
            return self.week_view(anchor_date, staff_ids)
        return self.month_view(anchor_date, staff_ids)

    # helpers

    def _local_date(self, value: datetime) -> date:
        return value.astimezone(self.settings.tz).date()

    def _local_midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.settings.tz)

    def _appointments_between(
        self, first_day: date, last_day: date, staff_id: Optional[str] = None
    ) -> list[Appointment]:
        return self.ledger.find_by_date_range(
            self._local_midnight(first_day),
            self._local_midnight(last_day + timedelta(days=1)),
            staff_id=staff_id,
        )

    def _group_by_day(self, appointments: Iterable[Appointment]) -> dict[date, list[Appointment]]:
        grouped: dict[date, list[Appointment]] = defaultdict(list)
        for appointment in appointments:
            grouped[self._local_date(appointment.start_time)].append(appointment)
        return grouped

    def _display_staff(self, staff_ids: Sequence[str]) -> list[Staff]:
        active = self.directory.list_active_staff()
        if not staff_ids:
            return active
        selected = set(staff_ids)
        return [s for s in active if s.id in selected]

    # views

    def day_view(self, day: date, staff_ids: Sequence[str] = ()) -> DayViewProjection:
        tz = self.settings.tz
        window_start = datetime.combine(day, self.settings.open_time, tzinfo=tz)
        window_end = datetime.combine(day, self.settings.close_time, tzinfo=tz)
        slot = timedelta(minutes=self.settings.day_view_slot_minutes)

        by_staff: dict[Optional[str], list[Appointment]] = defaultdict(list)
        for appointment in self._appointments_between(day, day):
            by_staff[appointment.staff_id].append(appointment)

        columns = []
        for staff in self._display_staff(staff_ids):
            placed = [
                PlacedAppointment(
                    appointment=AppointmentPublic.model_validate(a),
                    offset=(a.start_time - window_start) / slot,
                    span=(a.end_time - a.start_time) / slot,
                )
                for a in by_staff.get(staff.id, [])
            ]
            columns.append(DayColumn(staff=StaffSummary.model_validate(staff), appointments=placed))

        return DayViewProjection(
            date=day,
            window_start=window_start,
            window_end=window_end,
            slot_minutes=self.settings.day_view_slot_minutes,
            columns=columns,
        )

    def week_view(self, anchor: date, staff_ids: Sequence[str] = ()) -> WeekViewProjection:
        week_start = week_start_for(anchor, self.settings.week_starts_on)
        week_end = week_start + timedelta(days=6)

        # one staff member at a time: the single selection, else the first shown
        if len(staff_ids) == 1:
            staff = self.directory.get_staff_by_id(staff_ids[0])
        else:
            shown = self._display_staff(staff_ids)
            staff = shown[0] if shown else None

        grouped: dict[date, list[Appointment]] = {}
        if staff is not None:
            grouped = self._group_by_day(
                self._appointments_between(week_start, week_end, staff_id=staff.id)
            )

        days = [
            WeekDay(
                date=week_start + timedelta(days=i),
                appointments=[
                    AppointmentPublic.model_validate(a)
                    for a in grouped.get(week_start + timedelta(days=i), [])
                ],
            )
            for i in range(7)
        ]
        return WeekViewProjection(
            week_start=week_start,
            week_end=week_end,
            staff=StaffSummary.model_validate(staff) if staff is not None else None,
            days=days,
        )

    def month_view(self, anchor: date, staff_ids: Sequence[str] = ()) -> MonthViewProjection:
        wso = self.settings.week_starts_on
        month_start = anchor.replace(day=1)
        month_end = _add_months(month_start, 1) - timedelta(days=1)
        grid_start = week_start_for(month_start, wso)
        grid_end = week_start_for(month_end, wso) + timedelta(days=6)

        appointments = self._appointments_between(grid_start, grid_end)
        if staff_ids:
            selected = set(staff_ids)
            appointments = [a for a in appointments if a.staff_id in selected]
        grouped = self._group_by_day(appointments)

        limit = self.settings.month_preview_limit
        days = []
        current = grid_start
        while current <= grid_end:
            items = grouped.get(current, [])
            days.append(MonthDay(
                date=current,
                in_month=current.month == month_start.month,
                count=len(items),
                preview=[AppointmentPublic.model_validate(a) for a in items[:limit]],
                overflow=max(0, len(items) - limit),
            ))
            current += timedelta(days=1)

        return MonthViewProjection(
            month=month_start,
            grid_start=grid_start,
            grid_end=grid_end,
            days=days,
        )
