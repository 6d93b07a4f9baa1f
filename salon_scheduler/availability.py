# salon_scheduler/availability.py

from datetime import date, datetime, timedelta

from salon_scheduler.config import ShopSettings
from salon_scheduler.conflicts import ConflictDetector
from salon_scheduler.core import to_utc


def available_starts(
    detector: ConflictDetector,
    settings: ShopSettings,
    staff_id: str,
    day: date,
    duration_minutes: int,
) -> list[datetime]:
    """Open start times for ``staff_id`` on ``day`` that fit ``duration_minutes``.

    Walks the shop's slot grid between opening and closing time (shop local
    time) and keeps each start whose whole appointment fits before closing
    without conflicting.
    """
    if duration_minutes <= 0:
        return []

    # 1) Build the working window in shop time
    tz = settings.tz
    work_start = datetime.combine(day, settings.open_time, tzinfo=tz)
    work_end = datetime.combine(day, settings.close_time, tzinfo=tz)

    slot_delta = timedelta(minutes=settings.slot_minutes)
    duration = timedelta(minutes=duration_minutes)

    # 2) Generate slots and keep the ones the detector allows
    available = []
    current = work_start
    while current + duration <= work_end:
        if detector.can_schedule(staff_id, current, current + duration):
            available.append(to_utc(current))
        current += slot_delta

    return available
