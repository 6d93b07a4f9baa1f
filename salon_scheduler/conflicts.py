# salon_scheduler/conflicts.py

import logging
from datetime import datetime
from typing import Optional

from salon_scheduler.core import overlaps, to_utc
from salon_scheduler.ledger import AppointmentLedger
from salon_scheduler.models import Appointment
from salon_scheduler.schemas import AppointmentStatus

logger = logging.getLogger(__name__)

# statuses that never occupy a staff member's timeline
INERT_STATUSES = frozenset({AppointmentStatus.canceled.value, AppointmentStatus.no_show.value})


def is_inert(status: str) -> bool:
    return AppointmentStatus(status).value in INERT_STATUSES


class ConflictDetector:
    """Finds the appointments that block a candidate interval on a staff timeline."""

    def __init__(self, ledger: AppointmentLedger) -> None:
        self.ledger = ledger

    def find_conflicts(
        self,
        staff_id: Optional[str],
        candidate_start: datetime,
        candidate_end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[Appointment]:
        # unassigned appointments never conflict
        if not staff_id:
            return []

        candidate_start, candidate_end = to_utc(candidate_start), to_utc(candidate_end)
        existing = self.ledger.find_by_staff_and_range(staff_id, candidate_start, candidate_end)

        conflicts = [
            a for a in existing
            if a.id != exclude_id
            and a.status not in INERT_STATUSES
            and overlaps(candidate_start, candidate_end, a.start_time, a.end_time)
        ]
        conflicts.sort(key=lambda a: (a.start_time, a.id))

        if conflicts:
            logger.debug(
                "Staff %s has %d conflict(s) for %s - %s",
                staff_id, len(conflicts), candidate_start.isoformat(), candidate_end.isoformat(),
            )
        return conflicts

    def can_schedule(
        self,
        staff_id: Optional[str],
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        return not self.find_conflicts(staff_id, start, end, exclude_id)
