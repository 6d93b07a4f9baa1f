# salon_scheduler/gateway.py
"""
Scheduling gateway: the only way appointments are created or changed.

Each operation validates its input, runs the conflict check and writes to the
ledger while holding the lock of every staff member it touches, so two
requests for the same staff cannot both pass the check before either commits.
Business failures come back as results (see ``salon_scheduler.results``).
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from datetime import datetime
from typing import Any, Callable, Optional, Union

from salon_scheduler.conflicts import ConflictDetector, is_inert
from salon_scheduler.core import duration_of, to_utc
from salon_scheduler.directory import Directory
from salon_scheduler.ledger import AppointmentLedger
from salon_scheduler.lifecycle import InvalidTransitionError, StatusLifecycle
from salon_scheduler.models import Appointment
from salon_scheduler.results import Conflict, NotFound, Ok, SchedulingResult, ValidationError
from salon_scheduler.schemas import AppointmentStatus

logger = logging.getLogger(__name__)


class StaffLocks:
    """One mutex per staff id, created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, staff_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(staff_id, threading.Lock())

    @contextmanager
    def hold(self, *staff_ids: Optional[str]):
        # sorted acquisition order keeps two-staff moves deadlock free
        ids = sorted({s for s in staff_ids if s})
        with ExitStack() as stack:
            for staff_id in ids:
                stack.enter_context(self._lock_for(staff_id))
            yield


# shared by every gateway in the process
STAFF_LOCKS = StaffLocks()


class SchedulingGateway:

    def __init__(
        self,
        ledger: AppointmentLedger,
        directory: Directory,
        lifecycle: Optional[StatusLifecycle] = None,
        locks: Optional[StaffLocks] = None,
    ) -> None:
        self.ledger = ledger
        self.directory = directory
        self.detector = ConflictDetector(ledger)
        self.lifecycle = lifecycle or StatusLifecycle()
        self.locks = locks or STAFF_LOCKS

    def _validate(
        self,
        client_id: Optional[str],
        staff_id: Optional[str],
        start: Optional[datetime],
        end: Optional[datetime],
        check_staff: bool = True,
    ) -> Optional[ValidationError]:
        if start is None or end is None:
            return ValidationError("start_time and end_time are required")
        if to_utc(start) >= to_utc(end):
            return ValidationError("start_time must be before end_time")
        if not client_id or not client_id.strip():
            return ValidationError("client_id is required")
        if check_staff and staff_id and self.directory.get_staff_by_id(staff_id) is None:
            return ValidationError(f"Unknown staff member: {staff_id}")
        return None

    def create(self, candidate: Appointment) -> SchedulingResult:
        # 1) Validate the candidate
        invalid = self._validate(
            candidate.client_id, candidate.staff_id, candidate.start_time, candidate.end_time
        )
        if invalid is not None:
            return invalid
        try:
            status = self.lifecycle.check_initial(candidate.status or AppointmentStatus.pending)
        except InvalidTransitionError as exc:
            return ValidationError(str(exc))

        candidate = Appointment.model_validate({
            **candidate.model_dump(),
            "status": status.value,
            "start_time": to_utc(candidate.start_time),
            "end_time": to_utc(candidate.end_time),
        })

        # 2) Check and insert while holding the staff lock
        with self.locks.hold(candidate.staff_id):
            conflicts = self.detector.find_conflicts(
                candidate.staff_id, candidate.start_time, candidate.end_time
            )
            if conflicts:
                logger.info(
                    "Create rejected: staff %s busy at %s (blocked by %s)",
                    candidate.staff_id, candidate.start_time.isoformat(), conflicts[0].id,
                )
                return Conflict(conflicts)
            stored = self.ledger.insert(candidate)

        logger.info(
            "Appointment created: %s for client %s with staff %s at %s",
            stored.id, stored.client_id, stored.staff_id, stored.start_time.isoformat(),
        )
        return Ok(stored)

    @contextmanager
    def _locked(self, appointment_id: str, *extra_staff_ids: Optional[str]):
        """Hold the lock of the appointment's current staff and yield a fresh read of it.

        The first read happens unlocked, so a concurrent write may move the
        appointment to another staff member before the lock is taken. When the
        locked re-read shows a different staff id, the locks are released and
        taken again for the new one. Yields ``None`` when the id is unknown.
        """
        current = self.ledger.find_by_id(appointment_id)
        while current is not None:
            staff_id = current.staff_id
            # the appointment's own key serialises unassigned appointments too
            with self.locks.hold(f"appointment:{appointment_id}", staff_id, *extra_staff_ids):
                fresh = self.ledger.find_by_id(appointment_id)
                if fresh is None or fresh.staff_id == staff_id:
                    yield fresh
                    return
            current = fresh
        yield None

    def update(self, appointment_id: str, patch: dict[str, Any]) -> SchedulingResult:
        patch = dict(patch)
        return self._apply(appointment_id, lambda existing: patch, patch.get("staff_id"))

    def _apply(
        self,
        appointment_id: str,
        build_patch: Callable[[Appointment], dict[str, Any]],
        new_staff_id: Optional[str] = None,
    ) -> SchedulingResult:
        with self._locked(appointment_id, new_staff_id) as existing:
            if existing is None:
                return NotFound("Appointment", appointment_id)
            patch = dict(build_patch(existing))

            # 1) Status changes go through the lifecycle
            status_patch: dict[str, Any] = {}
            if "status" in patch:
                target = patch.pop("status")
                if target is not None:
                    reason = patch.pop("cancellation_reason", None)
                    try:
                        status_patch = self.lifecycle.transition(existing, target, reason=reason)
                    except InvalidTransitionError as exc:
                        return ValidationError(str(exc))

            # 2) Validate the merged appointment
            client_id = patch.get("client_id", existing.client_id)
            staff_id = patch["staff_id"] if "staff_id" in patch else existing.staff_id
            start = patch.get("start_time", existing.start_time)
            end = patch.get("end_time", existing.end_time)

            staff_changed = staff_id != existing.staff_id
            invalid = self._validate(client_id, staff_id, start, end, check_staff=staff_changed)
            if invalid is not None:
                return invalid
            start, end = to_utc(start), to_utc(end)

            timeline_changed = (
                staff_changed or start != existing.start_time or end != existing.end_time
            )
            resulting_status = status_patch.get("status", existing.status)
            changes = {**patch, **status_patch}
            if not changes:
                return Ok(existing)

            # 3) Re-check the timeline when time or staff moved
            if timeline_changed and not is_inert(resulting_status):
                conflicts = self.detector.find_conflicts(
                    staff_id, start, end, exclude_id=appointment_id
                )
                if conflicts:
                    logger.info(
                        "Update of %s rejected: staff %s busy at %s (blocked by %s)",
                        appointment_id, staff_id, start.isoformat(), conflicts[0].id,
                    )
                    return Conflict(conflicts)
            updated = self.ledger.update(appointment_id, changes)

        if updated is None:
            return NotFound("Appointment", appointment_id)
        logger.info("Appointment updated: %s (%s)", appointment_id, ", ".join(sorted(changes)))
        return Ok(updated)

    def move(
        self,
        appointment_id: str,
        new_start: datetime,
        new_staff_id: Optional[str] = None,
    ) -> SchedulingResult:
        """Reschedule to ``new_start`` keeping the duration; ``None`` keeps the staff."""
        new_start = to_utc(new_start)

        def build_patch(existing: Appointment) -> dict[str, Any]:
            # duration comes from the row read under the lock
            new_end = new_start + duration_of(existing.start_time, existing.end_time)
            patch: dict[str, Any] = {"start_time": new_start, "end_time": new_end}
            if new_staff_id:
                patch["staff_id"] = new_staff_id
            return patch

        result = self._apply(appointment_id, build_patch, new_staff_id)
        if isinstance(result, Ok):
            logger.info(
                "Appointment moved: %s to %s with staff %s",
                appointment_id, new_start.isoformat(), result.appointment.staff_id,
            )
        return result

    def change_status(
        self,
        appointment_id: str,
        status: Union[str, AppointmentStatus],
        reason: Optional[str] = None,
    ) -> SchedulingResult:
        with self._locked(appointment_id) as existing:
            if existing is None:
                return NotFound("Appointment", appointment_id)
            try:
                patch = self.lifecycle.transition(existing, status, reason=reason)
            except InvalidTransitionError as exc:
                return ValidationError(str(exc))
            if not patch:
                return Ok(existing)
            updated = self.ledger.update(appointment_id, patch)

        if updated is None:
            return NotFound("Appointment", appointment_id)
        logger.info("Appointment %s is now %s", appointment_id, updated.status)
        return Ok(updated)

    def cancel(self, appointment_id: str, reason: Optional[str] = None) -> SchedulingResult:
        return self.change_status(appointment_id, AppointmentStatus.canceled, reason=reason)

    def reopen(
        self,
        appointment_id: str,
        status: Union[str, AppointmentStatus] = AppointmentStatus.confirmed,
    ) -> SchedulingResult:
        with self._locked(appointment_id) as existing:
            if existing is None:
                return NotFound("Appointment", appointment_id)
            try:
                patch = self.lifecycle.reopen(existing, status)
            except InvalidTransitionError as exc:
                return ValidationError(str(exc))
            updated = self.ledger.update(appointment_id, patch)

        if updated is None:
            return NotFound("Appointment", appointment_id)
        return Ok(updated)
