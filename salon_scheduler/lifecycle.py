# salon_scheduler/lifecycle.py
"""
Appointment status lifecycle.

Every status change must match an entry in the transition table. ``canceled``
and ``no-show`` are terminal. ``completed`` only leaves through ``reopen``,
the explicit correction path, so a stray update can never rewind history.

Usage:
    lifecycle = StatusLifecycle()
    patch = lifecycle.transition(appointment, AppointmentStatus.canceled, reason="flu")
    ledger.update(appointment.id, patch)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from salon_scheduler.core import utcnow
from salon_scheduler.models import Appointment
from salon_scheduler.schemas import AppointmentStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({AppointmentStatus.canceled, AppointmentStatus.no_show})

# statuses an appointment may be created in
INITIAL_STATUSES = frozenset({
    AppointmentStatus.pending,
    AppointmentStatus.confirmed,
    AppointmentStatus.checked_in,
    AppointmentStatus.in_progress,
    AppointmentStatus.completed,
})

REOPEN_TARGETS = frozenset({
    AppointmentStatus.confirmed,
    AppointmentStatus.checked_in,
    AppointmentStatus.in_progress,
})


class InvalidTransitionError(Exception):
    """Raised when a status change is not in the transition table."""


@dataclass(frozen=True)
class Transition:
    from_status: AppointmentStatus
    to_status: AppointmentStatus


class StatusLifecycle:

    TRANSITIONS: list[Transition] = [
        # --- Booked ---
        Transition(AppointmentStatus.pending, AppointmentStatus.confirmed),
        Transition(AppointmentStatus.pending, AppointmentStatus.checked_in),
        Transition(AppointmentStatus.pending, AppointmentStatus.canceled),
        Transition(AppointmentStatus.pending, AppointmentStatus.no_show),
        Transition(AppointmentStatus.confirmed, AppointmentStatus.pending),
        Transition(AppointmentStatus.confirmed, AppointmentStatus.checked_in),
        Transition(AppointmentStatus.confirmed, AppointmentStatus.canceled),
        Transition(AppointmentStatus.confirmed, AppointmentStatus.no_show),

        # --- In the salon ---
        Transition(AppointmentStatus.checked_in, AppointmentStatus.in_progress),
        Transition(AppointmentStatus.checked_in, AppointmentStatus.completed),
        Transition(AppointmentStatus.checked_in, AppointmentStatus.canceled),
        Transition(AppointmentStatus.in_progress, AppointmentStatus.completed),
    ]

    def allowed_targets(self, current: Union[str, AppointmentStatus]) -> list[AppointmentStatus]:
        current = AppointmentStatus(current)
        return [t.to_status for t in self.TRANSITIONS if t.from_status == current]

    def can_transition(self, current: Union[str, AppointmentStatus], target: Union[str, AppointmentStatus]) -> bool:
        current, target = AppointmentStatus(current), AppointmentStatus(target)
        return current == target or target in self.allowed_targets(current)

    def check_initial(self, status: Union[str, AppointmentStatus]) -> AppointmentStatus:
        status = AppointmentStatus(status)
        if status not in INITIAL_STATUSES:
            raise InvalidTransitionError(
                f"Appointments cannot be created as '{status.value}'"
            )
        return status

    def transition(
        self,
        appointment: Appointment,
        target: Union[str, AppointmentStatus],
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """
        Validate a status change and build the ledger patch that records it.

        Returns an empty patch when the status is unchanged.

        Raises:
            InvalidTransitionError: If the table has no such transition.
        """
        current, target = AppointmentStatus(appointment.status), AppointmentStatus(target)
        if current == target:
            return {}

        if not self.can_transition(current, target):
            valid = [s.value for s in self.allowed_targets(current)]
            raise InvalidTransitionError(
                f"Cannot change status from '{current.value}' to '{target.value}'. "
                f"Allowed: {valid}"
            )

        patch: dict[str, Any] = {"status": target.value}
        if target == AppointmentStatus.canceled:
            patch["canceled_at"] = now or utcnow()
            patch["cancellation_reason"] = reason

        logger.debug(
            "Appointment %s status: %s -> %s", appointment.id, current.value, target.value,
        )
        return patch

    def reopen(
        self,
        appointment: Appointment,
        target: Union[str, AppointmentStatus] = AppointmentStatus.confirmed,
    ) -> dict[str, Any]:
        """Rewind a completed appointment for corrections."""
        current, target = AppointmentStatus(appointment.status), AppointmentStatus(target)
        if current != AppointmentStatus.completed:
            raise InvalidTransitionError(
                f"Only completed appointments can be reopened, this one is '{current.value}'"
            )
        if target not in REOPEN_TARGETS:
            valid = sorted(s.value for s in REOPEN_TARGETS)
            raise InvalidTransitionError(
                f"Cannot reopen into '{target.value}'. Allowed: {valid}"
            )
        logger.info("Appointment %s reopened as %s", appointment.id, target.value)
        return {"status": target.value}

    def is_terminal(self, status: Union[str, AppointmentStatus]) -> bool:
        return AppointmentStatus(status) in TERMINAL_STATUSES
