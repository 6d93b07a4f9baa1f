# salon_scheduler/ledger.py
"""
Appointment ledger: the authoritative store of appointments.

The ledger is a plain store. It assigns ids and audit timestamps but never
runs conflict checks; that is the scheduling gateway's job. Two backings are
provided: ``SqlAppointmentLedger`` over a SQLModel session and
``InMemoryAppointmentLedger`` for tests and embedding.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from salon_scheduler.core import to_utc, utcnow
from salon_scheduler.errors import StorageError
from salon_scheduler.models import Appointment

logger = logging.getLogger(__name__)

# fields a patch may never overwrite
PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})
_DATETIME_FIELDS = ("start_time", "end_time", "canceled_at")


def _clean_patch(patch: dict[str, Any]) -> dict[str, Any]:
    cleaned = {}
    for key, value in patch.items():
        if key in PROTECTED_FIELDS:
            continue
        if key in _DATETIME_FIELDS and value is not None:
            value = to_utc(value)
        cleaned[key] = value
    return cleaned


class AppointmentLedger(ABC):

    @abstractmethod
    def insert(self, appointment: Appointment) -> Appointment:
        """Assign id and timestamps, store, and return the stored appointment."""

    @abstractmethod
    def update(self, appointment_id: str, patch: dict[str, Any]) -> Optional[Appointment]:
        """Merge ``patch`` into the appointment; ``None`` if the id is unknown."""

    @abstractmethod
    def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        ...

    @abstractmethod
    def find_by_staff_and_range(
        self, staff_id: str, range_start: datetime, range_end: datetime
    ) -> list[Appointment]:
        """Appointments of ``staff_id`` whose interval intersects ``[range_start, range_end)``."""

    @abstractmethod
    def find_by_date_range(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        client_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        """Appointments starting in ``[start, end)`` matching the filters, by start time."""


class InMemoryAppointmentLedger(AppointmentLedger):
    """Id-keyed dict backing. Hands out copies so callers cannot mutate stored rows."""

    def __init__(self) -> None:
        self._rows: dict[str, Appointment] = {}

    @staticmethod
    def _copy(appointment: Appointment) -> Appointment:
        return Appointment.model_validate(appointment.model_dump())

    def insert(self, appointment: Appointment) -> Appointment:
        stored = self._copy(appointment)
        stored.id = uuid.uuid4().hex
        stored.start_time = to_utc(stored.start_time)
        stored.end_time = to_utc(stored.end_time)
        now = utcnow()
        stored.created_at = now
        stored.updated_at = now
        self._rows[stored.id] = stored
        return self._copy(stored)

    def update(self, appointment_id: str, patch: dict[str, Any]) -> Optional[Appointment]:
        stored = self._rows.get(appointment_id)
        if stored is None:
            return None
        for key, value in _clean_patch(patch).items():
            setattr(stored, key, value)
        stored.updated_at = utcnow()
        return self._copy(stored)

    def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        stored = self._rows.get(appointment_id)
        return self._copy(stored) if stored is not None else None

    def _sorted(self, rows) -> list[Appointment]:
        return [self._copy(a) for a in sorted(rows, key=lambda a: (a.start_time, a.id))]

    def find_by_staff_and_range(self, staff_id, range_start, range_end):
        range_start, range_end = to_utc(range_start), to_utc(range_end)
        return self._sorted(
            a for a in self._rows.values()
            if a.staff_id == staff_id
            and a.start_time < range_end
            and a.end_time > range_start
        )

    def find_by_date_range(self, start=None, end=None, client_id=None, staff_id=None, status=None):
        start = to_utc(start) if start is not None else None
        end = to_utc(end) if end is not None else None
        matches = []
        for a in self._rows.values():
            if start is not None and a.start_time < start:
                continue
            if end is not None and a.start_time >= end:
                continue
            if client_id is not None and a.client_id != client_id:
                continue
            if staff_id is not None and a.staff_id != staff_id:
                continue
            if status is not None and a.status != status:
                continue
            matches.append(a)
        return self._sorted(matches)


class SqlAppointmentLedger(AppointmentLedger):
    """SQLModel-backed ledger bound to one session (one request)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _commit(self, row: Appointment) -> Appointment:
        try:
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Ledger write failed for appointment %s: %s", row.id, exc)
            raise StorageError("Failed to write appointment") from exc
        return row

    def _all(self, stmt) -> list[Appointment]:
        try:
            return list(self.session.exec(stmt).all())
        except SQLAlchemyError as exc:
            logger.error("Ledger read failed: %s", exc)
            raise StorageError("Failed to read appointments") from exc

    def insert(self, appointment: Appointment) -> Appointment:
        row = Appointment.model_validate(appointment.model_dump())
        row.id = uuid.uuid4().hex
        now = utcnow()
        row.created_at = now
        row.updated_at = now
        return self._commit(row)

    def update(self, appointment_id: str, patch: dict[str, Any]) -> Optional[Appointment]:
        row = self.find_by_id(appointment_id)
        if row is None:
            return None
        for key, value in _clean_patch(patch).items():
            setattr(row, key, value)
        row.updated_at = utcnow()
        return self._commit(row)

    def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        try:
            # reload from the database, not the identity map, so a read taken
            # under a staff lock sees rows committed by other sessions
            return self.session.get(Appointment, appointment_id, populate_existing=True)
        except SQLAlchemyError as exc:
            logger.error("Ledger read failed for appointment %s: %s", appointment_id, exc)
            raise StorageError("Failed to read appointment") from exc

    def find_by_staff_and_range(self, staff_id, range_start, range_end):
        stmt = (
            select(Appointment)
            .where(Appointment.staff_id == staff_id)
            .where(Appointment.start_time < range_end)
            .where(Appointment.end_time > range_start)
            .order_by(Appointment.start_time, Appointment.id)
        )
        return self._all(stmt)

    def find_by_date_range(self, start=None, end=None, client_id=None, staff_id=None, status=None):
        stmt = select(Appointment)

        if start is not None:
            stmt = stmt.where(Appointment.start_time >= start)
        if end is not None:
            stmt = stmt.where(Appointment.start_time < end)
        if client_id is not None:
            stmt = stmt.where(Appointment.client_id == client_id)
        if staff_id is not None:
            stmt = stmt.where(Appointment.staff_id == staff_id)
        if status is not None:
            stmt = stmt.where(Appointment.status == status)

        stmt = stmt.order_by(Appointment.start_time, Appointment.id)
        return self._all(stmt)
