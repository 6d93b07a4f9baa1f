# salon_scheduler/results.py
"""Outcomes of scheduling operations.

Expected business failures come back as values, never as exceptions.
"""

from dataclasses import dataclass
from typing import Union

from salon_scheduler.models import Appointment


@dataclass(frozen=True)
class Ok:
    appointment: Appointment


@dataclass(frozen=True)
class Conflict:
    # ordered by start time; conflicts[0] is the primary conflict
    conflicts: list[Appointment]

    @property
    def blocking(self) -> Appointment:
        return self.conflicts[0]


@dataclass(frozen=True)
class NotFound:
    entity: str
    entity_id: str

    @property
    def message(self) -> str:
        return f"{self.entity} {self.entity_id} not found"


@dataclass(frozen=True)
class ValidationError:
    reason: str


SchedulingResult = Union[Ok, Conflict, NotFound, ValidationError]
