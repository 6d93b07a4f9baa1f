# salon_scheduler/deps.py

from fastapi import Depends
from sqlmodel import Session

from salon_scheduler.config import ShopSettings, settings
from salon_scheduler.conflicts import ConflictDetector
from salon_scheduler.db import get_session
from salon_scheduler.directory import Directory, SqlDirectory
from salon_scheduler.gateway import SchedulingGateway
from salon_scheduler.ledger import AppointmentLedger, SqlAppointmentLedger
from salon_scheduler.projector import CalendarProjector


def get_settings() -> ShopSettings:
    return settings


def get_ledger(session: Session = Depends(get_session)) -> AppointmentLedger:
    return SqlAppointmentLedger(session)


def get_directory(session: Session = Depends(get_session)) -> Directory:
    return SqlDirectory(session)


def get_detector(ledger: AppointmentLedger = Depends(get_ledger)) -> ConflictDetector:
    return ConflictDetector(ledger)


def get_gateway(
    ledger: AppointmentLedger = Depends(get_ledger),
    directory: Directory = Depends(get_directory),
) -> SchedulingGateway:
    return SchedulingGateway(ledger, directory)


def get_projector(
    ledger: AppointmentLedger = Depends(get_ledger),
    directory: Directory = Depends(get_directory),
    shop: ShopSettings = Depends(get_settings),
) -> CalendarProjector:
    return CalendarProjector(ledger, directory, shop)
