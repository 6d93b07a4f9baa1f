"""Shared test fixtures and helpers."""

from datetime import datetime, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from salon_scheduler.config import ShopSettings
from salon_scheduler.conflicts import ConflictDetector
from salon_scheduler.db import get_session
from salon_scheduler.deps import get_settings
from salon_scheduler.directory import InMemoryDirectory
from salon_scheduler.gateway import SchedulingGateway, StaffLocks
from salon_scheduler.ledger import InMemoryAppointmentLedger
from salon_scheduler.main import app
from salon_scheduler.models import Appointment, Client, Service, Staff


def at(hour: int, minute: int = 0, day: int = 10, month: int = 1) -> datetime:
    """A UTC timestamp in January 2024 (the 10th is a Wednesday)."""
    return datetime(2024, month, day, hour, minute, tzinfo=timezone.utc)


def make_staff() -> list[Staff]:
    return [
        Staff(id="S1", display_name="Ana Ruiz", color="#e91e63"),
        Staff(id="S2", display_name="Ben Okafor", color="#3f51b5"),
        Staff(id="S3", display_name="Cleo Marsh", is_active=False),
    ]


def make_clients() -> list[Client]:
    return [Client(id="C1", name="Dana Wells"), Client(id="C2", name="Eli Park")]


def make_services() -> list[Service]:
    return [
        Service(id="cut", name="Haircut", duration=30, price=40.0),
        Service(id="color", name="Full colour", duration=90, price=120.0),
    ]


def make_appointment(
    start: datetime,
    end: datetime,
    staff_id: Optional[str] = "S1",
    client_id: str = "C1",
    status: str = "pending",
    **extra,
) -> Appointment:
    return Appointment(
        client_id=client_id,
        staff_id=staff_id,
        start_time=start,
        end_time=end,
        status=status,
        **extra,
    )


@pytest.fixture
def shop():
    return ShopSettings(timezone="UTC")


@pytest.fixture
def ledger():
    return InMemoryAppointmentLedger()


@pytest.fixture
def directory():
    return InMemoryDirectory(make_staff(), make_clients(), make_services())


@pytest.fixture
def detector(ledger):
    return ConflictDetector(ledger)


@pytest.fixture
def gateway(ledger, directory):
    return SchedulingGateway(ledger, directory, locks=StaffLocks())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        for row in make_staff() + make_clients() + make_services():
            session.add(row)
        session.commit()
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session, shop):
    def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_settings] = lambda: shop
    yield TestClient(app)
    app.dependency_overrides.clear()
