# salon_scheduler/directory.py
"""Read-only lookups into the staff, client and service collaborators."""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from sqlmodel import Session, select

from salon_scheduler.models import Client, Service, Staff


class Directory(ABC):

    @abstractmethod
    def get_staff_by_id(self, staff_id: str) -> Optional[Staff]:
        ...

    @abstractmethod
    def list_active_staff(self) -> list[Staff]:
        ...

    @abstractmethod
    def get_client_by_id(self, client_id: str) -> Optional[Client]:
        ...

    @abstractmethod
    def get_service_by_id(self, service_id: str) -> Optional[Service]:
        ...

    def service_defaults(self, service_ids: Iterable[str]) -> tuple[int, float]:
        """Total duration (minutes) and price of the known services in ``service_ids``.

        Unknown ids are skipped, as the booking screens do.
        """
        duration, price = 0, 0.0
        for service_id in service_ids:
            service = self.get_service_by_id(service_id)
            if service is None:
                continue
            duration += service.duration
            price += service.price
        return duration, price


class InMemoryDirectory(Directory):

    def __init__(
        self,
        staff: Iterable[Staff] = (),
        clients: Iterable[Client] = (),
        services: Iterable[Service] = (),
    ) -> None:
        # insertion order is the display order
        self._staff = {s.id: s for s in staff}
        self._clients = {c.id: c for c in clients}
        self._services = {s.id: s for s in services}

    def get_staff_by_id(self, staff_id):
        return self._staff.get(staff_id)

    def list_active_staff(self):
        return [s for s in self._staff.values() if s.is_active]

    def get_client_by_id(self, client_id):
        return self._clients.get(client_id)

    def get_service_by_id(self, service_id):
        return self._services.get(service_id)


class SqlDirectory(Directory):

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_staff_by_id(self, staff_id):
        return self.session.get(Staff, staff_id)

    def list_active_staff(self):
        stmt = select(Staff).where(Staff.is_active == True).order_by(Staff.display_name, Staff.id)  # noqa: E712
        return list(self.session.exec(stmt).all())

    def get_client_by_id(self, client_id):
        return self.session.get(Client, client_id)

    def get_service_by_id(self, service_id):
        return self.session.get(Service, service_id)
