"""Tests for both appointment ledger backings."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from salon_scheduler.errors import StorageError
from salon_scheduler.ledger import InMemoryAppointmentLedger, SqlAppointmentLedger
from tests.conftest import at, make_appointment


@pytest.fixture(params=["memory", "sql"])
def any_ledger(request):
    if request.param == "memory":
        return InMemoryAppointmentLedger()
    return SqlAppointmentLedger(request.getfixturevalue("session"))


class TestInsert:
    def test_assigns_id_and_timestamps(self, any_ledger):
        stored = any_ledger.insert(make_appointment(at(9), at(9, 30)))
        assert stored.id
        assert stored.created_at is not None
        assert stored.updated_at == stored.created_at

    def test_ids_are_unique(self, any_ledger):
        a = any_ledger.insert(make_appointment(at(9), at(9, 30)))
        b = any_ledger.insert(make_appointment(at(10), at(10, 30)))
        assert a.id != b.id

    def test_round_trips_fields(self, any_ledger):
        stored = any_ledger.insert(make_appointment(
            at(9), at(9, 30), service_ids=["cut", "color"], notes="fringe only", total_price=40.0,
        ))
        found = any_ledger.find_by_id(stored.id)
        assert found.start_time == at(9)
        assert found.end_time == at(9, 30)
        assert found.service_ids == ["cut", "color"]
        assert found.notes == "fringe only"
        assert found.total_price == 40.0
        assert found.status == "pending"


class TestUpdate:
    def test_merges_patch_and_bumps_updated_at(self, any_ledger):
        stored = any_ledger.insert(make_appointment(at(9), at(9, 30)))
        updated = any_ledger.update(stored.id, {"notes": "running late"})
        assert updated.notes == "running late"
        assert updated.start_time == at(9)
        assert updated.updated_at >= stored.updated_at

    def test_cannot_overwrite_id_or_created_at(self, any_ledger):
        stored = any_ledger.insert(make_appointment(at(9), at(9, 30)))
        updated = any_ledger.update(stored.id, {"id": "hijack", "created_at": at(1), "notes": "x"})
        assert updated.id == stored.id
        assert updated.created_at == stored.created_at

    def test_unknown_id_returns_none(self, any_ledger):
        assert any_ledger.update("missing", {"notes": "x"}) is None

    def test_find_by_id_unknown(self, any_ledger):
        assert any_ledger.find_by_id("missing") is None


class TestFindByStaffAndRange:
    def test_returns_intersecting_ordered_by_start(self, any_ledger):
        late = any_ledger.insert(make_appointment(at(11), at(12)))
        early = any_ledger.insert(make_appointment(at(9), at(10)))
        any_ledger.insert(make_appointment(at(9), at(10), staff_id="S2"))

        found = any_ledger.find_by_staff_and_range("S1", at(9, 30), at(11, 30))
        assert [a.id for a in found] == [early.id, late.id]

    def test_touching_range_is_excluded(self, any_ledger):
        any_ledger.insert(make_appointment(at(9), at(9, 30)))
        assert any_ledger.find_by_staff_and_range("S1", at(9, 30), at(10)) == []
        assert any_ledger.find_by_staff_and_range("S1", at(8, 30), at(9)) == []


class TestFindByDateRange:
    def test_filters_by_start_time_half_open(self, any_ledger):
        a = any_ledger.insert(make_appointment(at(9), at(10)))
        any_ledger.insert(make_appointment(at(9, day=11), at(10, day=11)))

        found = any_ledger.find_by_date_range(at(0), at(0, day=11))
        assert [x.id for x in found] == [a.id]

    def test_filters_and_ordering(self, any_ledger):
        second = any_ledger.insert(make_appointment(at(11), at(12), client_id="C2"))
        first = any_ledger.insert(make_appointment(at(9), at(10), client_id="C2", staff_id="S2"))
        any_ledger.insert(make_appointment(at(10), at(11), client_id="C1", status="canceled"))

        assert [a.id for a in any_ledger.find_by_date_range(client_id="C2")] == [first.id, second.id]
        assert [a.id for a in any_ledger.find_by_date_range(staff_id="S2")] == [first.id]
        assert len(any_ledger.find_by_date_range(status="canceled")) == 1
        assert len(any_ledger.find_by_date_range()) == 3


class TestInMemoryIsolation:
    def test_returned_copies_do_not_alias_storage(self):
        ledger = InMemoryAppointmentLedger()
        stored = ledger.insert(make_appointment(at(9), at(9, 30)))
        stored.status = "canceled"
        stored.service_ids.append("cut")
        again = ledger.find_by_id(stored.id)
        assert again.status == "pending"
        assert again.service_ids == []


class TestSqlStorageErrors:
    def test_write_failure_raises_storage_error(self, session, monkeypatch):
        ledger = SqlAppointmentLedger(session)

        def boom():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(session, "commit", boom)
        with pytest.raises(StorageError) as excinfo:
            ledger.insert(make_appointment(at(9), at(9, 30)))
        assert isinstance(excinfo.value.__cause__, OperationalError)

    def test_read_failure_raises_storage_error(self, session, monkeypatch):
        ledger = SqlAppointmentLedger(session)

        def boom(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(session, "exec", boom)
        with pytest.raises(StorageError):
            ledger.find_by_date_range()


class TestSqlFreshReads:
    def test_find_by_id_sees_commits_from_other_sessions(self, engine):
        with Session(engine) as first, Session(engine) as second:
            reader = SqlAppointmentLedger(first)
            stored = reader.insert(make_appointment(at(9), at(10)))
            assert reader.find_by_id(stored.id).status == "pending"

            SqlAppointmentLedger(second).update(stored.id, {"status": "canceled", "staff_id": "S2"})

            fresh = reader.find_by_id(stored.id)
            assert fresh.status == "canceled"
            assert fresh.staff_id == "S2"
