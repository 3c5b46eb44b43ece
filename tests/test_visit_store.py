# tests/test_visit_store.py
"""Unit tests for the visit store (persistence + conditional writes)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from app.database import Base
from app.exceptions import ConcurrentUpdateError, StoreError
from app.models.stage_event import StageEvent
from app.models.visit import OpenVisit, Visit
from app.services.visit_store import VisitStore

PLATE = "KA01AB1234"


def make_visit(plate=PLATE, stage="Security Gate", event_type="Entry"):
    now = datetime.utcnow()
    visit = Visit(vehicle_number=plate, entry_time=now, exit_time=None,
                  status="Pending", job_card_started=False, current_stage_name=stage)
    visit.stages = [StageEvent(stage_name=stage, role="Security Guard", event_type=event_type, timestamp=now)]
    return visit


def make_event(stage="Bay Work", event_type="Start", role="Bay Technician"):
    return StageEvent(stage_name=stage, role=role, event_type=event_type, timestamp=datetime.utcnow())


class TestVisitStore:
    def test_create_marks_visit_open(self, db):
        store = VisitStore(db)
        visit = store.create_visit(make_visit())

        assert visit.id is not None
        assert visit.version_id == 1
        assert store.find_latest_visit(PLATE).id == visit.id

    def test_unknown_vehicle_has_no_open_visit(self, db):
        assert VisitStore(db).find_latest_visit("NOPE123") is None

    def test_append_keeps_order_and_bumps_version(self, db):
        store = VisitStore(db)
        visit = store.create_visit(make_visit())
        store.append_event_and_save(visit, make_event("Bay Work", "Start"))
        visit = store.append_event_and_save(visit, make_event("Bay Work", "Finish"))

        assert [(s.stage_name, s.event_type) for s in visit.stages] == [
            ("Security Gate", "Entry"), ("Bay Work", "Start"), ("Bay Work", "Finish"),
        ]
        assert visit.version_id == 3

    def test_append_with_exit_time_closes_visit(self, db):
        store = VisitStore(db)
        visit = store.create_visit(make_visit())
        visit.exit_time = datetime.utcnow()
        store.append_event_and_save(visit, make_event("Exit Gate", "Exit", "Security Guard"))

        assert store.find_latest_visit(PLATE) is None
        assert db.query(OpenVisit).count() == 0
        assert len(store.list_for_vehicle(PLATE)) == 1

    def test_list_at_stage_uses_current_stage_of_open_visits(self, db):
        store = VisitStore(db)
        washing = store.create_visit(make_visit("AAA111", stage="Washing"))
        moved_on = store.create_visit(make_visit("BBB222", stage="Washing"))
        moved_on.current_stage_name = "Exit Gate"
        moved_on.exit_time = datetime.utcnow()
        store.append_event_and_save(moved_on, make_event("Exit Gate", "Exit", "Security Guard"))

        assert [v.id for v in store.list_at_stage("Washing")] == [washing.id]

    def test_list_for_vehicle_newest_first(self, db):
        store = VisitStore(db)
        old = store.create_visit(make_visit())
        old.exit_time = datetime.utcnow()
        store.append_event_and_save(old, make_event("Exit Gate", "Exit", "Security Guard"))
        new = store.create_visit(make_visit())

        assert [v.id for v in store.list_for_vehicle(PLATE)] == [new.id, old.id]

    def test_delete_all_returns_count(self, db):
        store = VisitStore(db)
        store.create_visit(make_visit("AAA111"))
        store.create_visit(make_visit("BBB222"))
        before = len(store.list_all())

        assert store.delete_all() == before == 2
        assert store.list_all() == []
        assert db.query(StageEvent).count() == 0
        assert store.find_latest_visit("AAA111") is None

    def test_create_after_delete_all(self, db):
        store = VisitStore(db)
        store.create_visit(make_visit())
        store.delete_all()
        visit = store.create_visit(make_visit())
        assert store.find_latest_visit(PLATE).id == visit.id

    def test_database_failure_becomes_store_error(self):
        db = MagicMock()
        db.get.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        with pytest.raises(StoreError) as exc_info:
            VisitStore(db).find_latest_visit(PLATE)

        db.rollback.assert_called_once()
        assert isinstance(exc_info.value.cause, OperationalError)


class TestConditionalWrites:
    """Two sessions on one file database stand in for two processes."""

    @pytest.fixture
    def sessions(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        first, second = Session(), Session()
        yield first, second
        first.close()
        second.close()
        engine.dispose()

    def test_stale_visit_write_is_rejected(self, sessions):
        db_a, db_b = sessions
        VisitStore(db_a).create_visit(make_visit())

        store_a, store_b = VisitStore(db_a), VisitStore(db_b)
        seen_by_a = store_a.find_latest_visit(PLATE)
        seen_by_b = store_b.find_latest_visit(PLATE)
        assert seen_by_a.version_id == seen_by_b.version_id == 1

        store_b.append_event_and_save(seen_by_b, make_event("Bay Work", "Start"))

        with pytest.raises(ConcurrentUpdateError):
            store_a.append_event_and_save(seen_by_a, make_event("Washing", "Start", "Washing Boy"))

        db_b.expire_all()
        events = [s.stage_name for s in store_b.find_latest_visit(PLATE).stages]
        assert events == ["Security Gate", "Bay Work"]

    def test_second_open_visit_for_same_vehicle_is_rejected(self, sessions):
        db_a, db_b = sessions
        store_a, store_b = VisitStore(db_a), VisitStore(db_b)
        assert store_a.find_latest_visit(PLATE) is None
        assert store_b.find_latest_visit(PLATE) is None

        store_b.create_visit(make_visit())
        with pytest.raises(ConcurrentUpdateError):
            store_a.create_visit(make_visit())

        assert len(store_b.list_all()) == 1
