# app/services/visit_store.py
"""
Visit Store: persistence for visits and their stage events.

Every write is a single commit: either the whole visit (with its new event and
open/closed pointer) lands, or the session is rolled back and a StoreError is raised.
Writes are conditional on Visit.version_id, so a visit changed by another
writer since it was read is never overwritten (ConcurrentUpdateError).
"""

from typing import Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from app.exceptions import ConcurrentUpdateError, StoreError
from app.models.stage_event import StageEvent
from app.models.visit import OpenVisit, Visit
from app.utils.logger import get_logger

logger = get_logger(__name__)


class VisitStore:
    def __init__(self, db: Session):
        self.db = db

    # ── Reads ────────────────────────────────────────────────────────────
    def find_latest_visit(self, vehicle_number: str) -> Optional[Visit]:
        """The currently open visit for a normalized vehicle number, or None."""
        try:
            pointer = self.db.get(OpenVisit, vehicle_number)
        except SQLAlchemyError as e:
            raise self._failed("lookup", vehicle_number, e)
        return pointer.visit if pointer else None

    def list_all(self) -> list[Visit]:
        try:
            return self.db.query(Visit).order_by(Visit.id).all()
        except SQLAlchemyError as e:
            raise self._failed("list", "*", e)

    def list_at_stage(self, stage_name: str) -> list[Visit]:
        """Open visits whose most recent event was reported at stage_name."""
        try:
            return (
                self.db.query(Visit)
                .filter(Visit.current_stage_name == stage_name, Visit.exit_time.is_(None))
                .order_by(Visit.entry_time)
                .all()
            )
        except SQLAlchemyError as e:
            raise self._failed("list", stage_name, e)

    def list_for_vehicle(self, vehicle_number: str) -> list[Visit]:
        """Every visit of one vehicle, newest first."""
        try:
            return (
                self.db.query(Visit)
                .filter(Visit.vehicle_number == vehicle_number)
                .order_by(Visit.entry_time.desc(), Visit.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            raise self._failed("list", vehicle_number, e)

    # ── Writes ───────────────────────────────────────────────────────────
    def create_visit(self, visit: Visit) -> Visit:
        """Insert a new visit (stages already seeded) and mark it open unless it has exited."""
        visit.version_id = 1
        try:
            self.db.add(visit)
            self.db.flush()
            if visit.exit_time is None:
                self.db.add(OpenVisit(vehicle_number=visit.vehicle_number, visit_id=visit.id))
            self.db.commit()
        except IntegrityError as e:
            # Someone else opened a visit for this vehicle first
            self.db.rollback()
            raise ConcurrentUpdateError(
                f"Vehicle {visit.vehicle_number} was opened by another request. Retry the report."
            ) from e
        except SQLAlchemyError as e:
            raise self._failed("create", visit.vehicle_number, e)
        self.db.refresh(visit)
        return visit

    def append_event_and_save(self, visit: Visit, event: StageEvent) -> Visit:
        """Append event to the visit's history and persist the visit in one commit.
        A visit carrying an exit_time is closed: it stops being the vehicle's open visit."""
        visit.stages.append(event)
        visit.version_id = visit.version_id + 1
        try:
            if visit.exit_time is not None:
                pointer = self.db.get(OpenVisit, visit.vehicle_number)
                if pointer is not None and pointer.visit_id == visit.id:
                    self.db.delete(pointer)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConcurrentUpdateError(
                f"Vehicle {visit.vehicle_number} was updated by another request. Retry the report."
            ) from e
        except SQLAlchemyError as e:
            raise self._failed("update", visit.vehicle_number, e)
        self.db.refresh(visit)
        return visit

    def delete_all(self) -> int:
        """Remove every visit with its events. Returns the number of visits removed."""
        try:
            count = self.db.query(Visit).count()
            self.db.query(OpenVisit).delete(synchronize_session=False)
            self.db.query(StageEvent).delete(synchronize_session=False)
            self.db.query(Visit).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._failed("delete", "*", e)
        # Rows are gone; drop their stale copies from the identity map
        self.db.expunge_all()
        logger.warning(f"[STORE] Deleted all visits ({count})")
        return count

    def _failed(self, action: str, key: str, error: Exception) -> StoreError:
        self.db.rollback()
        logger.error(f"[STORE] {action} failed for {key}: {error}", exc_info=True)
        return StoreError(f"Visit store {action} failed", cause=error)
