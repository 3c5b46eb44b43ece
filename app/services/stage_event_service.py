# app/services/stage_event_service.py
"""
Vehicle check: turns one role's report (vehicle, role, stage, event type) into
either a new visit or an appended event on the vehicle's open visit.

How it works:
  - Vehicle numbers are trimmed + upper-cased before any lookup or write
  - No open visit       → new visit seeded with this event (created=True)
  - Open visit found    → reject an Entry repeated by the same role at the same stage,
                          otherwise append and recompute status / job card / current stage
  - Exit                → stamps exit_time and closes the visit; the next report opens a new one
                          (an Exit with no open visit creates an already closed visit)
  - Reports for one vehicle are serialized by a per-vehicle lock; the store's
    versioned write catches writers in other processes
"""

from dataclasses import dataclass
from datetime import datetime
from sqlalchemy.orm import Session
from app.config import settings
from app.exceptions import ValidationError
from app.models.stage_event import StageEvent
from app.models.visit import Visit
from app.services.visit_status import (
    EXIT,
    ENTRY,
    derive_current_stage,
    derive_job_card_started,
    derive_status,
)
from app.services.visit_store import VisitStore
from app.utils.keyed_lock import KeyedLock
from app.utils.logger import get_logger

logger = get_logger(__name__)

_vehicle_locks = KeyedLock()


@dataclass
class RecordResult:
    created: bool
    visit: Visit


def normalize_vehicle_number(vehicle_number: str) -> str:
    return vehicle_number.strip().upper()


def record_stage_event(db: Session, vehicle_number, role, stage_name, event_type) -> RecordResult:
    if not all(isinstance(v, str) and v.strip() for v in (vehicle_number, role, stage_name, event_type)):
        raise ValidationError("Vehicle number, role, stage name, and event type are required.")

    plate = normalize_vehicle_number(vehicle_number)
    store = VisitStore(db)

    with _vehicle_locks.hold(plate):
        visit = store.find_latest_visit(plate)
        now = datetime.utcnow()
        event = StageEvent(stage_name=stage_name, role=role, event_type=event_type, timestamp=now)

        if visit is None:
            # An Exit with no open visit is recorded as a visit that is already closed
            exit_time = now if event_type == EXIT else None
            visit = Visit(vehicle_number=plate, entry_time=now, exit_time=exit_time)
            visit.stages = [event]
            _apply_derived_fields(visit, [event])
            visit = store.create_visit(visit)
            logger.info(f"[VISIT] New visit {visit.id} | Plate={plate} | {event_type}@{stage_name} by {role}")
            return RecordResult(created=True, visit=visit)

        last = visit.stages[-1]
        if event_type == ENTRY and last.stage_name == stage_name and last.role == role:
            logger.warning(f"[VISIT] Duplicate entry rejected | Plate={plate} | {stage_name} by {role}")
            raise ValidationError("Vehicle already entered at this stage.")

        _apply_derived_fields(visit, [*visit.stages, event])
        if event_type == EXIT and visit.exit_time is None:
            visit.exit_time = now

        visit = store.append_event_and_save(visit, event)
        logger.info(
            f"[VISIT] Visit {visit.id} | Plate={plate} | {event_type}@{stage_name} by {role} "
            f"→ {visit.status}{' | exited' if visit.exit_time else ''}"
        )
        return RecordResult(created=False, visit=visit)


def _apply_derived_fields(visit: Visit, history: list):
    visit.status = derive_status(history)
    # Sticky: a later fold can only confirm it
    visit.job_card_started = bool(visit.job_card_started) or derive_job_card_started(history, settings.JOB_CARD_STAGE)
    visit.current_stage_name = derive_current_stage(history)
