# app/routers/vehicles.py
"""
Vehicle workflow endpoints.
POST   /vehicle-check            — every role reports Entry / Start / Finish / Exit here
GET    /vehicles                 — all visits
GET    /vehicles/*-in-progress   — open visits currently at a given stage
GET    /vehicles/{vehicle_number} — visit history of one vehicle
DELETE /vehicles                 — wipe all visits (demo / test reset)
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from app.config import settings
from app.database import get_db
from app.exceptions import NotFoundError
from app.schemas.vehicle_check import VehicleCheckIn
from app.schemas.visit import serialize_visit
from app.services.stage_event_service import normalize_vehicle_number, record_stage_event
from app.services.visit_store import VisitStore
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/vehicle-check", summary="Record a stage event for a vehicle")
def vehicle_check(body: VehicleCheckIn, db: Session = Depends(get_db)):
    """
    Creates a new visit on the first report for a vehicle (201),
    otherwise appends to its open visit (200).
    Missing fields and a repeated Entry at the same stage answer 400.
    """
    logger.debug(f"Vehicle check: {body.model_dump(by_alias=True)}")
    result = record_stage_event(db, body.vehicle_number, body.role, body.stage_name, body.event_type)
    vehicle = serialize_visit(result.visit)
    if result.created:
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"success": True, "newVehicle": True,
                     "message": "New vehicle entry recorded.", "vehicle": vehicle},
        )
    return {"success": True, "message": "Vehicle stage updated.", "vehicle": vehicle}


@router.get("/vehicles", summary="List all visits")
def list_vehicles(db: Session = Depends(get_db)):
    return _vehicles(VisitStore(db).list_all())


@router.get("/vehicles/in-progress", summary="Visits at job card creation")
def job_card_in_progress(db: Session = Depends(get_db)):
    return _vehicles(VisitStore(db).list_at_stage(settings.JOB_CARD_STAGE))


@router.get("/vehicles/bay-in-progress", summary="Visits at bay work")
def bay_in_progress(db: Session = Depends(get_db)):
    return _vehicles(VisitStore(db).list_at_stage(settings.BAY_WORK_STAGE))


@router.get("/vehicles/final-inspection-in-progress", summary="Visits at final inspection")
def final_inspection_in_progress(db: Session = Depends(get_db)):
    return _vehicles(VisitStore(db).list_at_stage(settings.FINAL_INSPECTION_STAGE))


@router.get("/vehicles/washing-in-progress", summary="Visits at washing")
def washing_in_progress(db: Session = Depends(get_db)):
    return _vehicles(VisitStore(db).list_at_stage(settings.WASHING_STAGE))


@router.get("/vehicles/{vehicle_number}", summary="Visit history of one vehicle")
def vehicle_history(vehicle_number: str, db: Session = Depends(get_db)):
    """Newest visit first. Vehicle number is matched case/whitespace-insensitively."""
    plate = normalize_vehicle_number(vehicle_number)
    visits = VisitStore(db).list_for_vehicle(plate)
    if not visits:
        raise NotFoundError(f"No visits recorded for vehicle {plate}.")
    return _vehicles(visits)


@router.delete("/vehicles", summary="Delete all visits")
def delete_vehicles(db: Session = Depends(get_db)):
    """Irreversible. Used to reset demo / test data."""
    deleted = VisitStore(db).delete_all()
    return {"success": True, "message": "All vehicles deleted.", "deletedCount": deleted}


@router.get("/stages", summary="Role → stage display labels")
def stage_labels():
    return {"success": True, "stages": settings.ROLE_STAGE_LABELS}


def _vehicles(visits) -> dict:
    return {"success": True, "vehicles": [serialize_visit(v) for v in visits]}
