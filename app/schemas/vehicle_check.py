# app/schemas/vehicle_check.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class VehicleCheckIn(BaseModel):
    """
    Body of POST /vehicle-check.
    Fields are optional here so that a missing one gets the tracker's own
    400 envelope instead of FastAPI's 422.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vehicle_number: Optional[str] = None
    role: Optional[str] = None
    stage_name: Optional[str] = None
    event_type: Optional[str] = None
