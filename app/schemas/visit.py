# app/schemas/visit.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class StageEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    stage_name: str
    role: str
    event_type: str
    timestamp: datetime


class VisitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    vehicle_number: str
    entry_time: datetime
    exit_time: Optional[datetime]
    status: str
    job_card_started: bool
    current_stage_name: Optional[str]
    stages: list[StageEventOut]


def serialize_visit(visit) -> dict:
    """ORM Visit → camelCase JSON-ready dict."""
    return VisitOut.model_validate(visit).model_dump(by_alias=True, mode="json")
