# app/services/visit_status.py
"""
Derived visit fields, computed as pure folds over the stage history.

  - status:              Pending → Work in Progress (on Start) → Finished (on Finish)
  - job_card_started:    True once a Start is logged at the job-card stage; never reset
  - current_stage_name:  stage of the most recent event

Only Start and Finish move the status. Entry, Exit and any other event type leave it alone.
"""

from typing import Iterable, Optional

PENDING = "Pending"
WORK_IN_PROGRESS = "Work in Progress"
FINISHED = "Finished"

ENTRY = "Entry"
START = "Start"
FINISH = "Finish"
EXIT = "Exit"


def initial_status(event_type: str) -> str:
    """Status of a visit whose history is the single given event."""
    return WORK_IN_PROGRESS if event_type == START else PENDING


def next_status(status: str, event_type: str) -> str:
    if event_type == START:
        return WORK_IN_PROGRESS
    if event_type == FINISH:
        return FINISHED
    return status


def derive_status(events: Iterable) -> Optional[str]:
    """Replay status over a visit's events (objects with .event_type). None for an empty history."""
    status = None
    for event in events:
        if status is None:
            status = initial_status(event.event_type)
        else:
            status = next_status(status, event.event_type)
    return status


def derive_job_card_started(events: Iterable, job_card_stage: str) -> bool:
    return any(e.event_type == START and e.stage_name == job_card_stage for e in events)


def derive_current_stage(events: list) -> Optional[str]:
    return events[-1].stage_name if events else None
