# app/models/stage_event.py
"""
Stage events table — append-only log of what each role reported for a visit.
Rows are never updated or deleted individually; insertion order (id) is the only order.
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class StageEvent(Base):
    __tablename__ = "stage_events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    visit_id = Column(Integer, ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, index=True)
    stage_name = Column(Text, nullable=False)    # e.g. Security Gate, Washing
    role = Column(Text, nullable=False)          # who reported it
    event_type = Column(Text, nullable=False)    # Entry | Start | Finish | Exit, open-ended
    timestamp = Column(DateTime, nullable=False)

    visit = relationship("Visit", back_populates="stages")

    def __repr__(self):
        return f"<StageEvent {self.id} {self.event_type}@{self.stage_name} by={self.role}>"
