# app/models/visit.py
"""
Visits table — one physical presence of a vehicle in the service facility.
A vehicle number can have many visits over time; only one is open at once.
status / job_card_started / current_stage_name are derived from the stage
history and rewritten on every event (see services/visit_status.py).
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class Visit(Base):
    __tablename__ = "visits"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_number = Column(Text, nullable=False, index=True)
    entry_time = Column(DateTime, nullable=False, index=True)
    exit_time = Column(DateTime)
    status = Column(String(30), nullable=False, default="Pending")
    job_card_started = Column(Boolean, nullable=False, default=False)
    current_stage_name = Column(Text, index=True)
    version_id = Column(Integer, nullable=False)

    stages = relationship(
        "StageEvent",
        back_populates="visit",
        order_by="StageEvent.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # Bumped by the store on every write; UPDATE ... WHERE version_id = <read value>
    __mapper_args__ = {"version_id_col": version_id, "version_id_generator": False}

    def __repr__(self):
        return f"<Visit {self.id} vehicle={self.vehicle_number} status={self.status}>"


class OpenVisit(Base):
    __tablename__ = "open_visits"

    vehicle_number = Column(Text, primary_key=True)
    visit_id = Column(Integer, ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, unique=True)

    visit = relationship("Visit", lazy="joined")

    def __repr__(self):
        return f"<OpenVisit {self.vehicle_number} → visit {self.visit_id}>"
