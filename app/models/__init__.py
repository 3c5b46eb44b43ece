# Vehicle Service Tracker — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.visit import Visit, OpenVisit         # noqa
from app.models.stage_event import StageEvent         # noqa
