# app/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL (SQLite works for local runs and tests).
All models are auto-imported here so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from app.config import settings


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {
            "pool_pre_ping": True,       # Auto-reconnect if DB connection drops
            "pool_size": 10,
            "max_overflow": 20,
        }
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        options["poolclass"] = StaticPool
    return options


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,                  # Set True to log all SQL queries (debug only)
    **_engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.visit import Visit, OpenVisit          # noqa
    from app.models.stage_event import StageEvent          # noqa

    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drops every table. Used by the test suite to reset state."""
    from app.models.visit import Visit, OpenVisit          # noqa
    from app.models.stage_event import StageEvent          # noqa

    Base.metadata.drop_all(bind=engine)
