# tests/conftest.py
"""Shared fixtures: every test runs against a fresh in-memory SQLite database."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from app.database import SessionLocal, create_tables, drop_tables


@pytest.fixture
def db():
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()
