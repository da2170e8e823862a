"""Pytest fixtures and configuration for TonyOS tests."""

import os

# Keep the app's module-level engine off the local dev database file.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from unittest.mock import MagicMock
import uuid

from tonyos.database.database import Base
from tonyos.database import models  # noqa: F401
from tonyos.database.repository import TaskRepository
from tonyos.integrations.openai_client import OpenAIClient
from tonyos.models.task import Task, TaskStatus, TaskBucket


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed reference instant for time-dependent scoring tests
NOW = datetime(2026, 1, 15, 12, 0, 0)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def now():
    """Fixed 'current time' for scoring tests."""
    return NOW


@pytest.fixture
def sample_task_base():
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    No score overrides are set, so every score is inferred.
    """
    return {
        "id": str(uuid.uuid4()),
        "title": "Test Task",
        "description": None,
        "area": None,
        "status": TaskStatus.OPEN,
        "bucket": TaskBucket.LATER,
        "priority": 3,
        "due_date": None,
        "estimated_minutes": None,
        "leverage_score": None,
        "urgency_score": None,
        "risk_score": None,
        "friction_score": None,
        "created_at": NOW,
        "updated_at": NOW,
    }


@pytest.fixture
def sample_task(sample_task_base):
    """Create a sample Task object for testing."""
    return Task(**sample_task_base)


@pytest.fixture
def make_task(sample_task_base):
    """Factory for tasks with a fresh id and selected fields overridden."""
    def _make(**overrides) -> Task:
        return Task(**{**sample_task_base, "id": str(uuid.uuid4()), **overrides})
    return _make


@pytest.fixture
def fake_ai_client():
    """OpenAI client stand-in; tests set return values per call."""
    client = MagicMock(spec=OpenAIClient)
    client.is_configured = True
    client.extract_tasks.return_value = []
    client.prioritization_advice.return_value = ""
    return client


@pytest.fixture
def test_client(db_session: Session, fake_ai_client):
    """Create a FastAPI test client with the database and AI client overridden."""
    from tonyos.api.app import app, get_ai_client
    from tonyos.database.database import get_db

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: fake_ai_client

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
