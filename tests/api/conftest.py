"""Pytest fixtures for API tests.

Provides a TestClient with the database, generation backend and config
dependencies overridden.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from sse_starlette.sse import AppStatus

from messageai.api.dependencies import get_backend, get_config
from messageai.api.main import app
from messageai.config import RuntimeConfig
from messageai.db.connection import get_db
from tests.helpers import ScriptedBackend


@pytest.fixture
def backend() -> ScriptedBackend:
    """Scripted backend; tests append scripts before sending messages."""
    return ScriptedBackend()


@pytest.fixture
def client(db_session: Session, backend: ScriptedBackend) -> Generator[TestClient, None, None]:
    """Create a TestClient with overridden dependencies.

    Args:
        db_session: Test database session fixture.
        backend: Scripted generation backend.

    Yields:
        TestClient configured for testing.
    """

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    # sse-starlette keeps a process-wide exit event bound to the first loop
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_config] = lambda: RuntimeConfig(heartbeat_seconds=30.0)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
