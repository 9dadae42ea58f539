"""Shared fixtures: a scripted Cassandra session, tokens and an API client."""

import os
import tempfile
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="learnledger-logs-"))

from fastapi.testclient import TestClient  # noqa: E402

from src.auth.permissions import UserRole  # noqa: E402
from src.auth.security import create_access_token  # noqa: E402
from tests.fakes import StatementResponder  # noqa: E402


SERVICE_ATTRS = (
    "user_directory",
    "catalog_service",
    "progress_service",
    "quiz_service",
    "stats_service",
)


@pytest.fixture
def responder() -> StatementResponder:
    return StatementResponder()


@pytest.fixture
def mock_session(responder: StatementResponder) -> Mock:
    """Mock Cassandra session routing `aexecute` through the responder."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock(query_string=cql))
    # cassandra-asyncio-driver exposes aexecute on the session
    session.aexecute = AsyncMock(side_effect=responder)
    return session


# ==============================================================================
# Identities
# ==============================================================================


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_token(student_id: UUID) -> str:
    """Create a valid student access token."""
    return create_access_token({"sub": str(student_id), "role": UserRole.STUDENT.value})


@pytest.fixture
def admin_token(admin_id: UUID) -> str:
    """Create a valid admin access token."""
    return create_access_token({"sub": str(admin_id), "role": UserRole.ADMIN.value})


@pytest.fixture
def student_headers(student_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {student_token}"}


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}


# ==============================================================================
# API client
# ==============================================================================


@pytest.fixture
def app():
    """The FastAPI app, with any services installed by a test removed afterwards."""
    from src.main import app as fastapi_app

    yield fastapi_app

    for name in SERVICE_ATTRS:
        if hasattr(fastapi_app.state, name):
            delattr(fastapi_app.state, name)


@pytest.fixture
def client(app) -> TestClient:
    """Test client without lifespan (no Cassandra connection)."""
    return TestClient(app)
