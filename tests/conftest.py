"""
Shared test fixtures and configuration.

Provides reusable fixtures for all test files including database instances,
sample teams, an admin session, and FastAPI test clients.
"""

import pytest
import os
import shutil
import tempfile
from typing import List
from unittest.mock import patch

from fastapi.testclient import TestClient

from leaderboard import config
from leaderboard.api import dependencies
from leaderboard.main import app
from leaderboard.models import TeamRecord, TeamStatus
from leaderboard.services import AdminGate, LoginRateLimiter, TeamService
from leaderboard.storage import get_database, reset_database
from leaderboard.sync import ChangeBroker

TEST_PASSWORD = "test-admin-password"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def test_data_dir():
    """Provide a temporary directory for test data."""
    temp_dir = tempfile.mkdtemp(prefix="leaderboard_test_")
    yield temp_dir

    # Cleanup
    if os.path.exists(temp_dir):
        try:
            shutil.rmtree(temp_dir)
        except PermissionError:
            pass  # Windows file locking, ignore


@pytest.fixture
def db_fixture(test_data_dir):
    """Provide a clean test database instance."""
    with patch.dict(os.environ, {'DB_TYPE': 'sqlite', 'DATA_DIR': test_data_dir}, clear=False):
        reset_database()
        db = get_database()
        yield db
        reset_database()  # Close connection before cleanup


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

def make_team(team_id: str, name: str, score: int = 0, status: str = "active") -> TeamRecord:
    """Build a TeamRecord with the given fields."""
    return TeamRecord(id=team_id, team_name=name, score=score, status=TeamStatus(status))


@pytest.fixture
def sample_teams() -> List[TeamRecord]:
    """Provide a small ranked snapshot."""
    return [
        make_team("t1", "Alpha", 10),
        make_team("t2", "Beta", 10),
        make_team("t3", "Gamma", 5),
    ]


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def gate() -> AdminGate:
    """Provide an admin gate with a known password."""
    return AdminGate(password=TEST_PASSWORD, secret="test-secret")


@pytest.fixture
def admin_token(gate) -> str:
    """Provide a valid admin session token."""
    return gate.login(TEST_PASSWORD)


@pytest.fixture
def broker() -> ChangeBroker:
    return ChangeBroker()


@pytest.fixture
def team_service(db_fixture, gate, broker) -> TeamService:
    """Provide a team service over the test database."""
    return TeamService(db_fixture, gate, broker)


# =============================================================================
# FASTAPI FIXTURES
# =============================================================================

@pytest.fixture
def api_client(team_service, gate, broker, monkeypatch):
    """
    Provide a TestClient wired to the test database and services.

    Session cookies are issued without the Secure flag so the plain-http
    test client sends them back.
    """
    monkeypatch.setattr(config, "SESSION_COOKIE_SECURE", False)
    limiter = LoginRateLimiter(max_attempts=3, cooldown_seconds=60)

    app.dependency_overrides[dependencies.get_team_service] = lambda: team_service
    app.dependency_overrides[dependencies.get_admin_gate] = lambda: gate
    app.dependency_overrides[dependencies.get_broker] = lambda: broker
    app.dependency_overrides[dependencies.get_login_limiter] = lambda: limiter

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    dependencies.reset_dependencies()


@pytest.fixture
def admin_client(api_client):
    """Provide a TestClient holding a valid admin session cookie."""
    response = api_client.post("/api/auth/login", json={"password": TEST_PASSWORD})
    assert response.status_code == 200
    return api_client
