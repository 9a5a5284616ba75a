"""FastAPI dependencies for dependency injection."""

from functools import lru_cache
from typing import Optional

from fastapi import Cookie

from leaderboard.services import AdminGate, LoginRateLimiter, TeamService
from leaderboard.storage import get_database
from leaderboard.sync import ChangeBroker

_team_service: Optional[TeamService] = None


@lru_cache
def get_broker() -> ChangeBroker:
    """Get the process-wide change broker."""
    return ChangeBroker()


@lru_cache
def get_admin_gate() -> AdminGate:
    """Get the admin gate built from configuration."""
    return AdminGate()


@lru_cache
def get_login_limiter() -> LoginRateLimiter:
    """Get the failed-login limiter."""
    return LoginRateLimiter()


def get_team_service() -> TeamService:
    """Get the team service dependency."""
    global _team_service
    if _team_service is None:
        _team_service = TeamService(get_database(), get_admin_gate(), get_broker())
    return _team_service


def get_session_token(admin_session: Optional[str] = Cookie(None)) -> Optional[str]:
    """Read the admin session token from its cookie."""
    return admin_session


def reset_dependencies() -> None:
    """Drop cached services (for testing or reconfiguration)."""
    global _team_service
    _team_service = None
    get_broker.cache_clear()
    get_admin_gate.cache_clear()
    get_login_limiter.cache_clear()
