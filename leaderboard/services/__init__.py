"""Services for the live leaderboard application."""

from leaderboard.services.auth import AdminGate, LoginRateLimiter
from leaderboard.services.exceptions import Unauthorized, ValidationError
from leaderboard.services.team_service import TeamService, parse_team_list

__all__ = [
    "AdminGate",
    "LoginRateLimiter",
    "Unauthorized",
    "ValidationError",
    "TeamService",
    "parse_team_list",
]
