"""
Type definitions for the live leaderboard.

Provides TypedDict classes describing the JSON shapes exchanged over HTTP
and the push stream.
"""

from typing import TypedDict, Optional, List


class TeamRowDict(TypedDict, total=False):
    """One team as serialized on the wire (team table column names)."""
    id: str
    team_name: str
    score: int
    status: str  # active, inactive, disqualified
    last_score_update: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]


class ChangePayloadDict(TypedDict):
    """Body of a push-stream ``change`` frame."""
    eventType: str  # INSERT, UPDATE, DELETE
    new: TeamRowDict
    old: dict  # {"id": ...} for DELETE, empty otherwise


class TeamsResponseDict(TypedDict):
    """Response from GET /api/teams."""
    success: bool
    data: List[TeamRowDict]


class ErrorResponseDict(TypedDict, total=False):
    """Error body returned by every endpoint."""
    success: bool
    error: str
    retry_after: int  # Only present when login is throttled


class BulkImportResponseDict(TypedDict):
    """Response from POST /api/teams/bulk-import."""
    success: bool
    count: int
    message: str


class HealthDict(TypedDict):
    """Response from GET /health."""
    status: str
    database: bool
    subscribers: int
