"""API route definitions."""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from leaderboard import config
from leaderboard.api.dependencies import (
    get_admin_gate,
    get_broker,
    get_login_limiter,
    get_session_token,
    get_team_service,
)
from leaderboard.services import AdminGate, LoginRateLimiter, TeamService, Unauthorized
from leaderboard.storage import StoreError
from leaderboard.sync import ChangeBroker, to_change_payload
from leaderboard.types import BulkImportResponseDict, ErrorResponseDict, HealthDict

logger = logging.getLogger(__name__)
router = APIRouter()

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, must-revalidate",
    "CDN-Cache-Control": "no-store",
}


class CreateTeamRequest(BaseModel):
    team_name: Optional[str] = None


class ScoreUpdateRequest(BaseModel):
    id: Optional[str] = None
    newScore: int
    reason: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    id: Optional[str] = None
    status: str


class BulkImportRequest(BaseModel):
    teamsList: Optional[str] = None


class LoginRequest(BaseModel):
    password: Optional[str] = None


# ============================================================================
# PUBLIC
# ============================================================================

@router.get("/api/teams")
async def list_teams(service: TeamService = Depends(get_team_service)) -> JSONResponse:
    """Get all teams, ranked. Never cached by intermediaries."""
    try:
        teams = service.list_teams()
    except StoreError as e:
        logger.error(f"Error fetching teams: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch teams"},
            headers=NO_STORE_HEADERS,
        )

    return JSONResponse(
        content={"success": True, "data": [t.to_wire() for t in teams]},
        headers=NO_STORE_HEADERS,
    )


@router.get("/api/teams/events")
async def team_events(
    request: Request,
    broker: ChangeBroker = Depends(get_broker),
) -> StreamingResponse:
    """Push stream of team changes (Server-Sent Events).

    Sends a ``subscribed`` frame once the subscription is registered, then
    one ``change`` frame per committed mutation, with comment keepalives
    while idle.
    """
    async def gen():
        # Registered on first iteration; a response cancelled earlier holds nothing
        subscription = broker.subscribe()
        try:
            yield "event: subscribed\ndata: {}\n\n"
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(
                        subscription.get(), timeout=config.SSE_KEEPALIVE_SECONDS
                    )
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if event is None:
                    break
                payload = json.dumps(to_change_payload(event), separators=(",", ":"))
                yield f"event: change\ndata: {payload}\n\n"
        finally:
            broker.unsubscribe(subscription)

    return StreamingResponse(
        gen(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-store", "X-Accel-Buffering": "no"},
    )


# ============================================================================
# ADMIN
# ============================================================================

@router.post("/api/teams")
async def create_team(
    body: CreateTeamRequest,
    token: Optional[str] = Depends(get_session_token),
    service: TeamService = Depends(get_team_service),
) -> JSONResponse:
    """Create a team with score 0 and active status."""
    record = service.create_team(token, body.team_name)
    return JSONResponse(content={"success": True, "data": record.to_wire()})


@router.delete("/api/teams")
async def delete_team(
    id: Optional[str] = Query(None, description="Team ID"),
    token: Optional[str] = Depends(get_session_token),
    service: TeamService = Depends(get_team_service),
) -> JSONResponse:
    """Delete a team."""
    service.delete_team(token, id)
    return JSONResponse(content={"success": True})


@router.patch("/api/teams/score")
async def update_score(
    body: ScoreUpdateRequest,
    token: Optional[str] = Depends(get_session_token),
    service: TeamService = Depends(get_team_service),
) -> JSONResponse:
    """Set a team's score; the change is written to the score history."""
    record = service.update_score(token, body.id, body.newScore, reason=body.reason)
    return JSONResponse(content={"success": True, "data": record.to_wire()})


@router.patch("/api/teams/status")
async def update_status(
    body: StatusUpdateRequest,
    token: Optional[str] = Depends(get_session_token),
    service: TeamService = Depends(get_team_service),
) -> JSONResponse:
    """Set a team's status."""
    record = service.update_status(token, body.id, body.status)
    return JSONResponse(content={"success": True, "data": record.to_wire()})


@router.post("/api/teams/bulk-import")
async def bulk_import(
    body: BulkImportRequest,
    token: Optional[str] = Depends(get_session_token),
    service: TeamService = Depends(get_team_service),
) -> JSONResponse:
    """Create one team per non-blank line of ``teamsList``."""
    count = service.bulk_insert(token, body.teamsList)
    result: BulkImportResponseDict = {
        "success": True,
        "count": count,
        "message": f"Successfully imported {count} team(s)",
    }
    return JSONResponse(content=result)


@router.get("/api/teams/history")
async def score_history(
    id: Optional[str] = Query(None, description="Team ID"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Maximum entries"),
    token: Optional[str] = Depends(get_session_token),
    service: TeamService = Depends(get_team_service),
) -> JSONResponse:
    """Get a team's score history, newest first."""
    entries = service.score_history(token, id, limit=limit)
    return JSONResponse(content={
        "success": True,
        "data": [e.model_dump(mode="json") for e in entries],
    })


# ============================================================================
# AUTH
# ============================================================================

@router.post("/api/auth/login")
async def login(
    body: LoginRequest,
    request: Request,
    gate: AdminGate = Depends(get_admin_gate),
    limiter: LoginRateLimiter = Depends(get_login_limiter),
) -> JSONResponse:
    """
    Exchange the admin password for a session cookie.

    Rate limited per client after repeated failures.
    """
    client = request.client.host if request.client else "unknown"

    allowed, wait_seconds = limiter.check(client)
    if not allowed:
        throttled: ErrorResponseDict = {
            "success": False,
            "error": f"Too many failed attempts. Please wait {wait_seconds} seconds",
            "retry_after": wait_seconds,
        }
        return JSONResponse(status_code=429, content=throttled)

    try:
        token = gate.login(body.password)
    except Unauthorized:
        limiter.record_failure(client)
        logger.info("Failed admin login from %s", client)
        return JSONResponse(
            status_code=401,
            content={"success": False, "error": "Invalid password"},
        )

    limiter.reset(client)
    logger.info("Admin login from %s", client)

    response = JSONResponse(content={"success": True})
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        token,
        max_age=gate.max_age_seconds,
        path="/",
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return response


@router.post("/api/auth/logout")
async def logout() -> JSONResponse:
    """Clear the admin session cookie."""
    response = JSONResponse(content={"success": True})
    response.delete_cookie(config.SESSION_COOKIE_NAME, path="/")
    return response


@router.get("/api/auth/check")
async def check_auth(
    token: Optional[str] = Depends(get_session_token),
    gate: AdminGate = Depends(get_admin_gate),
) -> JSONResponse:
    """Report whether the caller holds a valid admin session."""
    return JSONResponse(
        content={"authenticated": gate.is_authorized(token)},
        headers={"Cache-Control": "no-store, must-revalidate"},
    )


# ============================================================================
# HEALTH
# ============================================================================

@router.get("/health")
async def health(
    service: TeamService = Depends(get_team_service),
    broker: ChangeBroker = Depends(get_broker),
) -> JSONResponse:
    """Health check endpoint."""
    database_ok = service.db.health_check()
    result: HealthDict = {
        "status": "ok" if database_ok else "degraded",
        "database": database_ok,
        "subscribers": broker.subscriber_count,
    }
    return JSONResponse(status_code=200 if database_ok else 503, content=result)
