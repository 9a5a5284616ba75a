"""
Live Leaderboard - FastAPI Application

Serves the ranked team list with an admin API for editing it. Live
displays follow committed changes over a Server-Sent Events stream.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from . import config
from .api.dependencies import get_broker, reset_dependencies
from .api.routes import router
from .services import Unauthorized, ValidationError
from .storage import NotFoundError, StoreError, get_database, reset_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        db = get_database()
        logger.info("Store ready (%s)", "ok" if db.health_check() else "unhealthy")
    except StoreError as e:
        # The API still starts; /api/teams reports the failure per request.
        logger.error("Store unavailable at startup: %s", e)

    logger.info("App is ready.")

    yield

    logger.info("Shutting down...")
    get_broker().close()
    reset_dependencies()
    reset_database()


# Initialize FastAPI app with lifespan
app = FastAPI(
    title="Live Leaderboard",
    description="Ranked team scores with live push updates",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
    return _error(401, str(exc))


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(400, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(400, "Invalid request")
    field = ".".join(str(part) for part in errors[0].get("loc", ())[1:]) or "request"
    return _error(400, f"Invalid {field}: {errors[0].get('msg', 'invalid value')}")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, str(exc))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(f"[API] Store error on {request.method} {request.url.path}: {exc}")
    return _error(500, "Database error")


@app.get("/", response_class=HTMLResponse)
async def home():
    """Landing page listing the API."""
    return HTMLResponse(
        content="""
        <html>
        <head><title>Live Leaderboard</title></head>
        <body style="font-family: sans-serif; padding: 40px;">
            <h1>Live Leaderboard</h1>
            <p>API is running.</p>
            <h2>API Endpoints:</h2>
            <ul>
                <li><a href="/api/teams">GET /api/teams</a> - Ranked teams</li>
                <li><a href="/api/teams/events">GET /api/teams/events</a> - Live change stream</li>
                <li><a href="/api/auth/check">GET /api/auth/check</a> - Admin session status</li>
                <li><a href="/health">GET /health</a> - Health check</li>
                <li><a href="/docs">API Documentation</a></li>
            </ul>
        </body>
        </html>
        """,
        status_code=200
    )


# Run with: uvicorn leaderboard.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
