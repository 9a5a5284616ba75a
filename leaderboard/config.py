"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

import os


def _get_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes')


def _get_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


# =============================================================================
# SERVER SETTINGS
# =============================================================================
PORT = _get_int('PORT', 8000)
HOST = _get_str('HOST', '0.0.0.0')

# =============================================================================
# STORAGE SETTINGS
# =============================================================================
# Backend: "sqlite" (default) or "supabase"
DB_TYPE = _get_str('DB_TYPE', 'sqlite').lower()

# Directory holding the SQLite database file
DATA_DIR = (
    os.environ.get('DATA_DIR') or
    ('/app/data' if os.path.exists('/app') else 'data')
)

# =============================================================================
# ADMIN AUTH
# =============================================================================
ADMIN_PASSWORD = _get_str('ADMIN_PASSWORD', 'change-me-in-production')

# Key used to sign session tokens; falls back to the admin password
SESSION_SECRET = _get_str('SESSION_SECRET', ADMIN_PASSWORD)

SESSION_COOKIE_NAME = 'admin_session'

# Default: 8 hours
SESSION_MAX_AGE_SECONDS = _get_int('SESSION_MAX_AGE_SECONDS', 60 * 60 * 8)

SESSION_COOKIE_SECURE = _get_bool('SESSION_COOKIE_SECURE', True)

# =============================================================================
# RATE LIMITING
# =============================================================================
# Failed logins allowed per client inside one cooldown window
LOGIN_MAX_ATTEMPTS = _get_int('LOGIN_MAX_ATTEMPTS', 5)

# Length of the failed-login window (in seconds)
LOGIN_COOLDOWN_SECONDS = _get_int('LOGIN_COOLDOWN_SECONDS', 60)

# =============================================================================
# LIVE SYNC SETTINGS
# =============================================================================
# Push channel must confirm within this many seconds or the display degrades
CONNECT_TIMEOUT_SECONDS = _get_float('CONNECT_TIMEOUT_SECONDS', 5.0)

# Snapshot polling interval while degraded
POLL_INTERVAL_SECONDS = _get_float('POLL_INTERVAL_SECONDS', 2.0)

# Comment frames sent on idle push streams
SSE_KEEPALIVE_SECONDS = _get_float('SSE_KEEPALIVE_SECONDS', 15.0)

# Server the display CLI connects to
LEADERBOARD_URL = _get_str('LEADERBOARD_URL', 'http://localhost:8000')

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = _get_str('LOG_LEVEL', 'INFO')
