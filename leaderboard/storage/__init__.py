"""
Storage module for leaderboard data.

Provides a unified interface for multiple database backends:
- SQLite (local development, self-hosted)
- Supabase (PostgreSQL, hosted)

Usage:
    from leaderboard.storage import get_database

    db = get_database()  # Uses DB_TYPE env var
    teams = db.list_teams()
"""

from .base import DatabaseInterface
from .factory import get_database, reset_database
from .exceptions import (
    StoreError,
    ConnectionError,
    ConfigurationError,
    SchemaError,
    QueryError,
    NotFoundError
)

__all__ = [
    'DatabaseInterface',
    'get_database',
    'reset_database',
    'StoreError',
    'ConnectionError',
    'ConfigurationError',
    'SchemaError',
    'QueryError',
    'NotFoundError'
]
