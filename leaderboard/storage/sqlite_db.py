"""
SQLite Database Storage for the live leaderboard.

Provides storage of the team table and the score audit log with:
- Indexed ordering for the canonical leaderboard query
- Atomic transactions for data safety
- Concurrent read access via WAL mode

This is the SQLite implementation of the DatabaseInterface.
"""

import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Iterator, List

from .base import DatabaseInterface
from .exceptions import NotFoundError, QueryError, SchemaError
from ..models import TeamRecord, TeamStatus, ScoreHistoryEntry


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteDatabase(DatabaseInterface):
    """
    SQLite database for leaderboard storage.
    Thread-safe with connection per thread.

    Implements the DatabaseInterface abstract base class.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str = "data/leaderboard.db"):
        """
        Create SQLite database instance.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self) -> None:
        """Initialize the database connection and schema."""
        if self._initialized:
            return

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._init_schema()
        except QueryError as e:
            raise SchemaError(f"Failed to initialize schema: {e}") from e
        self._initialized = True

    def close(self) -> None:
        """Close database connections and clean up resources."""
        if hasattr(self._local, 'conn') and self._local.conn is not None:
            self._local.conn.close()
            self._local.conn = None

    def health_check(self) -> bool:
        """Check if the database connection is healthy."""
        try:
            conn = self._get_connection()
            conn.execute("SELECT 1")
            return True
        except sqlite3.Error:
            return False

    # =========================================================================
    # CONNECTION MANAGEMENT
    # =========================================================================

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, 'conn') or self._local.conn is None:
            self._local.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=30.0
            )
            self._local.conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrent access
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA synchronous=NORMAL")
            self._local.conn.execute("PRAGMA foreign_keys=ON")
        return self._local.conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise QueryError(str(e)) from e
        except Exception:
            conn.rollback()
            raise

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self.transaction() as conn:
            conn.executescript('''
                -- Metadata table
                CREATE TABLE IF NOT EXISTS metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                -- Teams
                CREATE TABLE IF NOT EXISTS teams (
                    id TEXT PRIMARY KEY,
                    team_name TEXT NOT NULL,
                    score INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'active'
                        CHECK (status IN ('active', 'inactive', 'disqualified')),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    last_score_update TEXT
                );

                -- Score audit log
                CREATE TABLE IF NOT EXISTS score_history (
                    id TEXT PRIMARY KEY,
                    team_id TEXT NOT NULL,
                    old_score INTEGER NOT NULL,
                    new_score INTEGER NOT NULL,
                    changed_by TEXT NOT NULL,
                    changed_at TEXT NOT NULL,
                    reason TEXT,
                    FOREIGN KEY (team_id) REFERENCES teams(id) ON DELETE CASCADE
                );

                -- Indexes for fast queries
                CREATE INDEX IF NOT EXISTS idx_teams_ranking ON teams(score DESC, team_name ASC);
                CREATE INDEX IF NOT EXISTS idx_history_team ON score_history(team_id, changed_at);
            ''')

            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                ('schema_version', str(self.SCHEMA_VERSION))
            )

    @staticmethod
    def _row_to_team(row: sqlite3.Row) -> TeamRecord:
        return TeamRecord(
            id=row['id'],
            team_name=row['team_name'],
            score=row['score'],
            status=row['status'],
            last_score_update=row['last_score_update'],
            created_at=row['created_at'],
            updated_at=row['updated_at']
        )

    def _require_team(self, conn: sqlite3.Connection, team_id: str) -> TeamRecord:
        row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            raise NotFoundError(team_id)
        return self._row_to_team(row)

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def list_teams(self) -> List[TeamRecord]:
        """Get all teams in canonical order."""
        with self.transaction() as conn:
            rows = conn.execute('''
                SELECT * FROM teams
                ORDER BY score DESC, team_name ASC, created_at ASC
            ''').fetchall()
        return [self._row_to_team(row) for row in rows]

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        """Get a single team by id."""
        with self.transaction() as conn:
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
        return self._row_to_team(row) if row else None

    def list_score_history(self, team_id: str, limit: Optional[int] = None) -> List[ScoreHistoryEntry]:
        """Get a team's score audit log, newest first."""
        query = '''
            SELECT * FROM score_history
            WHERE team_id = ?
            ORDER BY changed_at DESC, rowid DESC
        '''
        params: list = [team_id]
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [ScoreHistoryEntry(**dict(row)) for row in rows]

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    def insert_team(self, name: str) -> TeamRecord:
        """Create one team."""
        return self.bulk_insert([name])[0]

    def bulk_insert(self, names: List[str]) -> List[TeamRecord]:
        """Create teams in a single transaction."""
        now = _now()
        rows = [
            (str(uuid.uuid4()), name, 0, TeamStatus.ACTIVE.value, now, now)
            for name in names
        ]

        with self.transaction() as conn:
            conn.executemany('''
                INSERT INTO teams (id, team_name, score, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', rows)

        return [
            TeamRecord(
                id=team_id,
                team_name=name,
                score=score,
                status=status,
                created_at=created_at,
                updated_at=updated_at
            )
            for team_id, name, score, status, created_at, updated_at in rows
        ]

    def update_score(self, team_id: str, new_score: int) -> TeamRecord:
        """Set a team's score."""
        now = _now()
        with self.transaction() as conn:
            cursor = conn.execute('''
                UPDATE teams
                SET score = ?, last_score_update = ?, updated_at = ?
                WHERE id = ?
            ''', (new_score, now, now, team_id))
            if cursor.rowcount == 0:
                raise NotFoundError(team_id)
            return self._require_team(conn, team_id)

    def update_status(self, team_id: str, status: TeamStatus) -> TeamRecord:
        """Set a team's status."""
        with self.transaction() as conn:
            cursor = conn.execute('''
                UPDATE teams SET status = ?, updated_at = ? WHERE id = ?
            ''', (TeamStatus(status).value, _now(), team_id))
            if cursor.rowcount == 0:
                raise NotFoundError(team_id)
            return self._require_team(conn, team_id)

    def delete_team(self, team_id: str) -> None:
        """Delete a team; its history goes with it."""
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM teams WHERE id = ?", (team_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(team_id)

    def insert_score_history(
        self,
        team_id: str,
        old_score: int,
        new_score: int,
        changed_by: str = 'admin',
        reason: Optional[str] = None
    ) -> ScoreHistoryEntry:
        """Append a score audit row."""
        entry = ScoreHistoryEntry(
            id=str(uuid.uuid4()),
            team_id=team_id,
            old_score=old_score,
            new_score=new_score,
            changed_by=changed_by,
            changed_at=_now(),
            reason=reason
        )
        with self.transaction() as conn:
            conn.execute('''
                INSERT INTO score_history
                (id, team_id, old_score, new_score, changed_by, changed_at, reason)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (
                entry.id,
                entry.team_id,
                entry.old_score,
                entry.new_score,
                entry.changed_by,
                entry.changed_at.isoformat(),
                entry.reason
            ))
        return entry

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def clear_all(self) -> None:
        """Delete all data from the database."""
        with self.transaction() as conn:
            conn.executescript('''
                DELETE FROM score_history;
                DELETE FROM teams;
            ''')
