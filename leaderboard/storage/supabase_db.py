"""
Supabase Database Storage for the live leaderboard.

Provides PostgreSQL-based cloud storage using Supabase's REST API.
Key differences from SQLite:
- Uses supabase-py client library (REST API)
- ids and timestamps default on the server side
- initialize() verifies tables exist (doesn't create them)
- Deleting a team relies on ON DELETE CASCADE for its history

Schema must be created first (teams, score_history tables with the
same columns as the SQLite backend).
"""

import os
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from .base import DatabaseInterface
from .exceptions import ConfigurationError, ConnectionError, NotFoundError, QueryError
from ..models import TeamRecord, TeamStatus, ScoreHistoryEntry


class SupabaseDatabase(DatabaseInterface):
    """
    Supabase cloud database implementation.

    Uses PostgreSQL via Supabase's REST API.
    Implements the DatabaseInterface abstract base class.
    """

    def __init__(self):
        """
        Create Supabase database instance.

        Reads configuration from environment variables:
        - SUPABASE_URL: Project URL (e.g., https://your-project.supabase.co)
        - SUPABASE_SERVICE_ROLE_KEY: Service key for admin writes
        - SUPABASE_KEY: Fallback key when no service key is set
        """
        self._url = os.environ.get('SUPABASE_URL')
        self._key = (
            os.environ.get('SUPABASE_SERVICE_ROLE_KEY') or
            os.environ.get('SUPABASE_KEY')
        )
        self._client = None
        self._initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self) -> None:
        """Initialize the database connection and verify schema."""
        if self._initialized:
            return

        if not self._url:
            raise ConfigurationError(
                "SUPABASE_URL environment variable is required for Supabase backend"
            )
        if not self._key:
            raise ConfigurationError(
                "SUPABASE_SERVICE_ROLE_KEY or SUPABASE_KEY environment variable "
                "is required for Supabase backend"
            )

        # Verify connection and schema by querying the team table
        client = self._get_client()
        try:
            client.table('teams').select('id').limit(1).execute()
        except Exception as e:
            raise ConnectionError(
                f"Failed to connect to Supabase or schema not initialized. "
                f"Error: {e}"
            )

        self._initialized = True

    def _get_client(self):
        """Get or create Supabase client."""
        if self._client is None:
            from supabase import create_client

            try:
                self._client = create_client(self._url, self._key)
            except Exception as e:
                raise ConnectionError(f"Failed to create Supabase client: {e}")

        return self._client

    def close(self) -> None:
        """Close database connection (no-op for Supabase REST API)."""
        # REST API doesn't maintain persistent connections
        self._client = None

    def health_check(self) -> bool:
        """Check if the database connection is healthy."""
        try:
            client = self._get_client()
            client.table('teams').select('id').limit(1).execute()
            return True
        except Exception:
            return False

    def _execute(self, query) -> List[Dict[str, Any]]:
        """Run a query builder, mapping client failures to QueryError."""
        try:
            response = query.execute()
        except Exception as e:
            raise QueryError(str(e)) from e
        return response.data or []

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def list_teams(self) -> List[TeamRecord]:
        """Get all teams in canonical order."""
        client = self._get_client()
        rows = self._execute(
            client.table('teams')
            .select('*')
            .order('score', desc=True)
            .order('team_name')
        )
        return [TeamRecord.model_validate(row) for row in rows]

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        """Get a single team by id."""
        client = self._get_client()
        rows = self._execute(
            client.table('teams').select('*').eq('id', team_id).limit(1)
        )
        return TeamRecord.model_validate(rows[0]) if rows else None

    def list_score_history(self, team_id: str, limit: Optional[int] = None) -> List[ScoreHistoryEntry]:
        """Get a team's score audit log, newest first."""
        client = self._get_client()
        query = (
            client.table('score_history')
            .select('*')
            .eq('team_id', team_id)
            .order('changed_at', desc=True)
        )
        if limit:
            query = query.limit(limit)
        return [ScoreHistoryEntry.model_validate(row) for row in self._execute(query)]

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    def insert_team(self, name: str) -> TeamRecord:
        """Create one team."""
        return self.bulk_insert([name])[0]

    def bulk_insert(self, names: List[str]) -> List[TeamRecord]:
        """Create teams with a single insert request."""
        client = self._get_client()
        rows = [
            {'team_name': name, 'score': 0, 'status': TeamStatus.ACTIVE.value}
            for name in names
        ]
        inserted = self._execute(client.table('teams').insert(rows))
        return [TeamRecord.model_validate(row) for row in inserted]

    def _update(self, team_id: str, values: Dict[str, Any]) -> TeamRecord:
        client = self._get_client()
        rows = self._execute(
            client.table('teams').update(values).eq('id', team_id)
        )
        if not rows:
            raise NotFoundError(team_id)
        return TeamRecord.model_validate(rows[0])

    def update_score(self, team_id: str, new_score: int) -> TeamRecord:
        """Set a team's score."""
        now = datetime.now(timezone.utc).isoformat()
        return self._update(team_id, {
            'score': new_score,
            'last_score_update': now,
            'updated_at': now
        })

    def update_status(self, team_id: str, status: TeamStatus) -> TeamRecord:
        """Set a team's status."""
        return self._update(team_id, {
            'status': TeamStatus(status).value,
            'updated_at': datetime.now(timezone.utc).isoformat()
        })

    def delete_team(self, team_id: str) -> None:
        """Delete a team."""
        client = self._get_client()
        rows = self._execute(client.table('teams').delete().eq('id', team_id))
        if not rows:
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
        client = self._get_client()
        rows = self._execute(client.table('score_history').insert({
            'team_id': team_id,
            'old_score': old_score,
            'new_score': new_score,
            'changed_by': changed_by,
            'reason': reason
        }))
        return ScoreHistoryEntry.model_validate(rows[0])

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def clear_all(self) -> None:
        """Delete all data from the database."""
        client = self._get_client()
        # PostgREST refuses unfiltered deletes
        self._execute(client.table('score_history').delete().not_.is_('id', 'null'))
        self._execute(client.table('teams').delete().not_.is_('id', 'null'))
