"""
Abstract base class defining the record store interface.

All store implementations must inherit from this class and implement
all abstract methods. This ensures consistent behavior across backends.
"""

from abc import ABC, abstractmethod
from typing import Optional, List

from ..models import TeamRecord, TeamStatus, ScoreHistoryEntry


class DatabaseInterface(ABC):
    """
    Abstract interface for leaderboard storage.

    Covers the team table and the score-history audit log.
    Every read of the team table returns records in canonical order:
    score descending, then team name ascending.
    """

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize the database connection and schema.

        Called once when the database is first created.
        Should be idempotent (safe to call multiple times).
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connections and clean up resources."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """
        Check if the database connection is healthy.

        Returns:
            True if database is accessible, False otherwise
        """
        pass

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    @abstractmethod
    def list_teams(self) -> List[TeamRecord]:
        """
        Get all teams.

        Returns:
            Teams ordered by score descending, then name ascending
        """
        pass

    @abstractmethod
    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        """
        Get a single team.

        Returns:
            The team, or None if no team has this id
        """
        pass

    @abstractmethod
    def list_score_history(self, team_id: str, limit: Optional[int] = None) -> List[ScoreHistoryEntry]:
        """
        Get the score audit log of a team, newest first.

        Args:
            team_id: Team to read history for
            limit: Maximum number of entries to return
        """
        pass

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    @abstractmethod
    def insert_team(self, name: str) -> TeamRecord:
        """
        Create a team with score 0 and active status.

        Returns:
            The stored record, including its generated id
        """
        pass

    @abstractmethod
    def bulk_insert(self, names: List[str]) -> List[TeamRecord]:
        """
        Create many teams in one write, each with score 0 and active status.

        Behavior:
            - All rows are written or none are
            - Duplicate names are allowed

        Returns:
            The stored records, in input order
        """
        pass

    @abstractmethod
    def update_score(self, team_id: str, new_score: int) -> TeamRecord:
        """
        Set a team's score and stamp last_score_update with the current time.

        Returns:
            The updated record

        Raises:
            NotFoundError: If no team has this id
        """
        pass

    @abstractmethod
    def update_status(self, team_id: str, status: TeamStatus) -> TeamRecord:
        """
        Set a team's status.

        Returns:
            The updated record

        Raises:
            NotFoundError: If no team has this id
        """
        pass

    @abstractmethod
    def delete_team(self, team_id: str) -> None:
        """
        Delete a team and its score history.

        Raises:
            NotFoundError: If no team has this id
        """
        pass

    @abstractmethod
    def insert_score_history(
        self,
        team_id: str,
        old_score: int,
        new_score: int,
        changed_by: str = 'admin',
        reason: Optional[str] = None
    ) -> ScoreHistoryEntry:
        """
        Append one row to the score audit log.

        Returns:
            The stored entry
        """
        pass

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    @abstractmethod
    def clear_all(self) -> None:
        """
        Delete all data from the database.

        Used for testing. Does not drop tables/schema, just data.
        """
        pass
