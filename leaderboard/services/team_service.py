"""
Team Service - admin-gated access to the team table.

Every mutating call checks the admin credential before touching the store,
writes through the DatabaseInterface, and then publishes the committed
change to the ChangeBroker so open displays see it immediately.
"""

import logging
from typing import List, Optional

from ..models import TeamRecord, TeamStatus, ScoreHistoryEntry
from ..storage import DatabaseInterface, NotFoundError, StoreError
from ..sync.broker import ChangeBroker
from ..sync.events import ChangeEvent, Delete, Insert, Update
from .auth import AdminGate
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


def parse_team_list(text: Optional[str]) -> List[str]:
    """Split a bulk-import block into team names.

    One name per line; lines are trimmed and blank lines dropped.
    """
    if not text:
        return []
    return [line.strip() for line in text.split("\n") if line.strip()]


class TeamService:
    """
    Service layer for the leaderboard's team table.
    Reads are public; writes require an admin session token.
    """

    def __init__(
        self,
        db: DatabaseInterface,
        gate: AdminGate,
        broker: Optional[ChangeBroker] = None
    ):
        self.db = db
        self.gate = gate
        self.broker = broker or ChangeBroker()

    def _publish(self, event: ChangeEvent) -> None:
        self.broker.publish(event)

    # =========================================================================
    # READS
    # =========================================================================

    def list_teams(self) -> List[TeamRecord]:
        """All teams in canonical order. No authentication required."""
        return self.db.list_teams()

    def score_history(
        self,
        credential: Optional[str],
        team_id: str,
        limit: Optional[int] = None
    ) -> List[ScoreHistoryEntry]:
        """Score audit log of one team, newest first."""
        self.gate.require(credential)
        if not team_id:
            raise ValidationError("Team ID required")
        if self.db.get_team(team_id) is None:
            raise NotFoundError(team_id)
        return self.db.list_score_history(team_id, limit=limit)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_team(self, credential: Optional[str], name: Optional[str]) -> TeamRecord:
        """Create a team with score 0 and active status."""
        self.gate.require(credential)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Team name is required")

        record = self.db.insert_team(name)
        logger.info("Created team %s (%s)", record.id, record.name)
        self._publish(Insert(record))
        return record

    def delete_team(self, credential: Optional[str], team_id: Optional[str]) -> None:
        """Delete a team."""
        self.gate.require(credential)
        if not team_id:
            raise ValidationError("Team ID required")

        self.db.delete_team(team_id)
        logger.info("Deleted team %s", team_id)
        self._publish(Delete(team_id))

    def update_score(
        self,
        credential: Optional[str],
        team_id: Optional[str],
        new_score: int,
        reason: Optional[str] = None
    ) -> TeamRecord:
        """Set a team's score and record the change in the audit log."""
        self.gate.require(credential)
        if not team_id:
            raise ValidationError("Team ID required")
        if isinstance(new_score, bool) or not isinstance(new_score, int):
            raise ValidationError("Score must be an integer")

        current = self.db.get_team(team_id)
        if current is None:
            raise NotFoundError(team_id)

        record = self.db.update_score(team_id, new_score)
        logger.info("Score of %s: %d -> %d", team_id, current.score, new_score)

        try:
            self.db.insert_score_history(
                team_id,
                old_score=current.score,
                new_score=new_score,
                changed_by="admin",
                reason=reason or None
            )
        except StoreError as e:
            # Score is already committed at this point.
            logger.error("Failed to record score history for %s: %s", team_id, e)

        self._publish(Update(record))
        return record

    def update_status(
        self,
        credential: Optional[str],
        team_id: Optional[str],
        status: str
    ) -> TeamRecord:
        """Set a team's status (active, inactive or disqualified)."""
        self.gate.require(credential)
        if not team_id:
            raise ValidationError("Team ID required")
        try:
            status = TeamStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in TeamStatus)
            raise ValidationError(f"Invalid status {status!r}; expected one of: {allowed}")

        record = self.db.update_status(team_id, status)
        logger.info("Status of %s: %s", team_id, status.value)
        self._publish(Update(record))
        return record

    def bulk_insert(self, credential: Optional[str], teams_list: Optional[str]) -> int:
        """
        Create one team per non-blank line of ``teams_list``.

        Returns:
            Number of teams created

        Raises:
            ValidationError: If no line holds a name; nothing is written
        """
        self.gate.require(credential)
        names = parse_team_list(teams_list)
        if not names:
            raise ValidationError("No teams provided")

        records = self.db.bulk_insert(names)
        logger.info("Imported %d teams", len(records))
        for record in records:
            self._publish(Insert(record))
        return len(records)
