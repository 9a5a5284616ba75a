"""Team and score-history data models."""

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TeamStatus(str, Enum):
    """Competition status of a team."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DISQUALIFIED = "disqualified"


class TeamRecord(BaseModel):
    """One row of the team table, as seen by the display."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., alias="team_name", min_length=1)
    score: int = 0
    status: TeamStatus = TeamStatus.ACTIVE
    last_update: Optional[datetime] = Field(None, alias="last_score_update")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize using the column names of the team table."""
        return self.model_dump(mode="json", by_alias=True)


class ScoreHistoryEntry(BaseModel):
    """Audit row written on every score change."""

    id: str
    team_id: str
    old_score: int
    new_score: int
    changed_by: str = "admin"
    changed_at: Optional[datetime] = None
    reason: Optional[str] = None


def canonical_order(teams: Iterable[TeamRecord]) -> List[TeamRecord]:
    """Sort by score descending, then name ascending.

    sorted() is stable, so records that tie on both keys keep their
    incoming relative order.
    """
    return sorted(teams, key=lambda t: (-t.score, t.name))
