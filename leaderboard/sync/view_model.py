"""
Ranked in-memory team list rendered by a display.

Every mutation builds a new list and swaps it in, so a reader never sees
a half-applied change. The list always holds at most one record per id,
sorted by score descending, then name ascending.
"""

from typing import Iterable, List, Tuple

from ..models import TeamRecord, canonical_order
from .events import ChangeEvent, Delete, Insert, Update


class ViewModel:
    """Ordered, deduplicated projection of the team table."""

    def __init__(self, teams: Iterable[TeamRecord] = ()):
        self._teams: Tuple[TeamRecord, ...] = tuple(canonical_order(_dedupe(teams)))

    @property
    def teams(self) -> List[TeamRecord]:
        """Current ranking (a copy)."""
        return list(self._teams)

    def __len__(self) -> int:
        return len(self._teams)

    def __contains__(self, team_id: object) -> bool:
        return any(t.id == team_id for t in self._teams)

    def replace(self, snapshot: Iterable[TeamRecord]) -> bool:
        """Replace the whole list with a fetched snapshot.

        Returns:
            True if the ranking changed by value
        """
        incoming = tuple(canonical_order(_dedupe(snapshot)))
        if incoming == self._teams:
            return False
        self._teams = incoming
        return True

    def apply(self, event: ChangeEvent) -> bool:
        """Apply one change event.

        Insert on a known id acts as Update, Update on an unknown id acts
        as Insert, and Delete on an unknown id does nothing.

        Returns:
            True if the ranking changed by value
        """
        if isinstance(event, Delete):
            remaining = tuple(t for t in self._teams if t.id != event.team_id)
            if len(remaining) == len(self._teams):
                return False
            self._teams = remaining
            return True

        if not isinstance(event, (Insert, Update)):
            raise TypeError(f"Unsupported change event: {event!r}")

        record = event.record
        updated: List[TeamRecord] = []
        found = False
        for team in self._teams:
            if team.id == record.id:
                updated.append(record)
                found = True
            else:
                updated.append(team)
        if not found:
            updated.append(record)

        reordered = tuple(canonical_order(updated))
        if reordered == self._teams:
            return False
        self._teams = reordered
        return True


def _dedupe(teams: Iterable[TeamRecord]) -> List[TeamRecord]:
    # Last occurrence of an id wins, at the position of the first.
    by_id = {}
    for team in teams:
        by_id[team.id] = team
    return list(by_id.values())
