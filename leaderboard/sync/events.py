"""
Change events for the team table.

The push channel delivers loosely shaped payloads of the form::

    {"eventType": "UPDATE", "new": {...row...}, "old": {"id": "..."}}

parse_change_payload() validates them into one of three closed variants
before anything downstream sees them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Union

from pydantic import ValidationError

from ..models import TeamRecord
from ..types import ChangePayloadDict
from .exceptions import ChannelError


@dataclass(frozen=True)
class Insert:
    """A team row was created."""

    record: TeamRecord


@dataclass(frozen=True)
class Update:
    """A team row was replaced."""

    record: TeamRecord


@dataclass(frozen=True)
class Delete:
    """A team row was removed."""

    team_id: str


ChangeEvent = Union[Insert, Update, Delete]


def parse_change_payload(payload: Dict[str, Any]) -> ChangeEvent:
    """Normalize a raw channel payload into a ChangeEvent.

    Raises:
        ChannelError: If the payload has an unknown type or a malformed row
    """
    if not isinstance(payload, dict):
        raise ChannelError(f"Change payload must be an object, got {type(payload).__name__}")

    event_type = str(payload.get("eventType", "")).upper()

    if event_type == "DELETE":
        old = payload.get("old") or {}
        team_id = old.get("id") if isinstance(old, dict) else None
        if not team_id:
            raise ChannelError("DELETE payload is missing old.id")
        return Delete(team_id=str(team_id))

    if event_type in ("INSERT", "UPDATE"):
        try:
            record = TeamRecord.model_validate(payload.get("new") or {})
        except ValidationError as e:
            raise ChannelError(f"Malformed {event_type} row: {e}") from e
        return Insert(record) if event_type == "INSERT" else Update(record)

    raise ChannelError(f"Unknown change event type: {payload.get('eventType')!r}")


def to_change_payload(event: ChangeEvent) -> ChangePayloadDict:
    """Serialize a ChangeEvent into the wire payload."""
    if isinstance(event, Delete):
        return {"eventType": "DELETE", "new": {}, "old": {"id": event.team_id}}

    event_type = "INSERT" if isinstance(event, Insert) else "UPDATE"
    return {"eventType": event_type, "new": event.record.to_wire(), "old": {}}
