"""Tests for change event parsing."""

import pytest

from leaderboard.models import TeamRecord, TeamStatus
from leaderboard.sync import ChannelError, Delete, Insert, Update, parse_change_payload, to_change_payload


def _row(**overrides):
    row = {
        "id": "t1",
        "team_name": "Alpha",
        "score": 4,
        "status": "active",
        "last_score_update": None,
    }
    row.update(overrides)
    return row


class TestParseChangePayload:
    """Tests for parse_change_payload()."""

    def test_insert(self):
        event = parse_change_payload({"eventType": "INSERT", "new": _row(), "old": {}})

        assert isinstance(event, Insert)
        assert event.record.name == "Alpha"
        assert event.record.score == 4

    def test_update(self):
        event = parse_change_payload({"eventType": "UPDATE", "new": _row(status="inactive")})

        assert isinstance(event, Update)
        assert event.record.status == TeamStatus.INACTIVE

    def test_delete_uses_old_id(self):
        event = parse_change_payload({"eventType": "DELETE", "new": {}, "old": {"id": "t9"}})

        assert event == Delete("t9")

    def test_event_type_is_case_insensitive(self):
        assert isinstance(parse_change_payload({"eventType": "insert", "new": _row()}), Insert)

    def test_delete_without_id_raises(self):
        with pytest.raises(ChannelError):
            parse_change_payload({"eventType": "DELETE", "old": {}})

    def test_unknown_type_raises(self):
        with pytest.raises(ChannelError):
            parse_change_payload({"eventType": "TRUNCATE"})

    def test_malformed_row_raises(self):
        with pytest.raises(ChannelError):
            parse_change_payload({"eventType": "UPDATE", "new": {"id": "t1", "score": "many"}})

    def test_non_object_raises(self):
        with pytest.raises(ChannelError):
            parse_change_payload(["INSERT"])

    def test_serialized_event_parses_back(self):
        record = TeamRecord(id="t1", team_name="Alpha", score=3)

        payload = to_change_payload(Update(record))

        assert payload["eventType"] == "UPDATE"
        assert payload["new"]["team_name"] == "Alpha"
        parsed = parse_change_payload(payload)
        assert isinstance(parsed, Update)
        assert parsed.record.model_dump() == record.model_dump()

    def test_serialized_delete(self):
        assert to_change_payload(Delete("t1")) == {"eventType": "DELETE", "new": {}, "old": {"id": "t1"}}
