"""Data models for the live leaderboard."""

from leaderboard.models.team import TeamRecord, TeamStatus, ScoreHistoryEntry, canonical_order

__all__ = ["TeamRecord", "TeamStatus", "ScoreHistoryEntry", "canonical_order"]
