"""Tests for storage module."""

import pytest
import os
from unittest.mock import MagicMock, patch

from leaderboard.models import TeamStatus
from leaderboard.storage import get_database, reset_database, DatabaseInterface
from leaderboard.storage.exceptions import ConfigurationError, NotFoundError, QueryError, StoreError
from leaderboard.storage.sqlite_db import SQLiteDatabase


class TestFactory:
    """Tests for factory function."""

    def setup_method(self):
        """Reset singleton before each test."""
        reset_database()

    def teardown_method(self):
        """Clean up after each test."""
        reset_database()

    def test_default_is_sqlite(self, test_data_dir):
        """Default DB_TYPE should be sqlite."""
        with patch.dict(os.environ, {'DATA_DIR': test_data_dir}, clear=False):
            os.environ.pop('DB_TYPE', None)
            db = get_database()
            assert db.__class__.__name__ == 'SQLiteDatabase'
            assert str(db.db_path).endswith('leaderboard.db')
            reset_database()  # Close before cleanup

    def test_invalid_db_type_raises(self):
        """Invalid DB_TYPE raises ConfigurationError."""
        with patch.dict(os.environ, {'DB_TYPE': 'invalid'}, clear=False):
            with pytest.raises(ConfigurationError):
                get_database()

    def test_configuration_error_is_store_error(self):
        assert issubclass(ConfigurationError, StoreError)
        assert issubclass(NotFoundError, StoreError)

    def test_singleton_returns_same_instance(self, test_data_dir):
        """Factory returns same instance on subsequent calls."""
        with patch.dict(os.environ, {'DB_TYPE': 'sqlite', 'DATA_DIR': test_data_dir}, clear=False):
            db1 = get_database()
            db2 = get_database()
            assert db1 is db2
            reset_database()  # Close before cleanup

    def test_supabase_without_credentials_raises(self):
        """Supabase backend needs a URL and key."""
        env = {'DB_TYPE': 'supabase', 'SUPABASE_URL': '', 'SUPABASE_KEY': '',
               'SUPABASE_SERVICE_ROLE_KEY': ''}
        with patch.dict(os.environ, env, clear=False):
            with pytest.raises(ConfigurationError):
                get_database()


class TestSQLiteDatabase:
    """Tests for SQLite implementation."""

    def test_implements_interface(self, db_fixture):
        """SQLiteDatabase implements DatabaseInterface."""
        assert isinstance(db_fixture, DatabaseInterface)
        assert isinstance(db_fixture, SQLiteDatabase)

    def test_health_check(self, db_fixture):
        assert db_fixture.health_check() is True

    def test_initialize_is_idempotent(self, db_fixture):
        db_fixture.initialize()
        db_fixture.initialize()
        assert db_fixture.list_teams() == []

    def test_insert_team_defaults(self, db_fixture):
        """New teams start at score 0 and active."""
        team = db_fixture.insert_team("Alpha")

        assert team.id
        assert team.name == "Alpha"
        assert team.score == 0
        assert team.status == TeamStatus.ACTIVE
        assert team.last_update is None
        assert db_fixture.get_team(team.id).model_dump() == team.model_dump()

    def test_get_team_missing_returns_none(self, db_fixture):
        assert db_fixture.get_team("missing") is None

    def test_list_teams_canonical_order(self, db_fixture):
        """Score descending, then name ascending."""
        gamma = db_fixture.insert_team("Gamma")
        beta = db_fixture.insert_team("Beta")
        alpha = db_fixture.insert_team("Alpha")
        db_fixture.update_score(gamma.id, 5)
        db_fixture.update_score(beta.id, 10)
        db_fixture.update_score(alpha.id, 10)

        names = [t.name for t in db_fixture.list_teams()]

        assert names == ["Alpha", "Beta", "Gamma"]

    def test_bulk_insert_creates_all(self, db_fixture):
        records = db_fixture.bulk_insert(["A", "B", "C"])

        assert len(records) == 3
        assert len({r.id for r in records}) == 3
        assert {t.name for t in db_fixture.list_teams()} == {"A", "B", "C"}

    def test_update_score_sets_last_update(self, db_fixture):
        team = db_fixture.insert_team("Alpha")

        updated = db_fixture.update_score(team.id, 42)

        assert updated.score == 42
        assert updated.last_update is not None

    def test_update_score_missing_raises(self, db_fixture):
        with pytest.raises(NotFoundError) as exc_info:
            db_fixture.update_score("missing", 1)
        assert exc_info.value.team_id == "missing"

    def test_update_status(self, db_fixture):
        team = db_fixture.insert_team("Alpha")

        updated = db_fixture.update_status(team.id, TeamStatus.DISQUALIFIED)

        assert updated.status == TeamStatus.DISQUALIFIED
        assert updated.score == team.score

    def test_update_status_missing_raises(self, db_fixture):
        with pytest.raises(NotFoundError):
            db_fixture.update_status("missing", TeamStatus.INACTIVE)

    def test_delete_team(self, db_fixture):
        team = db_fixture.insert_team("Alpha")

        db_fixture.delete_team(team.id)

        assert db_fixture.get_team(team.id) is None

    def test_delete_missing_raises(self, db_fixture):
        with pytest.raises(NotFoundError):
            db_fixture.delete_team("missing")

    def test_score_history_newest_first(self, db_fixture):
        team = db_fixture.insert_team("Alpha")
        db_fixture.insert_score_history(team.id, 0, 5)
        db_fixture.insert_score_history(team.id, 5, 9, reason="bonus")

        history = db_fixture.list_score_history(team.id)

        assert [(h.old_score, h.new_score) for h in history] == [(5, 9), (0, 5)]
        assert history[0].reason == "bonus"
        assert history[0].changed_by == "admin"

    def test_score_history_limit(self, db_fixture):
        team = db_fixture.insert_team("Alpha")
        for i in range(5):
            db_fixture.insert_score_history(team.id, i, i + 1)

        assert len(db_fixture.list_score_history(team.id, limit=2)) == 2

    def test_history_removed_with_team(self, db_fixture):
        team = db_fixture.insert_team("Alpha")
        db_fixture.insert_score_history(team.id, 0, 5)

        db_fixture.delete_team(team.id)

        assert db_fixture.list_score_history(team.id) == []

    def test_clear_all(self, db_fixture):
        db_fixture.bulk_insert(["A", "B"])

        db_fixture.clear_all()

        assert db_fixture.list_teams() == []

    def test_data_persists_across_instances(self, test_data_dir):
        path = os.path.join(test_data_dir, "persist.db")
        first = SQLiteDatabase(db_path=path)
        first.initialize()
        team = first.insert_team("Alpha")
        first.close()

        second = SQLiteDatabase(db_path=path)
        second.initialize()
        assert second.get_team(team.id).name == "Alpha"
        second.close()


class TestSupabaseDatabase:
    """Tests for the Supabase implementation with a mocked client."""

    def _db(self):
        from leaderboard.storage.supabase_db import SupabaseDatabase

        with patch.dict(os.environ, {'SUPABASE_URL': 'https://x.supabase.co', 'SUPABASE_KEY': 'k'}, clear=False):
            db = SupabaseDatabase()
        db._client = MagicMock()
        return db

    def test_list_teams_maps_rows(self):
        db = self._db()
        query = db._client.table.return_value.select.return_value.order.return_value.order.return_value
        query.execute.return_value.data = [
            {'id': 'a', 'team_name': 'Alpha', 'score': 4, 'status': 'active', 'last_score_update': None},
        ]

        teams = db.list_teams()

        assert [(t.id, t.name, t.score) for t in teams] == [('a', 'Alpha', 4)]
        db._client.table.assert_called_with('teams')

    def test_update_missing_raises_not_found(self):
        db = self._db()
        db._client.table.return_value.update.return_value.eq.return_value.execute.return_value.data = []

        with pytest.raises(NotFoundError):
            db.update_score('missing', 3)

    def test_client_failure_raises_query_error(self):
        db = self._db()
        db._client.table.return_value.delete.return_value.eq.return_value.execute.side_effect = RuntimeError("503")

        with pytest.raises(QueryError):
            db.delete_team('a')

    def test_health_check_false_on_error(self):
        db = self._db()
        db._client.table.side_effect = RuntimeError("down")

        assert db.health_check() is False
