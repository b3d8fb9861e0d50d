"""Unit tests for the SQLite journal store."""

import sqlite3

import pytest

from careerpath.models.career import Avoidance, LearningResource, Prediction
from careerpath.services.exceptions import PersistenceError
from careerpath.storage.store import SQLiteStore


class TestJournalEntries:
    """Test journal entry reads and writes."""

    def test_round_trip(self, store, make_entry):
        entry = make_entry(
            title="Friday",
            emotions=["calm"],
            detected_skills=["Budgeting"],
            detected_interests=["finance"],
            ai_summary="Planned the quarter.",
            ai_insights="Strong planner.",
            mood_score=8,
        )
        store.insert_entry(entry)

        [loaded] = store.recent_entries("user-1", 5)

        assert loaded.id == entry.id
        assert loaded.title == "Friday"
        assert loaded.emotions == ["calm"]
        assert loaded.detected_skills == ["Budgeting"]
        assert loaded.detected_interests == ["finance"]
        assert loaded.mood_score == 8
        assert loaded.created_at == entry.created_at

    def test_recent_entries_newest_first_and_limited(self, store, make_entry):
        for i in range(4):
            store.insert_entry(make_entry(content=f"entry {i}"))

        recent = store.recent_entries("user-1", 3)

        assert [e.content for e in recent] == ["entry 3", "entry 2", "entry 1"]

    def test_entries_scoped_by_user(self, store, make_entry):
        store.insert_entry(make_entry(user_id="alice"))
        store.insert_entry(make_entry(user_id="bob"))

        assert [e.user_id for e in store.recent_entries("alice", 10)] == ["alice"]

    def test_mood_history_latest_oldest_first(self, store, make_entry):
        for score in (2, 4, 6, 8):
            store.insert_entry(make_entry(mood_score=score))

        history = store.mood_history("user-1", 3)

        assert [score for _, score in history] == [4, 6, 8]
        assert history[0][0] < history[-1][0]

    def test_file_database_persists(self, tmp_path, make_entry):
        db_path = tmp_path / "nested" / "careerpath.db"
        first = SQLiteStore(db_path)
        first.insert_entry(make_entry())
        first.close()

        second = SQLiteStore(db_path)

        assert len(second.recent_entries("user-1", 10)) == 1
        second.close()


class TestPredictionsAndAvoidances:
    """Test prediction and avoidance rows."""

    def test_active_predictions_ranked(self, store):
        store.insert_prediction(Prediction(user_id="u", career_path="B", confidence_score=60))
        store.insert_prediction(Prediction(
            user_id="u",
            career_path="A",
            confidence_score=90,
            recommended_skills=["SQL"],
            learning_resources=[LearningResource(title="Course", type="course", url="example.com")],
        ))
        store.insert_prediction(Prediction(user_id="u", career_path="Old", confidence_score=99, is_active=False))

        predictions = store.active_predictions("u")

        assert [p.career_path for p in predictions] == ["A", "B"]
        assert predictions[0].recommended_skills == ["SQL"]
        assert predictions[0].learning_resources[0].url == "example.com"

    def test_delete_returns_count_and_scopes_user(self, store):
        store.insert_prediction(Prediction(user_id="u", career_path="A", confidence_score=1))
        store.insert_prediction(Prediction(user_id="u", career_path="B", confidence_score=2))
        store.insert_prediction(Prediction(user_id="v", career_path="C", confidence_score=3))

        assert store.delete_predictions("u") == 2
        assert store.active_predictions("u") == []
        assert len(store.active_predictions("v")) == 1

    def test_avoidances_in_creation_order(self, store):
        for career in ("Sales", "Law", "Retail"):
            store.insert_avoidance(Avoidance(user_id="u", career_path=career, reason="no"))

        assert [a.career_path for a in store.avoidances("u")] == ["Sales", "Law", "Retail"]
        assert store.delete_avoidances("u") == 3
        assert store.avoidances("u") == []


class TestTransactions:
    """Test grouped writes."""

    def test_commit(self, store):
        with store.transaction():
            store.insert_avoidance(Avoidance(user_id="u", career_path="A"))
            store.insert_avoidance(Avoidance(user_id="u", career_path="B"))

        assert len(store.avoidances("u")) == 2

    def test_rollback_on_error(self, store):
        """Test a failure inside the block leaves earlier rows in place."""
        store.insert_prediction(Prediction(user_id="u", career_path="Keep", confidence_score=50))

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.delete_predictions("u")
                store.insert_prediction(Prediction(user_id="u", career_path="New", confidence_score=70))
                raise RuntimeError("interrupted")

        assert [p.career_path for p in store.active_predictions("u")] == ["Keep"]

    def test_nested_transaction_joins_outer(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert_avoidance(Avoidance(user_id="u", career_path="A"))
                with store.transaction():
                    store.insert_avoidance(Avoidance(user_id="u", career_path="B"))
                raise RuntimeError("outer fails")

        assert store.avoidances("u") == []


class TestErrors:
    """Test sqlite errors surface as PersistenceError."""

    def test_sqlite_error_wrapped(self, store, make_entry):
        entry = make_entry()
        store.insert_entry(entry)

        with pytest.raises(PersistenceError, match="insert_entry failed") as exc_info:
            store.insert_entry(entry)  # duplicate primary key

        assert exc_info.value.operation == "insert_entry"
        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)

    def test_closed_store_raises_persistence_error(self, make_entry):
        closed = SQLiteStore(":memory:")
        closed.close()

        with pytest.raises(PersistenceError):
            closed.recent_entries("user-1", 5)
