"""Durable store for journal entries, career predictions and avoidances.

``JournalStore`` is the interface the services depend on. Every operation is
scoped by user id. ``SQLiteStore`` is the bundled implementation.
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager, nullcontext
from datetime import datetime
from pathlib import Path
from typing import ContextManager, Iterator

from careerpath.models.career import Avoidance, LearningResource, Prediction
from careerpath.models.journal import JournalEntry
from careerpath.services.exceptions import PersistenceError
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)


class JournalStore(ABC):
    """Row-oriented store with ``journal_entries``, ``career_predictions`` and ``career_avoidances``."""

    @abstractmethod
    def insert_entry(self, entry: JournalEntry) -> JournalEntry:
        ...

    @abstractmethod
    def recent_entries(self, user_id: str, limit: int) -> list[JournalEntry]:
        """Most recent entries first."""

    @abstractmethod
    def mood_history(self, user_id: str, limit: int) -> list[tuple[datetime, int]]:
        """The latest ``limit`` (created_at, mood_score) pairs, oldest first."""

    @abstractmethod
    def delete_predictions(self, user_id: str) -> int:
        ...

    @abstractmethod
    def insert_prediction(self, prediction: Prediction) -> None:
        ...

    @abstractmethod
    def active_predictions(self, user_id: str) -> list[Prediction]:
        """Active predictions, highest confidence first."""

    @abstractmethod
    def delete_avoidances(self, user_id: str) -> int:
        ...

    @abstractmethod
    def insert_avoidance(self, avoidance: Avoidance) -> None:
        ...

    @abstractmethod
    def avoidances(self, user_id: str) -> list[Avoidance]:
        """Avoidances in creation order."""

    def transaction(self) -> ContextManager[None]:
        """
        Group several writes into one unit.

        Stores without transactions keep the default, which only preserves
        the order in which the caller issues the writes.
        """
        return nullcontext()


_SCHEMA = """
CREATE TABLE IF NOT EXISTS journal_entries (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT,
    content TEXT NOT NULL,
    mood_score INTEGER NOT NULL DEFAULT 5,
    emotions TEXT NOT NULL DEFAULT '[]',
    detected_skills TEXT NOT NULL DEFAULT '[]',
    detected_interests TEXT NOT NULL DEFAULT '[]',
    ai_summary TEXT NOT NULL DEFAULT '',
    ai_insights TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_entries_user_created ON journal_entries(user_id, created_at);

CREATE TABLE IF NOT EXISTS career_predictions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    career_path TEXT NOT NULL,
    confidence_score INTEGER NOT NULL,
    reasoning TEXT NOT NULL DEFAULT '',
    recommended_skills TEXT NOT NULL DEFAULT '[]',
    learning_resources TEXT NOT NULL DEFAULT '[]',
    is_active INTEGER NOT NULL DEFAULT 1,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_predictions_user ON career_predictions(user_id);

CREATE TABLE IF NOT EXISTS career_avoidances (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    career_path TEXT NOT NULL,
    reason TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_avoidances_user ON career_avoidances(user_id);
"""


class SQLiteStore(JournalStore):
    """
    JournalStore backed by a SQLite file.

    The connection runs in autocommit mode; ``transaction()`` opens an
    explicit BEGIN/COMMIT so the prediction replacement is all-or-nothing.
    Any ``sqlite3.Error`` surfaces as PersistenceError.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(
            self.db_path,
            isolation_level=None,
            check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._tx_depth = 0

        with self._op("create_schema"):
            self._conn.executescript(_SCHEMA)

        logger.debug("sqlite_store_opened", db_path=self.db_path)

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def _op(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as e:
                logger.error("store_operation_failed", operation=operation, error=str(e))
                raise PersistenceError(operation, str(e)) from e

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._tx_depth:
                self._tx_depth += 1
                try:
                    yield
                finally:
                    self._tx_depth -= 1
                return

            with self._op("begin"):
                self._conn.execute("BEGIN")
            self._tx_depth = 1
            try:
                yield
            except BaseException:
                self._tx_depth = 0
                with self._op("rollback"):
                    self._conn.execute("ROLLBACK")
                logger.warning("store_transaction_rolled_back")
                raise
            self._tx_depth = 0
            with self._op("commit"):
                self._conn.execute("COMMIT")

    # Journal entries

    def insert_entry(self, entry: JournalEntry) -> JournalEntry:
        with self._op("insert_entry") as conn:
            conn.execute(
                "INSERT INTO journal_entries (id, user_id, title, content, mood_score, emotions, "
                "detected_skills, detected_interests, ai_summary, ai_insights, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.id,
                    entry.user_id,
                    entry.title,
                    entry.content,
                    entry.mood_score,
                    json.dumps(entry.emotions),
                    json.dumps(entry.detected_skills),
                    json.dumps(entry.detected_interests),
                    entry.ai_summary,
                    entry.ai_insights,
                    entry.created_at.isoformat(),
                ),
            )
        return entry

    def recent_entries(self, user_id: str, limit: int) -> list[JournalEntry]:
        with self._op("recent_entries") as conn:
            rows = conn.execute(
                "SELECT * FROM journal_entries WHERE user_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def mood_history(self, user_id: str, limit: int) -> list[tuple[datetime, int]]:
        with self._op("mood_history") as conn:
            rows = conn.execute(
                "SELECT created_at, mood_score FROM journal_entries WHERE user_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [(datetime.fromisoformat(row["created_at"]), row["mood_score"]) for row in reversed(rows)]

    # Predictions

    def delete_predictions(self, user_id: str) -> int:
        with self._op("delete_predictions") as conn:
            return conn.execute("DELETE FROM career_predictions WHERE user_id = ?", (user_id,)).rowcount

    def insert_prediction(self, prediction: Prediction) -> None:
        with self._op("insert_prediction") as conn:
            conn.execute(
                "INSERT INTO career_predictions (user_id, career_path, confidence_score, reasoning, "
                "recommended_skills, learning_resources, is_active, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    prediction.user_id,
                    prediction.career_path,
                    prediction.confidence_score,
                    prediction.reasoning,
                    json.dumps(prediction.recommended_skills),
                    json.dumps([r.model_dump() for r in prediction.learning_resources]),
                    1 if prediction.is_active else 0,
                    prediction.updated_at.isoformat(),
                ),
            )

    def active_predictions(self, user_id: str) -> list[Prediction]:
        with self._op("active_predictions") as conn:
            rows = conn.execute(
                "SELECT * FROM career_predictions WHERE user_id = ? AND is_active = 1 "
                "ORDER BY confidence_score DESC, id ASC",
                (user_id,),
            ).fetchall()
        return [
            Prediction(
                user_id=row["user_id"],
                career_path=row["career_path"],
                confidence_score=row["confidence_score"],
                reasoning=row["reasoning"],
                recommended_skills=json.loads(row["recommended_skills"]),
                learning_resources=[LearningResource(**r) for r in json.loads(row["learning_resources"])],
                is_active=bool(row["is_active"]),
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    # Avoidances

    def delete_avoidances(self, user_id: str) -> int:
        with self._op("delete_avoidances") as conn:
            return conn.execute("DELETE FROM career_avoidances WHERE user_id = ?", (user_id,)).rowcount

    def insert_avoidance(self, avoidance: Avoidance) -> None:
        with self._op("insert_avoidance") as conn:
            conn.execute(
                "INSERT INTO career_avoidances (user_id, career_path, reason, created_at) "
                "VALUES (?, ?, ?, ?)",
                (avoidance.user_id, avoidance.career_path, avoidance.reason, avoidance.created_at.isoformat()),
            )

    def avoidances(self, user_id: str) -> list[Avoidance]:
        with self._op("avoidances") as conn:
            rows = conn.execute(
                "SELECT * FROM career_avoidances WHERE user_id = ? ORDER BY created_at ASC, id ASC",
                (user_id,),
            ).fetchall()
        return [
            Avoidance(
                user_id=row["user_id"],
                career_path=row["career_path"],
                reason=row["reason"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> JournalEntry:
        return JournalEntry(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            content=row["content"],
            mood_score=row["mood_score"],
            emotions=json.loads(row["emotions"]),
            detected_skills=json.loads(row["detected_skills"]),
            detected_interests=json.loads(row["detected_interests"]),
            ai_summary=row["ai_summary"],
            ai_insights=row["ai_insights"],
            created_at=row["created_at"],
        )
