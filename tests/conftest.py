"""Shared test fixtures for all test modules."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from careerpath.models.config import InsightsConfig
from careerpath.models.journal import JournalEntry
from careerpath.storage.local_cache import LocalCache
from careerpath.storage.store import SQLiteStore


@pytest.fixture
def store():
    """In-memory SQLite store, closed after the test."""
    sqlite_store = SQLiteStore(":memory:")
    yield sqlite_store
    sqlite_store.close()


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache" / "local_cache.json")


@pytest.fixture
def insights():
    return InsightsConfig(entry_window=10, content_excerpt_chars=500)


@pytest.fixture
def make_entry():
    """
    Factory for journal entries with increasing creation times.

    Each call is one minute after the previous one, so "most recent" is the
    last entry created.
    """
    base = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(user_id="user-1", content="Led the sprint planning today.", **fields):
        counter["n"] += 1
        fields.setdefault("created_at", base + timedelta(minutes=counter["n"]))
        return JournalEntry(user_id=user_id, content=content, **fields)

    return _make


@pytest.fixture
def mock_client():
    """
    Completion client double.

    ``complete`` is an AsyncMock; ``stream`` is a Mock whose side effect
    returns an async context manager yielding the chunks in
    ``mock_client.stream_chunks`` (or raising ``mock_client.stream_error``
    on entry).
    """
    client = Mock()
    client.complete = AsyncMock()
    client.stream_chunks = []
    client.stream_error = None

    @asynccontextmanager
    async def _stream(messages, bearer_token=None, request_id=None):
        if client.stream_error is not None:
            raise client.stream_error

        async def _body():
            for chunk in client.stream_chunks:
                if isinstance(chunk, BaseException):
                    raise chunk
                yield chunk

        yield _body()

    client.stream = Mock(side_effect=_stream)
    return client
