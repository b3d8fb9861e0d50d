"""Unit tests for the streaming mentor session."""

import json
from contextlib import aclosing, asynccontextmanager
from unittest.mock import Mock

import pytest

from careerpath.models.chat import MentorState
from careerpath.services.exceptions import (
    MentorBusyError,
    PersistenceError,
    QuotaExceededError,
    RateLimitedError,
    TransportError,
)
from careerpath.services.mentor import SIGN_IN_MESSAGE, MentorSession


def sse(content: str) -> bytes:
    record = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(record)}\n".encode("utf-8")


DONE = b"data: [DONE]\n"


@pytest.fixture
def assembler():
    assembler = Mock()
    assembler.build_context.return_value = "User has not journaled yet."
    return assembler


@pytest.fixture
def session(mock_client, assembler):
    return MentorSession(mock_client, assembler, user_id="user-1", user_name="Ada")


async def collect(session, text, credential="token-123"):
    return [event async for event in session.stream_turn(text, credential=credential)]


class TestSuccessfulTurn:
    """Test a turn that streams to completion."""

    @pytest.mark.asyncio
    async def test_deltas_then_done(self, session, mock_client):
        mock_client.stream_chunks = [sse("Hel"), sse("lo"), sse(" Ada"), DONE]

        events = await collect(session, "Hi")

        assert [e.type for e in events] == ["delta", "delta", "delta", "done"]
        assert "".join(e.content for e in events) == "Hello Ada"

    @pytest.mark.asyncio
    async def test_history_holds_user_and_full_reply(self, session, mock_client):
        mock_client.stream_chunks = [sse("Hel"), sse("lo"), DONE]

        await collect(session, "Hi")

        assert [(m.role, m.content) for m in session.messages] == [
            ("user", "Hi"),
            ("assistant", "Hello"),
        ]
        assert session.state is MentorState.IDLE

    @pytest.mark.asyncio
    async def test_assistant_message_grows_during_stream(self, session, mock_client):
        """Test the visible reply is the concatenation of deltas so far."""
        mock_client.stream_chunks = [sse("One"), sse(" two"), sse(" three"), DONE]
        seen = []

        async for event in session.stream_turn("Count", credential="token-123"):
            if event.type == "delta":
                assert session.state is MentorState.STREAMING
                seen.append(session.messages[-1].content)

        assert seen == ["One", "One two", "One two three"]

    @pytest.mark.asyncio
    async def test_request_carries_context_history_and_token(self, session, mock_client, assembler):
        assembler.build_context.return_value = "USER'S JOURNAL INSIGHTS:\n- Mood: 7/10"
        mock_client.stream_chunks = [sse("First reply"), DONE]
        await collect(session, "First question")
        mock_client.stream_chunks = [sse("Second reply"), DONE]

        await collect(session, "Second question")

        messages = mock_client.stream.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert "- Mood: 7/10" in messages[0]["content"]
        assert "The user's name is Ada." in messages[0]["content"]
        assert messages[1:] == [
            {"role": "user", "content": "First question"},
            {"role": "assistant", "content": "First reply"},
            {"role": "user", "content": "Second question"},
        ]
        assert mock_client.stream.call_args.kwargs["bearer_token"] == "token-123"
        assembler.build_context.assert_called_with("user-1")

    @pytest.mark.asyncio
    async def test_stops_reading_after_done(self, session, mock_client):
        mock_client.stream_chunks = [sse("a"), DONE, RuntimeError("read past [DONE]")]

        events = await collect(session, "Hi")

        assert [e.type for e in events] == ["delta", "done"]

    @pytest.mark.asyncio
    async def test_stream_without_done_sentinel(self, session, mock_client):
        mock_client.stream_chunks = [sse("partial"), sse(" reply")]

        events = await collect(session, "Hi")

        assert events[-1].type == "done"
        assert session.messages[-1].content == "partial reply"

    @pytest.mark.asyncio
    async def test_malformed_line_is_skipped(self, session, mock_client):
        """Test an undecodable line does not end the turn."""
        mock_client.stream_chunks = [b"data: {oops\n", sse("still here")]

        events = await collect(session, "Hi")

        assert [e.type for e in events] == ["delta", "done"]
        assert session.messages[-1].content == "still here"


class TestInputHandling:
    """Test blank input, authentication and busy guards."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n"])
    async def test_blank_input_is_ignored(self, session, mock_client, text):
        events = await collect(session, text)

        assert events == []
        assert session.messages == []
        mock_client.stream.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("credential", [None, ""])
    async def test_missing_credential(self, session, mock_client, credential):
        """Test an unauthenticated turn sends nothing and restores the input."""
        events = await collect(session, "Help me", credential=credential)

        assert len(events) == 1
        assert events[0].type == "error"
        assert events[0].message == SIGN_IN_MESSAGE
        assert events[0].status == "unauthenticated"
        assert events[0].restored_input == "Help me"
        assert session.messages == []
        assert session.state is MentorState.IDLE
        mock_client.stream.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_turn_while_streaming_is_rejected(self, session, mock_client):
        mock_client.stream_chunks = [sse("a"), sse("b"), DONE]
        first = session.stream_turn("First", credential="token-123")

        event = await first.__anext__()
        assert event.type == "delta"
        assert session.is_busy

        with pytest.raises(MentorBusyError):
            await collect(session, "Second")

        await first.aclose()
        assert session.state is MentorState.IDLE
        assert [m.content for m in session.messages if m.role == "user"] == ["First"]


class TestRollback:
    """Test conversation rollback on failed turns."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,status",
        [
            (RateLimitedError(status_code=429), "rate_limited"),
            (QuotaExceededError(status_code=402), "quota_exceeded"),
            (TransportError(status_code=500), "transport_error"),
        ],
    )
    async def test_failed_request_restores_history(self, session, mock_client, error, status):
        mock_client.stream_chunks = [sse("Earlier answer"), DONE]
        await collect(session, "Earlier question")
        before = [m.model_copy() for m in session.messages]
        mock_client.stream_error = error

        events = await collect(session, "Doomed question")

        assert [e.type for e in events] == ["error"]
        assert events[0].status == status
        assert events[0].message == error.message
        assert events[0].restored_input == "Doomed question"
        assert session.messages == before
        assert session.state is MentorState.IDLE

    @pytest.mark.asyncio
    async def test_mid_stream_failure_discards_partial_reply(self, session, mock_client):
        """Test a reply cut off mid-stream is removed with its question."""
        mock_client.stream_chunks = [sse("Hel"), TransportError("Stream interrupted")]

        events = await collect(session, "Hi")

        assert [e.type for e in events] == ["delta", "error"]
        assert events[-1].message == "Stream interrupted"
        assert events[-1].restored_input == "Hi"
        assert session.messages == []
        assert session.state is MentorState.IDLE

    @pytest.mark.asyncio
    async def test_unexpected_error_rolls_back_and_propagates(self, session, mock_client, assembler):
        assembler.build_context.side_effect = PersistenceError("recent_entries", "database is locked")

        with pytest.raises(PersistenceError):
            await collect(session, "Hi")

        assert session.messages == []
        assert session.state is MentorState.IDLE

    @pytest.mark.asyncio
    async def test_session_usable_after_failure(self, session, mock_client):
        mock_client.stream_error = RateLimitedError()
        await collect(session, "Hi")

        mock_client.stream_error = None
        mock_client.stream_chunks = [sse("Back again"), DONE]
        events = await collect(session, "Hi")

        assert events[-1].type == "done"
        assert [(m.role, m.content) for m in session.messages] == [
            ("user", "Hi"),
            ("assistant", "Back again"),
        ]


@pytest.fixture
def tracked_transport(mock_client):
    """Replace ``mock_client.stream`` with one that records reads and release."""
    transport = {"chunks_read": 0, "released": False}

    @asynccontextmanager
    async def _stream(messages, bearer_token=None, request_id=None):
        async def _body():
            for chunk in [sse("one"), sse("two"), sse("three"), DONE]:
                transport["chunks_read"] += 1
                yield chunk

        try:
            yield _body()
        finally:
            transport["released"] = True

    mock_client.stream = Mock(side_effect=_stream)
    return transport


class TestAbandonedTurn:
    """Test closing a turn before the reply finishes."""

    @pytest.mark.asyncio
    async def test_close_releases_stream_and_stops_reading(self, session, tracked_transport):
        turn = session.stream_turn("Hi", credential="token-123")

        event = await turn.__anext__()
        assert event.content == "one"
        assert not tracked_transport["released"]

        await turn.aclose()

        assert tracked_transport["released"]
        assert tracked_transport["chunks_read"] == 1
        assert session.state is MentorState.IDLE
        assert session.messages[-1].content == "one"

    @pytest.mark.asyncio
    async def test_break_inside_aclosing_frees_session(self, session, tracked_transport):
        async with aclosing(session.stream_turn("Hi", credential="token-123")) as turn:
            async for event in turn:
                break

        assert tracked_transport["released"]
        assert tracked_transport["chunks_read"] == 1
        assert not session.is_busy
