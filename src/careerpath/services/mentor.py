"""Streaming mentor conversation.

One ``MentorSession`` holds the visible conversation for one user and runs
one turn at a time:

    IDLE -> AWAITING_AUTH -> SENDING -> STREAMING -> IDLE
                  |             |           |
                  +------> ERROR_ROLLBACK <-+  -> IDLE

A turn is an async iterator of MentorEvent objects. Deltas are yielded as
soon as they are decoded so the caller can redraw after every one.
"""

from contextlib import aclosing
from typing import AsyncIterator, Optional

from careerpath.llm.prompts import build_mentor_system_prompt
from careerpath.llm.sse_decoder import SSEDecoder
from careerpath.models.chat import ChatMessage, MentorEvent, MentorState
from careerpath.models.stream_frames import StreamFrame
from careerpath.services.completion_client import CompletionClient
from careerpath.services.context_assembler import ContextAssembler
from careerpath.services.exceptions import ClassifiedTransportError, MentorBusyError
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)

SIGN_IN_MESSAGE = "Please sign in to use AI mentor"
UNAUTHENTICATED_STATUS = "unauthenticated"


class MentorSession:
    """
    Conversation state plus the turn state machine.

    Example:
        >>> session = MentorSession(client, assembler, user_id="u1", user_name="Ada")
        >>> async with aclosing(session.stream_turn("What should I do?", credential=token)) as turn:
        ...     async for event in turn:
        ...         if event.type == "delta":
        ...             print(event.content, end="")

    Wrap the turn in ``contextlib.aclosing`` when the caller may stop early.
    Leaving the loop with ``break`` otherwise keeps the session busy and the
    HTTP stream open until the generator is garbage collected.
    """

    def __init__(
        self,
        client: CompletionClient,
        assembler: ContextAssembler,
        user_id: str,
        user_name: Optional[str] = None,
    ):
        self.client = client
        self.assembler = assembler
        self.user_id = user_id
        self.user_name = user_name
        self.messages: list[ChatMessage] = []
        self.state = MentorState.IDLE

    @property
    def is_busy(self) -> bool:
        return self.state is not MentorState.IDLE

    def _transition(self, state: MentorState) -> None:
        logger.debug(
            "mentor_state_changed",
            user_id=self.user_id,
            from_state=self.state.value,
            to_state=state.value,
        )
        self.state = state

    def _rollback(self, baseline: int) -> None:
        self._transition(MentorState.ERROR_ROLLBACK)
        del self.messages[baseline:]

    def _api_messages(self) -> list[dict[str, str]]:
        context_block = self.assembler.build_context(self.user_id)
        system_prompt = build_mentor_system_prompt(context_block, self.user_name)
        return [{"role": "system", "content": system_prompt}] + [m.to_api() for m in self.messages]

    async def stream_turn(self, text: str, credential: Optional[str]) -> AsyncIterator[MentorEvent]:
        """
        Run one mentor turn.

        Args:
            text: The user's message; blank input is ignored
            credential: Session bearer token, or None when signed out

        Yields:
            ``delta`` events while streaming, then exactly one ``done`` or
            ``error`` event. ``error`` events carry the submitted text in
            ``restored_input`` so it can be put back in the input field.

        Raises:
            MentorBusyError: If another turn is still running
        """
        if not text or not text.strip():
            return
        if self.is_busy:
            raise MentorBusyError("A mentor reply is still streaming")

        baseline = len(self.messages)
        self._transition(MentorState.AWAITING_AUTH)

        try:
            if not credential:
                logger.warning("mentor_unauthenticated", user_id=self.user_id)
                self._transition(MentorState.ERROR_ROLLBACK)
                yield MentorEvent(
                    type="error",
                    message=SIGN_IN_MESSAGE,
                    status=UNAUTHENTICATED_STATUS,
                    restored_input=text,
                )
                return

            self.messages.append(ChatMessage(role="user", content=text))
            self._transition(MentorState.SENDING)
            logger.info("mentor_turn_started", user_id=self.user_id, history_length=len(self.messages))

            try:
                async with aclosing(self._stream_reply(credential)) as replies:
                    async for event in replies:
                        yield event
            except ClassifiedTransportError as e:
                logger.warning(
                    "mentor_turn_rolled_back",
                    user_id=self.user_id,
                    status=e.status.value,
                    error=e.message,
                )
                self._rollback(baseline)
                yield MentorEvent(
                    type="error",
                    message=e.message,
                    status=e.status.value,
                    restored_input=text,
                )
                return
            except Exception:
                self._rollback(baseline)
                raise

            logger.info("mentor_turn_completed", user_id=self.user_id)
            yield MentorEvent(type="done")

        finally:
            self._transition(MentorState.IDLE)

    async def _stream_reply(self, credential: str) -> AsyncIterator[MentorEvent]:
        decoder = SSEDecoder()
        api_messages = self._api_messages()

        async with self.client.stream(api_messages, bearer_token=credential) as body:
            self._transition(MentorState.STREAMING)
            assistant = ChatMessage(role="assistant")
            self.messages.append(assistant)

            async for chunk in body:
                for frame in decoder.feed(chunk):
                    event = self._apply(frame, assistant)
                    if event is not None:
                        yield event
                if decoder.done:
                    break

            for frame in decoder.finalize():
                event = self._apply(frame, assistant)
                if event is not None:
                    yield event

    def _apply(self, frame: StreamFrame, assistant: ChatMessage) -> Optional[MentorEvent]:
        if frame.kind == "error":
            logger.warning("mentor_stream_line_dropped", user_id=self.user_id, error=frame.error)
            return None
        if frame.kind != "delta" or not frame.content:
            return None
        assistant.append(frame.content)
        return MentorEvent(type="delta", content=frame.content)
