"""Incremental decoder for OpenAI-style server-sent-event streams.

Turns raw response-body bytes, split at arbitrary points by the transport,
into an ordered sequence of content deltas. The decoder knows nothing about
chat semantics; it only understands the line protocol:

    : keep-alive comment
    data: {"choices": [{"delta": {"content": "Hel"}}]}
    data: {"choices": [{"delta": {"content": "lo"}}]}
    data: [DONE]

The algorithm is a pure step function over an explicit ``DecoderState`` so
it can be driven without a network. ``SSEDecoder`` wraps it for one
streaming call.
"""

import codecs
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from careerpath.models.stream_frames import StreamFrame

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
COMMENT_PREFIX = ":"

# Lines that start a new SSE field can never continue a split payload
_FIELD_LINE = re.compile(r"^(data|event|id|retry)(:|$)")

_UNPARSED = object()


@dataclass(frozen=True)
class DecoderState:
    """
    Snapshot of decoder progress.

    Attributes:
        pending: Trailing bytes of an incomplete UTF-8 character
        buffer: Decoded text not yet consumed; always starts at a line boundary
        done: True once the termination sentinel has been seen
    """

    pending: bytes = b""
    buffer: str = ""
    done: bool = False


def _new_text_decoder(pending: bytes) -> codecs.IncrementalDecoder:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    decoder.setstate((pending, 0))
    return decoder


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def _is_continuation(line: str) -> bool:
    """True if a line can be the tail of a payload split across reads."""
    if not line.strip() or line.startswith(COMMENT_PREFIX):
        return False
    return _FIELD_LINE.match(line) is None


def _try_parse(payload: str) -> Any:
    try:
        return json.loads(payload)
    except ValueError:
        return _UNPARSED


def extract_delta_content(data: Any) -> str:
    """
    Extract ``choices[0].delta.content`` from a parsed stream record.

    Returns an empty string when the record has no content fragment (for
    example the first chunk, which usually carries only the role).
    """
    try:
        content = data["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


def _process_lines(buffer: str) -> tuple[list[StreamFrame], str, bool]:
    """
    Consume every complete line of ``buffer`` that can be consumed.

    Returns:
        (frames, unconsumed remainder, sentinel seen)
    """
    frames: list[StreamFrame] = []
    pos = 0

    while True:
        newline = buffer.find("\n", pos)
        if newline == -1:
            break

        line = _strip_cr(buffer[pos:newline])
        next_pos = newline + 1

        if not line.strip() or line.startswith(COMMENT_PREFIX) or not line.startswith(DATA_PREFIX):
            pos = next_pos
            continue

        payload = line[len(DATA_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            logger.debug("SSE stream terminated by sentinel")
            frames.append(StreamFrame.done())
            return frames, "", True

        parsed = _try_parse(payload)
        while parsed is _UNPARSED:
            # Hold the line (newline included) until the rest of the payload arrives
            following = buffer.find("\n", next_pos)
            if following == -1:
                return frames, buffer[pos:], False

            continuation = _strip_cr(buffer[next_pos:following])
            if not _is_continuation(continuation):
                logger.debug(f"SSE decoder stalled on unparseable line: {line[:100]}")
                return frames, buffer[pos:], False

            payload += continuation
            next_pos = following + 1
            parsed = _try_parse(payload)

        frames.append(StreamFrame.delta(extract_delta_content(parsed)))
        pos = next_pos

    return frames, buffer[pos:], False


def decode_chunk(state: DecoderState, chunk: bytes) -> tuple[DecoderState, list[StreamFrame]]:
    """
    Advance the decoder by one transport chunk.

    Splitting the same bytes into different chunks always yields the same
    frames in the same order.

    Args:
        state: Current decoder state
        chunk: Raw bytes as received from the transport

    Returns:
        (new state, frames decoded from newly completed lines)
    """
    if state.done:
        return state, []

    text_decoder = _new_text_decoder(state.pending)
    text = text_decoder.decode(bytes(chunk))
    pending = text_decoder.getstate()[0]

    frames, remainder, done = _process_lines(state.buffer + text)
    if done:
        return DecoderState(done=True), frames
    return DecoderState(pending=pending, buffer=remainder), frames


def finalize_state(state: DecoderState) -> list[StreamFrame]:
    """
    Drain everything still buffered at stream end.

    The unterminated last line gets one parse attempt. A line the decoder
    stalled on is reported as an ``error`` frame and dropped, and decoding
    continues with the lines after it. A ``done`` frame closes the sequence
    unless the sentinel was already seen.
    """
    if state.done:
        return []

    buffer = state.buffer + _new_text_decoder(state.pending).decode(b"", final=True)
    if buffer and not buffer.endswith("\n"):
        buffer += "\n"

    frames: list[StreamFrame] = []
    while True:
        decoded, remainder, done = _process_lines(buffer)
        frames.extend(decoded)
        if done:
            return frames
        if not remainder:
            break

        newline = remainder.index("\n")
        dropped = _strip_cr(remainder[:newline])
        logger.warning(f"Dropping undecodable SSE line at stream end: {dropped[:100]}")
        frames.append(StreamFrame.decode_error(f"Undecodable stream line: {dropped[:200]}"))
        buffer = remainder[newline + 1:]

    frames.append(StreamFrame.done())
    return frames


class SSEDecoder:
    """
    Session-scoped stream decoder; create one per streaming call.

    Example:
        >>> decoder = SSEDecoder()
        >>> decoder.feed(b'data: {"choices":[{"delta":{"content":"Hi"}}]}\\n')
        [StreamFrame(kind='delta', content='Hi', error=None)]
        >>> decoder.feed(b'data: [DONE]\\n')
        [StreamFrame(kind='done', content='', error=None)]
    """

    def __init__(self) -> None:
        self._state = DecoderState()
        self._closed = False

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def done(self) -> bool:
        """True once the termination sentinel has been decoded."""
        return self._state.done

    def feed(self, chunk: bytes) -> list[StreamFrame]:
        if self._closed:
            raise RuntimeError("SSEDecoder.feed() called after finalize()")
        self._state, frames = decode_chunk(self._state, chunk)
        return frames

    def finalize(self) -> list[StreamFrame]:
        if self._closed:
            return []
        self._closed = True
        frames = finalize_state(self._state)
        self._state = DecoderState(done=True)
        return frames
