"""Frames produced by the server-sent-events stream decoder."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class StreamFrame(BaseModel):
    """
    One decoded protocol line.

    A ``delta`` frame carries an incremental content fragment (possibly
    empty). A ``done`` frame signals termination. An ``error`` frame is only
    produced when the decoder is finalized while holding a line it could
    never parse; the line is dropped after being reported.
    """

    kind: Literal["delta", "done", "error"] = Field(
        ...,
        description="Frame type identifier"
    )

    content: str = Field(
        default="",
        description="Content delta for 'delta' frames"
    )

    error: Optional[str] = Field(
        default=None,
        description="Description of the undecodable line for 'error' frames"
    )

    model_config = {"frozen": True}

    @classmethod
    def delta(cls, content: str) -> "StreamFrame":
        return cls(kind="delta", content=content)

    @classmethod
    def done(cls) -> "StreamFrame":
        return cls(kind="done")

    @classmethod
    def decode_error(cls, error: str) -> "StreamFrame":
        return cls(kind="error", error=error)
