"""Mentor conversation models."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """
    One message in the mentor conversation.

    Not frozen: the last assistant message grows in place as deltas arrive.
    """

    role: Literal["user", "assistant"]
    content: str = ""

    model_config = {"frozen": False}

    def append(self, delta: str) -> None:
        self.content += delta

    def to_api(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class MentorState(str, Enum):
    """States of a mentor turn."""

    IDLE = "idle"
    AWAITING_AUTH = "awaiting_auth"
    SENDING = "sending"
    STREAMING = "streaming"
    ERROR_ROLLBACK = "error_rollback"


class MentorEvent(BaseModel):
    """Event yielded to the caller while a mentor turn runs."""

    type: Literal["delta", "error", "done"] = Field(
        ...,
        description="Event type identifier"
    )

    content: str = Field(
        default="",
        description="Delta text for 'delta' events"
    )

    message: Optional[str] = Field(
        default=None,
        description="User-facing error message for 'error' events"
    )

    status: Optional[str] = Field(
        default=None,
        description="Classified failure status for 'error' events"
    )

    restored_input: Optional[str] = Field(
        default=None,
        description="The submitted text, returned so the caller can put it back in the input field"
    )

    model_config = {"frozen": True}
