"""Journal entry and per-entry analysis models."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from careerpath.utils.ids import generate_random_uuid


DEFAULT_MOOD_SCORE = 5
UNTITLED_ENTRY = "Untitled Entry"


def _coerce_labels(value: Any) -> list[str]:
    """Normalize a label list: strings only, stripped, duplicates removed in order."""
    if not isinstance(value, (list, tuple)):
        return []
    labels: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        label = item.strip()
        if label and label not in labels:
            labels.append(label)
    return labels


def _coerce_mood(value: Any) -> int:
    """Mood score in 1..10; anything missing or invalid becomes the neutral 5."""
    if isinstance(value, bool):
        return DEFAULT_MOOD_SCORE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_MOOD_SCORE
    if isinstance(value, float):
        if not value.is_integer():
            return DEFAULT_MOOD_SCORE
        value = int(value)
    if isinstance(value, int) and 1 <= value <= 10:
        return value
    return DEFAULT_MOOD_SCORE


def _coerce_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class AnalysisResult(BaseModel):
    """
    Structured signals extracted from one journal entry.

    Field aliases match the JSON shape requested from the model
    (``skills``, ``interests``, ``summary``, ``insights``, ``moodScore``).
    Validation is tolerant: wrong types collapse to empty values and an
    out-of-range mood becomes 5, so a partially correct response still
    produces a usable result.
    """

    emotions: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    summary: str = Field(default="")
    insights: str = Field(default="")
    mood_score: int = Field(default=DEFAULT_MOOD_SCORE, alias="moodScore", ge=1, le=10)
    is_fallback: bool = Field(default=False, description="True when produced by the fallback path")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("emotions", "skills", "interests", mode="before")
    @classmethod
    def _labels(cls, v: Any) -> list[str]:
        return _coerce_labels(v)

    @field_validator("summary", "insights", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _coerce_text(v)

    @field_validator("mood_score", mode="before")
    @classmethod
    def _mood(cls, v: Any) -> int:
        return _coerce_mood(v)

    @classmethod
    def fallback(cls) -> "AnalysisResult":
        """The documented neutral result used when analysis is unavailable."""
        return cls(
            emotions=["thoughtful"],
            skills=[],
            interests=[],
            summary="Analysis in progress...",
            insights="Keep journaling to discover patterns in your career journey.",
            mood_score=DEFAULT_MOOD_SCORE,
            is_fallback=True,
        )


class JournalEntry(BaseModel):
    """A persisted, analyzed journal entry. Immutable once created."""

    id: str = Field(default_factory=generate_random_uuid)
    user_id: str
    content: str
    title: str | None = None
    mood_score: int = Field(default=DEFAULT_MOOD_SCORE, ge=1, le=10)
    emotions: list[str] = Field(default_factory=list)
    detected_skills: list[str] = Field(default_factory=list)
    detected_interests: list[str] = Field(default_factory=list)
    ai_summary: str = ""
    ai_insights: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    @field_validator("mood_score", mode="before")
    @classmethod
    def _mood(cls, v: Any) -> int:
        return _coerce_mood(v)

    @classmethod
    def from_analysis(
        cls,
        user_id: str,
        content: str,
        analysis: AnalysisResult,
        title: str | None = None,
    ) -> "JournalEntry":
        """Build an entry carrying the analysis fields (real or fallback)."""
        return cls(
            user_id=user_id,
            content=content,
            title=title or UNTITLED_ENTRY,
            mood_score=analysis.mood_score,
            emotions=list(analysis.emotions),
            detected_skills=list(analysis.skills),
            detected_interests=list(analysis.interests),
            ai_summary=analysis.summary,
            ai_insights=analysis.insights,
        )
