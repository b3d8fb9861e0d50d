"""Career prediction and avoidance models.

Two families live here: the wire shapes the model is asked to return
(camelCase aliases, validated leniently) and the stored rows the aggregator
writes for one user.
"""

import math
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator


INSUFFICIENT_DATA_MESSAGE = (
    "Not enough data yet. Keep journaling to get personalized career predictions!"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LearningResource(BaseModel):
    """A course, article or other resource suggested for a career path."""

    title: str
    type: str = ""
    url: str = ""

    model_config = {"frozen": True}


class CareerRecommendation(BaseModel):
    """One recommended career as returned by the model."""

    career_path: str = Field(..., alias="careerPath", min_length=1)
    confidence_score: int = Field(default=0, alias="confidenceScore", ge=0, le=100)
    reasoning: str = ""
    recommended_skills: list[str] = Field(default_factory=list, alias="recommendedSkills")
    learning_resources: list[LearningResource] = Field(default_factory=list, alias="learningResources")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> int:
        """Round to an integer percentage and clamp into 0..100."""
        if isinstance(v, bool):
            raise ValueError("confidenceScore must be a number")
        if isinstance(v, str):
            v = float(v.strip().rstrip("%"))
        if not isinstance(v, (int, float)):
            raise ValueError("confidenceScore must be a number")
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("confidenceScore must be finite")
        return max(0, min(100, int(round(v))))

    @field_validator("recommended_skills", mode="before")
    @classmethod
    def skills_as_strings(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [s for s in v if isinstance(s, str) and s.strip()]

    @field_validator("learning_resources", mode="before")
    @classmethod
    def drop_untitled_resources(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [r for r in v if isinstance(r, dict) and r.get("title")]


class CareerToAvoid(BaseModel):
    """One career the model advises against."""

    career_path: str = Field(..., alias="careerPath", min_length=1)
    reason: str = ""

    model_config = {"frozen": True, "populate_by_name": True}


class PredictionResponse(BaseModel):
    """Top-level object the prediction prompt asks the model to return."""

    recommended: list[CareerRecommendation] = Field(..., min_length=1)
    avoid: list[CareerToAvoid] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("avoid", mode="before")
    @classmethod
    def avoid_list_or_empty(cls, v: Any) -> list[Any]:
        return v if isinstance(v, list) else []

    @classmethod
    def fallback(cls) -> "PredictionResponse":
        """Single-item result used when the model output is unusable."""
        return cls(
            recommended=[
                CareerRecommendation(
                    career_path="Technology & Innovation",
                    confidence_score=70,
                    reasoning="Based on your reflective thinking and problem-solving approach",
                    recommended_skills=["Critical Thinking", "Communication", "Adaptability"],
                    learning_resources=[],
                )
            ],
            avoid=[
                CareerToAvoid(
                    career_path="Routine Administrative Work",
                    reason="May not align with your creative and analytical thinking patterns",
                )
            ],
        )


class Prediction(BaseModel):
    """A stored career prediction row."""

    user_id: str
    career_path: str
    confidence_score: int = Field(..., ge=0, le=100)
    reasoning: str = ""
    recommended_skills: list[str] = Field(default_factory=list)
    learning_resources: list[LearningResource] = Field(default_factory=list)
    is_active: bool = True
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    @classmethod
    def from_recommendation(cls, user_id: str, rec: CareerRecommendation) -> "Prediction":
        return cls(
            user_id=user_id,
            career_path=rec.career_path,
            confidence_score=rec.confidence_score,
            reasoning=rec.reasoning,
            recommended_skills=list(rec.recommended_skills),
            learning_resources=list(rec.learning_resources),
            is_active=True,
        )


class Avoidance(BaseModel):
    """A stored "career to avoid" row."""

    user_id: str
    career_path: str
    reason: str = ""
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}


class CareerOutlook(BaseModel):
    """Ranked predictions plus the avoidance list for one user."""

    predictions: list[Prediction] = Field(default_factory=list)
    avoidances: list[Avoidance] = Field(default_factory=list)
    is_fallback: bool = False

    model_config = {"frozen": True}


class InsufficientData(BaseModel):
    """Aggregation result for a user who has not journaled yet. Not an error."""

    insufficient_data: bool = True
    message: str = INSUFFICIENT_DATA_MESSAGE

    model_config = {"frozen": True}
