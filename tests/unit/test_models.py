"""Unit tests for data models."""

import pytest
from pydantic import ValidationError

from careerpath.models.career import (
    CareerRecommendation,
    Prediction,
    PredictionResponse,
)
from careerpath.models.chat import ChatMessage, MentorEvent
from careerpath.models.journal import AnalysisResult, JournalEntry, UNTITLED_ENTRY
from careerpath.models.stream_frames import StreamFrame


class TestAnalysisResult:
    """Test tolerant validation of analysis responses."""

    def test_camel_case_mood_alias(self):
        result = AnalysisResult.model_validate({"moodScore": 9})

        assert result.mood_score == 9

    @pytest.mark.parametrize("mood", [0, 11, -3, 7.5, "high", None, True])
    def test_invalid_mood_becomes_neutral(self, mood):
        assert AnalysisResult.model_validate({"moodScore": mood}).mood_score == 5

    @pytest.mark.parametrize("mood,expected", [(1, 1), (10, 10), ("6", 6), (4.0, 4)])
    def test_valid_mood_kept(self, mood, expected):
        assert AnalysisResult.model_validate({"moodScore": mood}).mood_score == expected

    def test_labels_normalized(self):
        result = AnalysisResult.model_validate({
            "emotions": [" happy ", "happy", "", None, "calm"],
            "interests": "music",
        })

        assert result.emotions == ["happy", "calm"]
        assert result.interests == []

    def test_fallback_values(self):
        fallback = AnalysisResult.fallback()

        assert fallback.emotions == ["thoughtful"]
        assert fallback.skills == []
        assert fallback.interests == []
        assert fallback.summary == "Analysis in progress..."
        assert fallback.insights == "Keep journaling to discover patterns in your career journey."
        assert fallback.mood_score == 5
        assert fallback.is_fallback

    def test_result_is_immutable(self):
        with pytest.raises(ValidationError):
            AnalysisResult.fallback().mood_score = 8


class TestJournalEntry:
    """Test journal entry construction."""

    def test_from_analysis_copies_fields(self):
        analysis = AnalysisResult.model_validate({
            "emotions": ["focused"],
            "skills": ["Writing"],
            "interests": ["history"],
            "summary": "Wrote a long article.",
            "insights": "Consider editorial roles.",
            "moodScore": 7,
        })

        entry = JournalEntry.from_analysis("user-1", "Wrote all day", analysis, title="Draft")

        assert entry.user_id == "user-1"
        assert entry.title == "Draft"
        assert entry.emotions == ["focused"]
        assert entry.detected_skills == ["Writing"]
        assert entry.detected_interests == ["history"]
        assert entry.ai_summary == "Wrote a long article."
        assert entry.ai_insights == "Consider editorial roles."
        assert entry.mood_score == 7

    def test_default_title_and_unique_ids(self):
        first = JournalEntry.from_analysis("u", "a", AnalysisResult.fallback())
        second = JournalEntry.from_analysis("u", "b", AnalysisResult.fallback())

        assert first.title == UNTITLED_ENTRY
        assert first.id != second.id
        assert first.created_at.tzinfo is not None


class TestCareerRecommendation:
    """Test validation of model-returned recommendations."""

    @pytest.mark.parametrize(
        "score,expected",
        [(85, 85), (150, 100), (-10, 0), (72.6, 73), ("90", 90), ("65%", 65), (10**400, 100)],
    )
    def test_confidence_clamped(self, score, expected):
        rec = CareerRecommendation.model_validate({"careerPath": "Analyst", "confidenceScore": score})

        assert rec.confidence_score == expected

    @pytest.mark.parametrize("score", ["very high", True, [80]])
    def test_non_numeric_confidence_rejected(self, score):
        with pytest.raises(ValidationError):
            CareerRecommendation.model_validate({"careerPath": "Analyst", "confidenceScore": score})

    @pytest.mark.parametrize("score", [float("inf"), float("-inf"), float("nan"), "1e999", "Infinity"])
    def test_non_finite_confidence_rejected(self, score):
        with pytest.raises(ValidationError):
            CareerRecommendation.model_validate({"careerPath": "Analyst", "confidenceScore": score})

    def test_career_path_required(self):
        with pytest.raises(ValidationError):
            CareerRecommendation.model_validate({"confidenceScore": 50})

    def test_resources_without_title_dropped(self):
        rec = CareerRecommendation.model_validate({
            "careerPath": "Analyst",
            "learningResources": [{"title": "SQL basics", "type": "course"}, {"url": "x"}, "link"],
        })

        assert [r.title for r in rec.learning_resources] == ["SQL basics"]
        assert rec.learning_resources[0].url == ""


class TestPredictionResponse:
    """Test the top-level prediction response."""

    def test_requires_at_least_one_recommendation(self):
        with pytest.raises(ValidationError):
            PredictionResponse.model_validate({"recommended": [], "avoid": []})

    def test_avoid_optional(self):
        response = PredictionResponse.model_validate({"recommended": [{"careerPath": "Chef"}], "avoid": None})

        assert response.avoid == []

    def test_fallback(self):
        fallback = PredictionResponse.fallback()

        assert [r.career_path for r in fallback.recommended] == ["Technology & Innovation"]
        assert fallback.recommended[0].confidence_score == 70
        assert [a.career_path for a in fallback.avoid] == ["Routine Administrative Work"]

    def test_prediction_from_recommendation(self):
        rec = CareerRecommendation.model_validate({
            "careerPath": "Chef",
            "confidenceScore": 88,
            "reasoning": "Loves cooking",
            "recommendedSkills": ["Knife work"],
        })

        prediction = Prediction.from_recommendation("user-1", rec)

        assert prediction.user_id == "user-1"
        assert prediction.career_path == "Chef"
        assert prediction.confidence_score == 88
        assert prediction.recommended_skills == ["Knife work"]
        assert prediction.is_active


class TestChatModels:
    """Test mentor conversation models."""

    def test_message_append(self):
        message = ChatMessage(role="assistant")
        message.append("Hel")
        message.append("lo")

        assert message.to_api() == {"role": "assistant", "content": "Hello"}

    def test_invalid_role_rejected(self):
        with pytest.raises(ValidationError):
            ChatMessage(role="system", content="nope")

    def test_event_types(self):
        event = MentorEvent(type="error", message="Rate limit exceeded.", restored_input="hi")

        assert event.restored_input == "hi"
        with pytest.raises(ValidationError):
            MentorEvent(type="progress")


class TestStreamFrame:
    """Test decoder frame constructors."""

    def test_constructors(self):
        assert StreamFrame.delta("x").kind == "delta"
        assert StreamFrame.delta("x").content == "x"
        assert StreamFrame.done().kind == "done"
        error = StreamFrame.decode_error("bad line")
        assert error.kind == "error"
        assert "bad line" in error.error
