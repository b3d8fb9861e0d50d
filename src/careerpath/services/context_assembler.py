"""Builds the per-turn context block that grounds the mentor."""

from careerpath.models.career import Prediction
from careerpath.models.config import InsightsConfig
from careerpath.models.journal import JournalEntry
from careerpath.storage.store import JournalStore
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)

NO_JOURNAL_SENTINEL = "User has not journaled yet."
NO_PREDICTIONS_LINE = "No predictions yet"


def _join_or_na(labels: list[str]) -> str:
    return ", ".join(labels) if labels else "N/A"


def format_entry(entry: JournalEntry) -> str:
    return "\n".join([
        f"- Emotions: {_join_or_na(entry.emotions)}",
        f"- Skills: {_join_or_na(entry.detected_skills)}",
        f"- Interests: {_join_or_na(entry.detected_interests)}",
        f"- Mood: {entry.mood_score}/10",
        f"- Recent insight: {entry.ai_insights or 'N/A'}",
    ])


def format_prediction(prediction: Prediction) -> str:
    return f"- {prediction.career_path} ({prediction.confidence_score}% match): {prediction.reasoning}"


def render_context(entries: list[JournalEntry], predictions: list[Prediction]) -> str:
    """
    Render the context block from already-loaded history.

    Returns the fixed sentinel sentence when there are no entries, never an
    empty string.
    """
    if not entries:
        return NO_JOURNAL_SENTINEL

    entry_blocks = "\n\n".join(format_entry(entry) for entry in entries)
    prediction_lines = (
        "\n".join(format_prediction(p) for p in predictions)
        if predictions
        else NO_PREDICTIONS_LINE
    )

    return (
        "USER'S JOURNAL INSIGHTS:\n"
        f"{entry_blocks}\n\n"
        "CAREER PREDICTIONS FOR THIS USER:\n"
        f"{prediction_lines}"
    )


class ContextAssembler:
    """Reads recent history from the store and renders it. No caching."""

    def __init__(self, store: JournalStore, insights: InsightsConfig | None = None):
        self.store = store
        self.insights = insights or InsightsConfig()

    def build_context(self, user_id: str) -> str:
        entries = self.store.recent_entries(user_id, self.insights.entry_window)
        predictions = self.store.active_predictions(user_id) if entries else []

        logger.debug(
            "context_built",
            user_id=user_id,
            entry_count=len(entries),
            prediction_count=len(predictions),
        )
        return render_context(entries, predictions)
