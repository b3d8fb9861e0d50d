"""Per-entry journal analysis and the journal save flow."""

from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from careerpath.llm.prompts import build_analysis_messages
from careerpath.models.journal import AnalysisResult, JournalEntry
from careerpath.services.completion_client import CompletionClient
from careerpath.services.exceptions import ClassifiedTransportError, ParseFailure
from careerpath.services.llm_helpers import extract_json_object
from careerpath.storage.store import JournalStore
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)


class EntryAnalyzer:
    """
    Turns one journal text into structured signals.

    ``analyze`` never raises for upstream problems: a transport failure or
    an unusable response yields ``AnalysisResult.fallback()`` instead.
    """

    def __init__(self, client: CompletionClient):
        self.client = client

    async def analyze(self, text: str) -> AnalysisResult:
        """
        Analyze journal text.

        Args:
            text: Raw journal entry content

        Returns:
            Parsed analysis, or the documented fallback
        """
        try:
            response = await self.client.complete(build_analysis_messages(text))
        except ClassifiedTransportError as e:
            logger.warning(
                "analysis_fallback",
                reason="transport",
                status=e.status.value,
                error=e.message,
            )
            return AnalysisResult.fallback()

        try:
            data = extract_json_object(response)
            result = AnalysisResult.model_validate(data)
        except (ParseFailure, ValidationError) as e:
            logger.warning("analysis_fallback", reason="parse", error=str(e))
            return AnalysisResult.fallback()

        logger.info(
            "analysis_completed",
            mood_score=result.mood_score,
            emotion_count=len(result.emotions),
            skill_count=len(result.skills),
            interest_count=len(result.interests),
        )
        return result


class JournalService:
    """
    Save and read journal entries.

    Analysis problems never block a save; store problems always surface as
    PersistenceError.
    """

    def __init__(self, store: JournalStore, analyzer: EntryAnalyzer):
        self.store = store
        self.analyzer = analyzer

    async def create_entry(
        self,
        user_id: str,
        content: str,
        title: Optional[str] = None,
    ) -> JournalEntry:
        """
        Analyze and persist a new journal entry.

        Args:
            user_id: Owning user
            content: Journal text (must not be blank)
            title: Optional title, "Untitled Entry" when omitted

        Returns:
            The stored entry

        Raises:
            ValueError: If content is blank (nothing is sent upstream)
            PersistenceError: If the store rejects the insert
        """
        if not content or not content.strip():
            raise ValueError("Please write something before saving")

        analysis = await self.analyzer.analyze(content)
        entry = JournalEntry.from_analysis(user_id, content, analysis, title=title or None)

        stored = self.store.insert_entry(entry)
        logger.info(
            "journal_entry_saved",
            user_id=user_id,
            entry_id=stored.id,
            analysis_fallback=analysis.is_fallback,
        )
        return stored

    def recent_entries(self, user_id: str, limit: int = 5) -> list[JournalEntry]:
        return self.store.recent_entries(user_id, limit)

    def mood_history(self, user_id: str, limit: int = 30) -> list[tuple[datetime, int]]:
        """Mood scores of the latest ``limit`` entries, oldest first."""
        return self.store.mood_history(user_id, limit)
