"""Multi-entry career prediction and the predictions/avoidances replacement."""

import json

from pydantic import ValidationError

from careerpath.llm.prompts import build_prediction_messages
from careerpath.models.career import (
    Avoidance,
    CareerOutlook,
    InsufficientData,
    Prediction,
    PredictionResponse,
)
from careerpath.models.config import InsightsConfig
from careerpath.models.journal import JournalEntry
from careerpath.services.completion_client import CompletionClient
from careerpath.services.exceptions import ClassifiedTransportError, ParseFailure
from careerpath.services.llm_helpers import extract_json_object
from careerpath.storage.local_cache import LocalCache, avoidances_key
from careerpath.storage.store import JournalStore
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)


def summarize_entries(entries: list[JournalEntry], excerpt_chars: int) -> list[dict]:
    """Compact per-entry records sent upstream, with content truncated."""
    return [
        {
            "content": entry.content[:excerpt_chars],
            "emotions": entry.emotions,
            "skills": entry.detected_skills,
            "interests": entry.detected_interests,
            "insights": entry.ai_insights,
        }
        for entry in entries
    ]


def _avoidances_to_cache(avoidances: list[Avoidance]) -> str:
    return json.dumps(
        [{"careerPath": a.career_path, "reason": a.reason} for a in avoidances],
        ensure_ascii=False,
    )


def _avoidances_from_cache(user_id: str, raw: str) -> list[Avoidance]:
    try:
        items = json.loads(raw)
    except ValueError:
        logger.warning("avoidance_cache_corrupt", user_id=user_id)
        return []
    if not isinstance(items, list):
        return []
    return [
        Avoidance(user_id=user_id, career_path=item["careerPath"], reason=item.get("reason") or "")
        for item in items
        if isinstance(item, dict) and isinstance(item.get("careerPath"), str)
    ]


class PredictionAggregator:
    """
    Produces a user's ranked career predictions and avoidance list.

    Upstream problems never escape ``aggregate``: they are replaced by
    ``PredictionResponse.fallback()``. Store problems do escape, as
    PersistenceError.
    """

    def __init__(
        self,
        client: CompletionClient,
        store: JournalStore,
        cache: LocalCache,
        insights: InsightsConfig | None = None,
    ):
        self.client = client
        self.store = store
        self.cache = cache
        self.insights = insights or InsightsConfig()

    async def aggregate(self, user_id: str) -> CareerOutlook | InsufficientData:
        """
        Generate and persist a fresh prediction set for ``user_id``.

        Returns:
            CareerOutlook with the stored rows, or InsufficientData when the
            user has no entries (nothing is sent upstream or written)

        Raises:
            PersistenceError: If reading entries or replacing rows fails
        """
        entries = self.store.recent_entries(user_id, self.insights.entry_window)

        if not entries:
            logger.info("aggregation_insufficient_data", user_id=user_id)
            self.cache.remove(avoidances_key(user_id))
            return InsufficientData()

        summary = summarize_entries(entries, self.insights.content_excerpt_chars)
        response, is_fallback = await self._request_predictions(user_id, summary)

        predictions = [Prediction.from_recommendation(user_id, rec) for rec in response.recommended]
        avoidances = [
            Avoidance(user_id=user_id, career_path=item.career_path, reason=item.reason)
            for item in response.avoid
        ]

        self._replace(user_id, predictions, avoidances)
        self.cache.set(avoidances_key(user_id), _avoidances_to_cache(avoidances))

        logger.info(
            "aggregation_completed",
            user_id=user_id,
            entry_count=len(entries),
            prediction_count=len(predictions),
            avoidance_count=len(avoidances),
            fallback=is_fallback,
        )
        return CareerOutlook(predictions=predictions, avoidances=avoidances, is_fallback=is_fallback)

    async def _request_predictions(
        self, user_id: str, summary: list[dict]
    ) -> tuple[PredictionResponse, bool]:
        try:
            text = await self.client.complete(build_prediction_messages(summary))
        except ClassifiedTransportError as e:
            logger.warning(
                "prediction_fallback",
                user_id=user_id,
                reason="transport",
                status=e.status.value,
                error=e.message,
            )
            return PredictionResponse.fallback(), True

        try:
            response = PredictionResponse.model_validate(extract_json_object(text))
        except (ParseFailure, ValidationError) as e:
            logger.warning("prediction_fallback", user_id=user_id, reason="parse", error=str(e))
            return PredictionResponse.fallback(), True

        return response, False

    def _replace(self, user_id: str, predictions: list[Prediction], avoidances: list[Avoidance]) -> None:
        # Order matters: predictions are fully replaced before avoidances
        with self.store.transaction():
            removed_predictions = self.store.delete_predictions(user_id)
            for prediction in predictions:
                self.store.insert_prediction(prediction)

            removed_avoidances = self.store.delete_avoidances(user_id)
            for avoidance in avoidances:
                self.store.insert_avoidance(avoidance)

        logger.info(
            "predictions_replaced",
            user_id=user_id,
            removed_predictions=removed_predictions,
            removed_avoidances=removed_avoidances,
        )

    def load_outlook(self, user_id: str) -> CareerOutlook:
        """
        Read the current outlook for display.

        Stored avoidances win whenever there are any (and refresh the cache);
        the local cache is only consulted when the store has none.
        """
        predictions = self.store.active_predictions(user_id)
        avoidances = self.store.avoidances(user_id)
        key = avoidances_key(user_id)

        if avoidances:
            self.cache.set(key, _avoidances_to_cache(avoidances))
        else:
            cached = self.cache.get(key)
            if cached:
                avoidances = _avoidances_from_cache(user_id, cached)
                logger.debug("avoidances_loaded_from_cache", user_id=user_id, count=len(avoidances))

        return CareerOutlook(predictions=predictions, avoidances=avoidances)
