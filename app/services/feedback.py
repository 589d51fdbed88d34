"""Summarize and store user feedback."""

from __future__ import annotations

import logging
import uuid

from app.clients import GeminiClient
from app.models.user import FEEDBACK_PARTITION_KEY, FeedbackRecord
from app.services.users import DocumentStore

logger = logging.getLogger(__name__)


class FeedbackService:
    def __init__(self, gemini_client: GeminiClient, store: DocumentStore) -> None:
        self._gemini = gemini_client
        self._store = store

    async def submit(self, feedback_text: str) -> FeedbackRecord:
        """Summarize ``feedback_text`` and persist both the original and summary."""
        prompt = (
            "Summarize the following user feedback to identify key pain points and "
            "areas for improvement:\n\n"
            f"Feedback: {feedback_text}\n\n"
            "Summary:"
        )
        summary = (await self._gemini.generate_text(prompt)).strip()
        record = FeedbackRecord(original_feedback=feedback_text, summary=summary)

        item = record.model_dump(mode="json", by_alias=False)
        item["pk"] = FEEDBACK_PARTITION_KEY
        item["sk"] = f"feedback#{item['created_at']}#{uuid.uuid4().hex[:8]}"
        self._store.put_item(item)
        logger.info("Stored feedback %s", item["sk"])
        return record


__all__ = ["FeedbackService"]
