"""Optional LLM refinement of raw transcripts."""

import hashlib

from meeting_recorder.exceptions import CacheServiceError
from meeting_recorder.infrastructure.interfaces import CacheService, LLMService
from meeting_recorder.logging import setup_logging

logger = setup_logging()


class TextOptimizer:
    """Refines transcripts with an LLM, falling back to the input text."""

    def __init__(self, llm_service: LLMService, cache_service: CacheService | None = None):
        self._llm = llm_service
        self._cache = cache_service

    def optimize(self, text: str) -> str:
        """
        Refines a transcript, using cache when available.

        Blank input is returned as-is without calling the LLM. Any refinement
        failure returns the original text, so this step can never lose a
        transcript.

        Args:
            text: The raw transcript.

        Returns:
            The refined transcript, or ``text`` unchanged.
        """
        if not text.strip():
            return text

        cache_key = f"optimized:{hashlib.sha256(text.encode('utf-8')).hexdigest()}"
        cached = self._cache_get(cache_key)
        if cached:
            logger.info("Refined transcript retrieved from cache")
            return cached

        try:
            refined = self._llm.refine_transcript(text)
        except Exception:
            logger.exception("Transcript refinement failed, keeping raw text")
            return text

        if not refined.strip():
            logger.warning("Refinement returned empty text, keeping raw text")
            return text

        self._cache_set(cache_key, refined)
        return refined

    def _cache_get(self, key: str) -> str | None:
        if self._cache is None:
            return None
        try:
            value = self._cache.get(key)
        except CacheServiceError:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def _cache_set(self, key: str, value: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(key, value)
        except CacheServiceError:
            logger.warning("Refined transcript not cached", extra={"key": key})
