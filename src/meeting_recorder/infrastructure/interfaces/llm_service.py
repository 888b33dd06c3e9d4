"""Abstract interface for LLM service operations."""

from abc import ABC, abstractmethod


class LLMService(ABC):
    """Abstract base class for LLM backends."""

    @abstractmethod
    def refine_transcript(self, text: str) -> str:
        """
        Adds punctuation, fixes recognition errors and splits paragraphs.

        Args:
            text: The raw transcript.

        Returns:
            The refined transcript.

        Raises:
            LLMServiceError: If the LLM call fails or returns nothing.
        """
        pass
