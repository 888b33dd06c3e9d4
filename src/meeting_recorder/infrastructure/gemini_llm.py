"""Gemini LLM service implementation."""

from google import genai

from meeting_recorder.exceptions import LLMServiceError
from meeting_recorder.logging import setup_logging

from .interfaces import LLMService

logger = setup_logging()


class GeminiLLMService(LLMService):
    """LLM service implementation using Google Gemini."""

    def __init__(
        self,
        client: genai.Client,
        model_name: str,
        system_prompt: str,
        temperature: float = 0.3,
    ):
        self._client = client
        self._model_name = model_name
        self._system_prompt = system_prompt
        self._temperature = temperature

    def refine_transcript(self, text: str) -> str:
        """
        Refines a raw transcript using Gemini.

        Args:
            text: The raw transcript text.

        Returns:
            The refined transcript.

        Raises:
            LLMServiceError: If the Gemini API call fails or returns no text.
        """
        try:
            response = self._client.models.generate_content(
                model=self._model_name,
                contents=f"Refine the following speech recognition text:\n{text}",
                config={
                    "system_instruction": self._system_prompt,
                    "temperature": self._temperature,
                    "response_mime_type": "text/plain",
                },
            )
            if not response.text or not response.text.strip():
                raise LLMServiceError("Gemini returned empty response")
            logger.info(
                "Transcript refined",
                extra={"input_chars": len(text), "output_chars": len(response.text)},
            )
            return response.text.strip()
        except Exception as e:
            logger.exception("Gemini API call failed")
            raise LLMServiceError(f"Gemini refinement failed: {e}", cause=e) from e
