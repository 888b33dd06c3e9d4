"""Abstract interface for the asynchronous transcription service."""

from abc import ABC, abstractmethod
from typing import Any


class TranscriptionService(ABC):
    """Wire-level client of the remote transcription job API."""

    @abstractmethod
    async def submit(self, file_url: str) -> dict[str, Any]:
        """
        Submits a transcription task for a remote audio object.

        Returns:
            The decoded response body.

        Raises:
            TranscriptionServiceError: On HTTP or transport failure.
            TranscriptionProtocolError: If the body is not JSON.
        """

    @abstractmethod
    async def fetch_task(self, task_id: str) -> dict[str, Any]:
        """
        Fetches the current state of a task.

        Returns:
            The decoded response body.

        Raises:
            TranscriptionServiceError: On HTTP or transport failure.
            TranscriptionProtocolError: If the body is not JSON.
        """

    @abstractmethod
    async def download(self, url: str) -> bytes:
        """
        Downloads a result document.

        Raises:
            TranscriptionServiceError: On HTTP or transport failure.
        """
