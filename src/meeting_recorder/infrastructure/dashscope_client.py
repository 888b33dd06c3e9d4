"""DashScope asynchronous file transcription client over httpx."""

from typing import Any

import httpx

from meeting_recorder.exceptions import TranscriptionProtocolError, TranscriptionServiceError
from meeting_recorder.logging import setup_logging

from .interfaces import TranscriptionService

logger = setup_logging()


class DashScopeTranscriptionClient(TranscriptionService):
    """Talks to the DashScope async ASR task API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str,
        submit_url: str,
        tasks_url: str,
    ):
        self._client = client
        self._api_key = api_key
        self._model = model
        self._submit_url = submit_url
        self._tasks_url = tasks_url.rstrip("/")

    async def submit(self, file_url: str) -> dict[str, Any]:
        payload = {"model": self._model, "input": {"file_url": file_url}}
        headers = {**self._auth_headers(), "X-DashScope-Async": "enable"}
        return await self._request_json("POST", self._submit_url, json=payload, headers=headers)

    async def fetch_task(self, task_id: str) -> dict[str, Any]:
        return await self._request_json(
            "GET", f"{self._tasks_url}/{task_id}", headers=self._auth_headers()
        )

    async def download(self, url: str) -> bytes:
        response = await self._send("GET", url)
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def _request_json(self, method: str, url: str, **kwargs) -> dict[str, Any]:
        response = await self._send(method, url, **kwargs)
        try:
            body = response.json()
        except ValueError as e:
            logger.exception("Transcription service returned non-JSON body", extra={"url": url})
            raise TranscriptionProtocolError("response body is not JSON", e) from e
        if not isinstance(body, dict):
            raise TranscriptionProtocolError(f"expected a JSON object, got {type(body).__name__}")
        return body

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Transcription service returned an error status",
                extra={"url": url, "status_code": e.response.status_code},
            )
            raise TranscriptionServiceError(e.response.status_code, e.response.text, e) from e
        except httpx.HTTPError as e:
            logger.warning("Transcription service request failed", extra={"url": url})
            raise TranscriptionServiceError(0, str(e), e) from e
