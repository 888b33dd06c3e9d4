"""Extraction of task fields and transcript text from service responses."""

import json
from collections.abc import Awaitable, Callable
from typing import Any

from meeting_recorder.exceptions import TranscriptionProtocolError
from meeting_recorder.logging import setup_logging

logger = setup_logging()

Downloader = Callable[[str], Awaitable[bytes]]


def extract_task_id(body: dict[str, Any]) -> str:
    """
    Reads ``output.task_id`` from a submit response.

    Raises:
        TranscriptionProtocolError: If the field is missing or not a string.
    """
    output = body.get("output") if isinstance(body, dict) else None
    task_id = output.get("task_id") if isinstance(output, dict) else None
    if not isinstance(task_id, str) or not task_id:
        raise TranscriptionProtocolError(f"missing output.task_id in {body!r}")
    return task_id


def extract_task_output(body: dict[str, Any]) -> dict[str, Any]:
    """
    Returns the ``output`` object of a task response.

    Raises:
        TranscriptionProtocolError: If ``output.task_status`` is missing.
    """
    output = body.get("output") if isinstance(body, dict) else None
    if not isinstance(output, dict) or not isinstance(output.get("task_status"), str):
        raise TranscriptionProtocolError(f"missing output.task_status in {body!r}")
    return output


def parse_result_document(data: bytes) -> str | None:
    """
    Extracts transcript text from a downloaded result document.

    Tries ``transcripts[0].text``, then ``transcripts[0].sentences[].text``
    joined without separator, then ``transcription.text``, then ``text``.
    A body that is not JSON is returned as plain text.
    """
    raw = data.decode("utf-8", errors="replace").strip()
    if not raw:
        return None

    try:
        document = json.loads(raw)
    except json.JSONDecodeError:
        if raw.startswith(("{", "[")):
            logger.warning("Result document looks like malformed JSON")
            return None
        return raw

    if not isinstance(document, dict):
        return None

    transcripts = document.get("transcripts")
    if isinstance(transcripts, list) and transcripts and isinstance(transcripts[0], dict):
        first = transcripts[0]
        text = _non_empty(first.get("text"))
        if text:
            return text
        sentences = first.get("sentences")
        if isinstance(sentences, list):
            joined = "".join(
                s["text"]
                for s in sentences
                if isinstance(s, dict) and isinstance(s.get("text"), str)
            )
            if joined.strip():
                return joined

    transcription = document.get("transcription")
    if isinstance(transcription, dict):
        text = _non_empty(transcription.get("text"))
        if text:
            return text

    return _non_empty(document.get("text"))


async def resolve_transcript(output: dict[str, Any], download: Downloader) -> str | None:
    """
    Finds the transcript in a SUCCEEDED task output.

    Shapes are tried in order and the first non-empty one wins:
    ``result.text``, the document behind ``result.transcription_url``,
    ``results[0].transcription.text`` or ``results[0].text``, ``output.text``.

    Returns:
        The transcript, or None if no shape carried any text.
    """
    result = output.get("result")
    if isinstance(result, dict):
        text = _non_empty(result.get("text"))
        if text:
            return text

        url = result.get("transcription_url")
        if isinstance(url, str) and url.strip():
            text = parse_result_document(await download(secure_url(url.strip())))
            if text:
                return text

    results = output.get("results")
    if isinstance(results, list) and results and isinstance(results[0], dict):
        first = results[0]
        transcription = first.get("transcription")
        if isinstance(transcription, dict):
            text = _non_empty(transcription.get("text"))
            if text:
                return text
        text = _non_empty(first.get("text"))
        if text:
            return text

    return _non_empty(output.get("text"))


def secure_url(url: str) -> str:
    """Upgrades a plain ``http://`` result URL to ``https://``."""
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    return url


def _non_empty(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None
