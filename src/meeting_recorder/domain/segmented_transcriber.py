"""Segmented batch transcription for recordings too long for one request."""

import asyncio
import math
import tempfile
from pathlib import Path

from meeting_recorder.exceptions import EmptyTranscriptError, SegmentExportError
from meeting_recorder.infrastructure.interfaces import AudioSegmentExporter, BatchRecognizer
from meeting_recorder.logging import setup_logging

logger = setup_logging()


def plan_segments(total_duration: float, segment_duration: float) -> list[tuple[float, float]]:
    """
    Splits a duration into consecutive ``(start, duration)`` slices.

    The last slice holds the remainder, so a 720 s file with 300 s segments
    yields ``[(0, 300), (300, 300), (600, 120)]``.
    """
    if segment_duration <= 0:
        raise ValueError("segment_duration must be positive")
    if not math.isfinite(total_duration) or total_duration <= 0:
        return []

    segments = []
    for index in range(math.ceil(total_duration / segment_duration)):
        start = index * segment_duration
        if start >= total_duration:
            break
        segments.append((start, min(segment_duration, total_duration - start)))
    return segments


class SegmentedTranscriber:
    """Transcribes a file in sequential slices through a batch recognizer."""

    def __init__(
        self,
        recognizer: BatchRecognizer,
        exporter: AudioSegmentExporter,
        segment_duration: float = 300.0,
        threshold: float | None = None,
        temp_dir: Path | None = None,
    ):
        self._recognizer = recognizer
        self._exporter = exporter
        self._segment_duration = segment_duration
        self._threshold = segment_duration if threshold is None else threshold
        self._temp_dir = temp_dir

    async def transcribe(self, audio_path: Path) -> str:
        """
        Transcribes ``audio_path``, slicing it when it exceeds the threshold.

        Files of unknown duration are sent whole. Slices are exported and
        transcribed one at a time and each slice file is removed right after.

        Returns:
            Non-empty slice transcripts joined by newlines.

        Raises:
            SegmentExportError: If any slice fails to export; nothing partial is returned.
            RecognitionError: If the recognizer fails on any slice.
            EmptyTranscriptError: If no slice produced text.
        """
        total = await asyncio.to_thread(self._exporter.duration, audio_path)

        if not math.isfinite(total) or total <= self._threshold:
            logger.info(
                "Transcribing whole file",
                extra={"audio_file": audio_path.name, "duration": total},
            )
            text = await self._recognizer.transcribe(audio_path)
            if not text.strip():
                raise EmptyTranscriptError(audio_path.name)
            return text

        segments = plan_segments(total, self._segment_duration)
        logger.info(
            "Transcribing file in segments",
            extra={"audio_file": audio_path.name, "duration": total, "segments": len(segments)},
        )

        temp_dir = self._temp_dir or Path(tempfile.gettempdir())
        texts: list[str] = []
        for index, (start, duration) in enumerate(segments):
            text = await self._transcribe_segment(audio_path, temp_dir, index, start, duration)
            if text.strip():
                texts.append(text)

        merged = "\n".join(texts)
        if not merged.strip():
            raise EmptyTranscriptError(audio_path.name)
        return merged

    async def _transcribe_segment(
        self,
        audio_path: Path,
        temp_dir: Path,
        index: int,
        start: float,
        duration: float,
    ) -> str:
        slice_path = temp_dir / f"{audio_path.stem}_part_{index}.wav"
        _remove_slice(slice_path)
        try:
            try:
                await asyncio.to_thread(
                    self._exporter.export, audio_path, start, duration, slice_path
                )
            except Exception as e:
                logger.exception(
                    "Segment export failed",
                    extra={"audio_file": audio_path.name, "segment": index},
                )
                cause = e.cause if isinstance(e, SegmentExportError) else e
                raise SegmentExportError(audio_path.name, index, cause) from e

            text = await self._recognizer.transcribe(slice_path)
            logger.info(
                "Segment transcribed",
                extra={"audio_file": audio_path.name, "segment": index, "chars": len(text)},
            )
            return text
        finally:
            _remove_slice(slice_path)


def _remove_slice(slice_path: Path) -> None:
    try:
        slice_path.unlink(missing_ok=True)
    except OSError:
        logger.exception("Failed to remove segment file", extra={"path": str(slice_path)})
