"""Audio duration probing and slice export using moviepy."""

import math
from pathlib import Path

import moviepy

from meeting_recorder.exceptions import SegmentExportError
from meeting_recorder.logging import setup_logging

from .interfaces import AudioSegmentExporter

logger = setup_logging()


class MoviePyAudioExporter(AudioSegmentExporter):
    """Reads and slices recordings through moviepy's ffmpeg reader."""

    def __init__(self, sample_rate: int = 16000):
        self._sample_rate = sample_rate

    def duration(self, audio_path: Path) -> float:
        """Returns the duration in seconds, or NaN if it cannot be read."""
        try:
            clip = moviepy.AudioFileClip(str(audio_path))
        except Exception:
            logger.exception("Failed to open audio file", extra={"audio_file": audio_path.name})
            return math.nan
        try:
            return float(clip.duration) if clip.duration is not None else math.nan
        finally:
            clip.close()

    def export(
        self, audio_path: Path, start: float, duration: float, destination: Path
    ) -> None:
        try:
            clip = moviepy.AudioFileClip(str(audio_path))
            try:
                end = min(start + duration, clip.duration)
                segment = clip.subclipped(start, end)
                segment.write_audiofile(
                    str(destination),
                    fps=self._sample_rate,
                    codec="pcm_s16le",
                    logger=None,
                )
            finally:
                clip.close()
        except Exception as e:
            logger.exception(
                "Audio slice export failed",
                extra={"audio_file": audio_path.name, "start": start, "duration": duration},
            )
            raise SegmentExportError(audio_path.name, cause=e) from e

        logger.info(
            "Audio slice exported",
            extra={"audio_file": audio_path.name, "start": start, "destination": destination.name},
        )
