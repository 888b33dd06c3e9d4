"""Gemini-backed speech recognizers."""

import io
import threading
import time
from pathlib import Path

import numpy as np
import soundfile as sf
from google import genai
from google.genai import types

from meeting_recorder.domain.transcript_accumulator import TranscriptAccumulator
from meeting_recorder.exceptions import RecognitionError
from meeting_recorder.logging import setup_logging

from .interfaces import BatchRecognizer, StreamingRecognizer

logger = setup_logging()

TRANSCRIBE_PROMPT = (
    "Transcribe this meeting audio verbatim in its original language. "
    "Respond with only the transcript text. If there is no speech, respond with nothing."
)

_MIME_TYPES = {".wav": "audio/wav", ".m4a": "audio/mp4", ".mp3": "audio/mpeg", ".flac": "audio/flac"}


class GeminiBatchRecognizer(BatchRecognizer):
    """Transcribes whole audio files with Gemini's multimodal input."""

    def __init__(self, client: genai.Client, model_name: str):
        self._client = client
        self._model_name = model_name

    async def transcribe(self, audio_path: Path) -> str:
        try:
            audio_data = audio_path.read_bytes()
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=[
                    TRANSCRIBE_PROMPT,
                    types.Part.from_bytes(
                        data=audio_data,
                        mime_type=_MIME_TYPES.get(audio_path.suffix.lower(), "audio/wav"),
                    ),
                ],
            )
        except Exception as e:
            logger.exception("Gemini recognition failed", extra={"audio_file": audio_path.name})
            raise RecognitionError(audio_path.name, e) from e

        text = (response.text or "").strip()
        logger.info(
            "Audio file recognized",
            extra={"audio_file": audio_path.name, "chars": len(text)},
        )
        return text


class GeminiStreamingRecognizer(StreamingRecognizer):
    """
    Approximates streaming recognition by transcribing fixed windows of audio.

    Sample blocks arrive from the audio session's capture callback. Whenever
    a window fills up it is encoded as WAV and recognized on a worker thread.
    Window results are kept in capture order and their joined text is pushed
    to the accumulator as the stream's partial.

    ``stop`` sends the buffered remainder and waits, up to ``flush_timeout``
    seconds, for the stream's outstanding windows, so speech captured right
    before a pause or stop still reaches the transcript. ``cancel`` drops
    everything at once. Recognition errors are logged and the window is
    skipped; live text is best-effort.
    """

    def __init__(
        self,
        client: genai.Client,
        model_name: str,
        sample_rate: int = 16000,
        window_seconds: float = 5.0,
        flush_timeout: float = 10.0,
    ):
        self._client = client
        self._model_name = model_name
        self._sample_rate = sample_rate
        self._window_frames = max(int(sample_rate * window_seconds), 1)
        self._flush_timeout = flush_timeout
        self._lock = threading.Lock()
        self._blocks: list[np.ndarray] = []
        self._frames = 0
        self._window_count = 0
        self._results: dict[int, str] = {}
        self._workers: set[threading.Thread] = set()
        self._accumulator: TranscriptAccumulator | None = None
        self._generation = 0
        self._cancelled = False

    def is_available(self) -> bool:
        return not self._cancelled

    def start(self, accumulator: TranscriptAccumulator) -> None:
        with self._lock:
            self._generation += 1
            self._accumulator = accumulator
            self._reset_stream()

    def stop(self) -> None:
        """Flushes the current stream; blocks until its windows are recognized or time out."""
        with self._lock:
            if self._accumulator is None:
                return
            window = self._take_window()
            generation = self._generation
        if window is not None:
            self._dispatch(*window, generation)

        deadline = time.monotonic() + self._flush_timeout
        for worker in self._pending_workers():
            worker.join(max(deadline - time.monotonic(), 0.0))
        unfinished = [w for w in self._pending_workers() if w.is_alive()]
        if unfinished:
            logger.warning(
                "Streaming recognition flush timed out, dropping late windows",
                extra={"pending_windows": len(unfinished)},
            )
        self._end_stream()

    def cancel(self) -> None:
        self._end_stream()
        self._cancelled = True

    def feed(self, block: np.ndarray) -> None:
        """Receives one captured sample block; called from the audio thread."""
        with self._lock:
            if self._accumulator is None:
                return
            self._blocks.append(block.copy())
            self._frames += len(block)
            if self._frames < self._window_frames:
                return
            window = self._take_window()
            generation = self._generation
        self._dispatch(*window, generation)

    def _take_window(self) -> tuple[int, np.ndarray] | None:
        if not self._blocks:
            return None
        samples = np.concatenate(self._blocks)
        self._blocks = []
        self._frames = 0
        index = self._window_count
        self._window_count += 1
        return index, samples

    def _dispatch(self, index: int, samples: np.ndarray, generation: int) -> None:
        worker = threading.Thread(
            target=self._recognize_window, args=(index, samples, generation), daemon=True
        )
        with self._lock:
            self._workers.add(worker)
        worker.start()

    def _pending_workers(self) -> list[threading.Thread]:
        with self._lock:
            return list(self._workers)

    def _end_stream(self) -> None:
        with self._lock:
            self._generation += 1
            self._accumulator = None
            self._reset_stream()

    def _reset_stream(self) -> None:
        self._blocks = []
        self._frames = 0
        self._window_count = 0
        self._results = {}
        self._workers = set()

    def _recognize_window(self, index: int, samples: np.ndarray, generation: int) -> None:
        try:
            text = self._transcribe_samples(samples)
        except Exception:
            logger.exception("Streaming window recognition failed", extra={"window": index})
            text = ""
        finally:
            with self._lock:
                self._workers.discard(threading.current_thread())

        if not text:
            return
        with self._lock:
            if generation != self._generation or self._accumulator is None:
                return
            self._results[index] = text
            partial = " ".join(self._results[i] for i in sorted(self._results))
            accumulator = self._accumulator
        accumulator.update(partial)

    def _transcribe_samples(self, samples: np.ndarray) -> str:
        buffer = io.BytesIO()
        sf.write(buffer, samples, self._sample_rate, format="WAV", subtype="PCM_16")
        response = self._client.models.generate_content(
            model=self._model_name,
            contents=[
                TRANSCRIBE_PROMPT,
                types.Part.from_bytes(data=buffer.getvalue(), mime_type="audio/wav"),
            ],
        )
        return (response.text or "").strip()


class AudioOnlyRecognizer(StreamingRecognizer):
    """Stand-in used when live text is disabled or no recognizer is configured."""

    def is_available(self) -> bool:
        return False

    def start(self, accumulator: TranscriptAccumulator) -> None:
        raise RuntimeError("Live recognition is not configured")

    def stop(self) -> None:
        pass

    def cancel(self) -> None:
        pass
