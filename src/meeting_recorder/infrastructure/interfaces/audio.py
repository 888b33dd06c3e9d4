"""Abstract interfaces for device audio capture and recognition."""

from abc import ABC, abstractmethod
from pathlib import Path

from meeting_recorder.domain.transcript_accumulator import TranscriptAccumulator


class AudioSession(ABC):
    """
    Microphone capture writing PCM samples to a sink file.

    Exclusively owned by one recorder for the lifetime of a session. All
    methods are synchronous so they can run from a teardown signal handler.
    """

    @abstractmethod
    def open(self, path: Path) -> None:
        """
        Opens the microphone and starts writing samples to ``path``.

        Raises:
            OSError: If the device or sink file cannot be opened.
        """

    @abstractmethod
    def pause(self) -> None:
        """Suspends writing samples without closing the sink."""

    @abstractmethod
    def resume(self) -> None:
        """Resumes writing samples to the open sink."""

    @abstractmethod
    def finalize(self) -> None:
        """Stops capture and closes the sink file."""

    @abstractmethod
    def keep_alive(self) -> None:
        """Re-activates capture after the process was backgrounded."""


class StreamingRecognizer(ABC):
    """Recognizer consuming the live sample stream and emitting partials."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the recognizer can currently be used."""

    @abstractmethod
    def start(self, accumulator: TranscriptAccumulator) -> None:
        """
        Begins a new recognition stream.

        Each cumulative partial for this stream is passed to
        ``accumulator.update``.
        """

    @abstractmethod
    def stop(self) -> None:
        """Ends the current stream; may be restarted later."""

    @abstractmethod
    def cancel(self) -> None:
        """Tears the recognizer down for good."""


class BatchRecognizer(ABC):
    """Recognizer that accepts a complete audio file."""

    @abstractmethod
    async def transcribe(self, audio_path: Path) -> str:
        """
        Transcribes a whole audio file.

        Raises:
            RecognitionError: If recognition fails.
        """


class PermissionGate(ABC):
    """Capability grants required before recording may start."""

    @abstractmethod
    async def request_microphone(self) -> bool:
        """Returns True if microphone access is granted."""

    @abstractmethod
    async def request_speech_recognition(self) -> bool:
        """Returns True if speech recognition is granted."""


class AudioSegmentExporter(ABC):
    """Reads durations and exports time-bounded slices of audio files."""

    @abstractmethod
    def duration(self, audio_path: Path) -> float:
        """Returns the duration in seconds; may be NaN when unknown."""

    @abstractmethod
    def export(
        self, audio_path: Path, start: float, duration: float, destination: Path
    ) -> None:
        """
        Writes ``duration`` seconds starting at ``start`` to ``destination``.

        Raises:
            SegmentExportError: If the export fails.
        """
