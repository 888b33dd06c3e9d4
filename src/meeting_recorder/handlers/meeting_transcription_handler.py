"""Handler for transcribing stored meetings."""

import asyncio
from pathlib import Path
from uuid import UUID

from meeting_recorder.domain.models import TranscriptionMode, TranscriptionOutcome
from meeting_recorder.domain.remote_transcriber import ProgressCallback, RemoteTranscriber
from meeting_recorder.domain.segmented_transcriber import SegmentedTranscriber
from meeting_recorder.domain.text_optimizer import TextOptimizer
from meeting_recorder.exceptions import MissingAudioFileError
from meeting_recorder.infrastructure.interfaces import RecordStore
from meeting_recorder.logging import setup_logging

logger = setup_logging()


class MeetingTranscriptionHandler:
    """Orchestrates recording-to-transcript operations for stored meetings."""

    def __init__(
        self,
        store: RecordStore,
        remote_transcriber: RemoteTranscriber,
        segmented_transcriber: SegmentedTranscriber,
        optimizer: TextOptimizer | None = None,
    ):
        self._store = store
        self._remote = remote_transcriber
        self._segmented = segmented_transcriber
        self._optimizer = optimizer

    async def process(
        self,
        record_id: UUID,
        mode: TranscriptionMode = TranscriptionMode.REMOTE,
        optimize: bool = False,
        progress: ProgressCallback | None = None,
        abandon: asyncio.Event | None = None,
    ) -> TranscriptionOutcome:
        """
        Transcribes a meeting's audio and stores the transcript on its record.

        Args:
            record_id: The meeting to transcribe.
            mode: Remote job or segmented batch recognition.
            optimize: Whether to refine the transcript with the LLM.
            progress: Receives remote job progress in [0, 1].
            abandon: Abandons a remote job when set.

        Returns:
            TranscriptionOutcome with the stored transcript.

        Raises:
            MeetingNotFoundError: If the record does not exist.
            MissingAudioFileError: If the record's audio file is gone.
            TranscriptionError: If transcription fails.
            RecordPersistenceError: If the transcript cannot be saved.
        """
        record = await asyncio.to_thread(self._store.get_record, record_id)
        if not record.audio_file_path or not Path(record.audio_file_path).is_file():
            raise MissingAudioFileError(record_id, record.audio_file_path)
        audio_path = Path(record.audio_file_path)

        logger.info(
            "Transcribing meeting",
            extra={"record_id": str(record_id), "mode": mode.value, "audio_file": audio_path.name},
        )

        if mode is TranscriptionMode.REMOTE:
            transcript = await self._remote.transcribe(audio_path, progress, abandon)
        else:
            transcript = await self._segmented.transcribe(audio_path)

        optimized = False
        if optimize and self._optimizer is not None:
            refined = await asyncio.to_thread(self._optimizer.optimize, transcript)
            optimized = refined != transcript
            transcript = refined

        await asyncio.to_thread(self._store.update_transcript, record_id, transcript)

        logger.info(
            "Meeting transcribed",
            extra={"record_id": str(record_id), "chars": len(transcript), "optimized": optimized},
        )
        return TranscriptionOutcome(
            record_id=record_id, mode=mode, transcript=transcript, optimized=optimized
        )

    async def drain(self) -> None:
        """Waits for background cleanup of remote uploads."""
        await self._remote.drain()
