"""Recording lifecycle state machine."""

import asyncio
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from uuid import UUID

from meeting_recorder.exceptions import (
    CapabilityDeniedError,
    RecordingStartError,
    RecordPersistenceError,
)
from meeting_recorder.infrastructure.interfaces import (
    AudioSession,
    PermissionGate,
    RecordStore,
    StreamingRecognizer,
)
from meeting_recorder.logging import setup_logging

from .models import (
    MeetingDraft,
    ProgressSnapshot,
    RecordingSession,
    RecordingState,
    StopResult,
)
from .progress import LiveProgressReporter
from .transcript_accumulator import TranscriptAccumulator

logger = setup_logging()

STARTED_PLACEHOLDER = "Recording started..."
WAITING_PLACEHOLDER = "Waiting for speech..."


class LiveRecorder:
    """
    Drives one recording session: idle -> recording <-> paused -> stopped.

    Transitions are serialized by a single asyncio lock, so a stop arriving
    while a pause or resume is still completing waits for it. The recorder is
    single-use; once stopped it ignores further transitions.

    ``emergency_finalize`` is the synchronous teardown path for process
    termination. It never awaits, so it can run from a signal handler.
    """

    def __init__(
        self,
        audio_session: AudioSession,
        recognizer: StreamingRecognizer,
        permissions: PermissionGate,
        reporter: LiveProgressReporter,
        recordings_dir: Path,
        file_extension: str = ".wav",
        publish_live_transcript: bool = True,
        title_prefix: str = "Meeting Recording",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._audio = audio_session
        self._recognizer = recognizer
        self._permissions = permissions
        self._reporter = reporter
        self._recordings_dir = recordings_dir
        self._file_extension = file_extension
        self._publish_live_transcript = publish_live_transcript
        self._title_prefix = title_prefix
        self._clock = clock

        self._lock = asyncio.Lock()
        self._state = RecordingState.IDLE
        self._session: RecordingSession | None = None
        self._use_recognizer = False
        self._stopped_at: datetime | None = None
        self._record_id: UUID | None = None
        self._transition_count = 0

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def session(self) -> RecordingSession | None:
        return self._session

    @property
    def record_id(self) -> UUID | None:
        return self._record_id

    @property
    def transition_count(self) -> int:
        """Number of state transitions so far; lets observers detect foreign transitions."""
        return self._transition_count

    async def start(self) -> RecordingSession | None:
        """
        Starts recording after acquiring microphone and speech grants.

        Returns:
            The new session, or None if the recorder was not idle.

        Raises:
            CapabilityDeniedError: If a grant is refused; the recorder stays idle.
            RecordingStartError: If capture cannot start; nothing is left open.
        """
        async with self._lock:
            if self._state is not RecordingState.IDLE:
                logger.warning(
                    "Start ignored, recorder is not idle",
                    extra={"state": self._state.value},
                )
                return None

            if not await self._permissions.request_microphone():
                logger.warning("Microphone permission denied")
                raise CapabilityDeniedError("microphone")
            if not await self._permissions.request_speech_recognition():
                logger.warning("Speech recognition permission denied")
                raise CapabilityDeniedError("speech_recognition")

            # Termination may have arrived while the grants were pending.
            if self._state is not RecordingState.IDLE:
                logger.warning(
                    "Start abandoned after permission prompt",
                    extra={"state": self._state.value},
                )
                return None

            audio_path = self._next_audio_path()
            accumulator = TranscriptAccumulator(enabled=self._publish_live_transcript)

            try:
                self._audio.open(audio_path)
            except Exception as e:
                logger.exception(
                    "Audio session failed to open",
                    extra={"audio_file": str(audio_path)},
                )
                self._abort_capture(audio_path)
                raise RecordingStartError(str(audio_path), e) from e

            self._use_recognizer = self._recognizer.is_available()
            if self._use_recognizer:
                try:
                    accumulator.open_stream()
                    self._recognizer.start(accumulator)
                except Exception as e:
                    logger.exception(
                        "Streaming recognizer failed to start",
                        extra={"audio_file": str(audio_path)},
                    )
                    self._abort_capture(audio_path)
                    raise RecordingStartError(str(audio_path), e) from e
            else:
                logger.warning("Streaming recognizer unavailable, recording audio only")

            self._session = RecordingSession(
                audio_file_path=audio_path,
                started_at=self._clock(),
                accumulator=accumulator,
                publish_live_transcript=self._publish_live_transcript,
            )
            self._set_state(RecordingState.RECORDING)
            self._reporter.publish(
                ProgressSnapshot(
                    text=STARTED_PLACEHOLDER,
                    duration=0.0,
                    is_recording=True,
                    is_paused=False,
                )
            )
            self._reporter.start(self.tick)

            logger.info("Recording started", extra={"audio_file": str(audio_path)})
            return self._session

    async def pause(self) -> bool:
        """Pauses a running recording; the live transcript is kept verbatim."""
        async with self._lock:
            if self._state is not RecordingState.RECORDING:
                logger.info("Pause ignored", extra={"state": self._state.value})
                return False

            self._reporter.suspend()
            self._audio.pause()
            if self._use_recognizer:
                await self._flush_recognizer()
                # Termination may have finalized the session during the flush.
                if self._state is not RecordingState.RECORDING:
                    return False
            self._session.accumulator.close_stream()
            self._set_state(RecordingState.PAUSED)
            self._reporter.publish(self._snapshot())

            logger.info(
                "Recording paused",
                extra={"elapsed": self._session.elapsed_duration},
            )
            return True

    async def resume(self) -> bool:
        """Resumes a paused recording; new recognizer output is appended."""
        async with self._lock:
            if self._state is not RecordingState.PAUSED:
                logger.info("Resume ignored", extra={"state": self._state.value})
                return False

            self._audio.resume()
            if self._use_recognizer:
                self._session.accumulator.open_stream()
                self._recognizer.start(self._session.accumulator)
            self._set_state(RecordingState.RECORDING)
            self._reporter.publish(self._snapshot())
            self._reporter.start(self.tick)

            logger.info(
                "Recording resumed",
                extra={"elapsed": self._session.elapsed_duration},
            )
            return True

    async def stop(self, store: RecordStore | None) -> StopResult | None:
        """
        Finalizes capture and persists the meeting record exactly once.

        Returns:
            The stop result, or None if there was nothing to stop.

        Raises:
            RecordPersistenceError: If no store was given or the write failed.
                The audio file stays on disk and its path is on the error.
        """
        async with self._lock:
            if self._state not in (RecordingState.RECORDING, RecordingState.PAUSED):
                logger.warning("Stop ignored", extra={"state": self._state.value})
                return None

            was_recording = self._state is RecordingState.RECORDING
            session = self._end_capture()
            if self._use_recognizer and was_recording:
                await self._flush_recognizer()
            self._release_recognizer()
            try:
                record_id = await asyncio.to_thread(self._persist_record, store)
            finally:
                self._reporter.finish(self._final_snapshot())

            return StopResult(audio_file_path=session.audio_file_path, record_id=record_id)

    async def persist(self, store: RecordStore | None) -> StopResult:
        """
        Retries persistence of a stopped recording whose first write failed.

        Raises:
            RecordPersistenceError: If the recorder is not stopped or the write fails.
        """
        async with self._lock:
            if self._state is not RecordingState.STOPPED or self._session is None:
                raise RecordPersistenceError(
                    None, RuntimeError(f"Recorder is {self._state.value}")
                )
            record_id = await asyncio.to_thread(self._persist_record, store)
            return StopResult(
                audio_file_path=self._session.audio_file_path, record_id=record_id
            )

    def emergency_finalize(self, store: RecordStore | None) -> Path | None:
        """
        Synchronously finalizes and persists from a process-teardown handler.

        Persistence failures are logged; the audio file stays for recovery.

        Returns:
            The finalized audio file path, or None if nothing was recording.
        """
        if self._state is RecordingState.IDLE:
            self._set_state(RecordingState.STOPPED)
            return None
        if self._state is RecordingState.STOPPED:
            return self._session.audio_file_path if self._session else None

        logger.warning("Emergency finalize on termination")
        session = self._end_capture()
        self._release_recognizer()
        try:
            self._persist_record(store)
        except RecordPersistenceError:
            logger.error(
                "Emergency persistence failed, recording left for recovery",
                extra={"audio_file": str(session.audio_file_path)},
            )
        self._reporter.finish(self._final_snapshot(), grace=0.0)
        return session.audio_file_path

    def tick(self, interval: float) -> ProgressSnapshot | None:
        """Accumulates elapsed time; called by the progress reporter."""
        if self._state is not RecordingState.RECORDING or self._session is None:
            return None
        self._session.elapsed_duration += interval
        return self._snapshot()

    def keep_alive(self) -> None:
        """Keeps capture active after backgrounding and refreshes the surface."""
        if self._state is not RecordingState.RECORDING:
            return
        try:
            self._audio.keep_alive()
        except Exception:
            logger.exception("Failed to keep audio session active in background")
        self.refresh()

    def refresh(self) -> None:
        """Republishes the current snapshot."""
        if self._state in (RecordingState.RECORDING, RecordingState.PAUSED):
            self._reporter.publish(self._snapshot())

    def _set_state(self, state: RecordingState) -> None:
        self._state = state
        self._transition_count += 1

    def _snapshot(self) -> ProgressSnapshot:
        session = self._session
        text = session.live_transcript if session.publish_live_transcript else ""
        return ProgressSnapshot(
            text=text or WAITING_PLACEHOLDER,
            duration=session.elapsed_duration,
            is_recording=self._state is RecordingState.RECORDING,
            is_paused=self._state is RecordingState.PAUSED,
        )

    def _final_snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            text=self._session.live_transcript,
            duration=self._session.elapsed_duration,
            is_recording=False,
            is_paused=False,
        )

    def _end_capture(self) -> RecordingSession:
        session = self._session
        self._reporter.suspend()
        self._set_state(RecordingState.STOPPED)
        self._stopped_at = self._clock()
        try:
            self._audio.finalize()
        except Exception:
            logger.exception("Recording teardown step failed", extra={"step": "audio"})
        logger.info(
            "Recording finalized",
            extra={
                "audio_file": str(session.audio_file_path),
                "duration": session.elapsed_duration,
            },
        )
        return session

    async def _flush_recognizer(self) -> None:
        # Waits for outstanding recognition so the stream's last words are kept.
        try:
            await asyncio.to_thread(self._recognizer.stop)
        except Exception:
            logger.exception("Streaming recognizer failed to stop cleanly")

    def _release_recognizer(self) -> None:
        if self._use_recognizer:
            try:
                self._recognizer.cancel()
            except Exception:
                logger.exception("Recording teardown step failed", extra={"step": "recognizer"})
        self._session.accumulator.close_stream()

    def _persist_record(self, store: RecordStore | None) -> UUID:
        if self._record_id is not None:
            return self._record_id

        audio_path = str(self._session.audio_file_path)
        if store is None:
            logger.error(
                "No record store available, recording left for recovery",
                extra={"audio_file": audio_path},
            )
            raise RecordPersistenceError(audio_path)

        try:
            self._record_id = store.create_record(self._draft())
        except RecordPersistenceError:
            raise
        except Exception as e:
            logger.exception("Meeting record write failed", extra={"audio_file": audio_path})
            raise RecordPersistenceError(audio_path, e) from e

        logger.info(
            "Meeting record saved",
            extra={"record_id": str(self._record_id), "audio_file": audio_path},
        )
        return self._record_id

    def _draft(self) -> MeetingDraft:
        created_at = self._stopped_at or self._clock()
        return MeetingDraft(
            title=f"{self._title_prefix} - {created_at:%m-%d %H:%M}",
            transcript=self._session.live_transcript,
            audio_file_path=str(self._session.audio_file_path),
            created_at=created_at,
            duration=self._session.elapsed_duration,
        )

    def _next_audio_path(self) -> Path:
        self._recordings_dir.mkdir(parents=True, exist_ok=True)
        stem = f"meeting_{int(self._clock().timestamp())}"
        candidate = self._recordings_dir / f"{stem}{self._file_extension}"
        suffix = 1
        while candidate.exists():
            candidate = self._recordings_dir / f"{stem}_{suffix}{self._file_extension}"
            suffix += 1
        return candidate

    def _abort_capture(self, audio_path: Path) -> None:
        try:
            self._audio.finalize()
        except Exception:
            logger.exception("Audio session cleanup failed", extra={"audio_file": str(audio_path)})
        try:
            audio_path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Partial recording cleanup failed", extra={"audio_file": str(audio_path)})
