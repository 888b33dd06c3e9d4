"""Remote asynchronous transcription: upload, submit, poll, parse, clean up."""

import asyncio
from collections.abc import Callable
from pathlib import Path

from meeting_recorder.exceptions import (
    EmptyTranscriptError,
    TranscriptionCancelledError,
    TranscriptionFailedError,
    TranscriptionServiceError,
    TranscriptionTimeoutError,
)
from meeting_recorder.infrastructure.interfaces import ObjectStorage, TranscriptionService
from meeting_recorder.logging import setup_logging

from .models import JobPhase, TaskStatus, TranscriptionJob
from .result_parser import extract_task_id, extract_task_output, resolve_transcript

logger = setup_logging()

ProgressCallback = Callable[[float], None]

UPLOAD_BUDGET = 0.2
SUBMITTED_PROGRESS = 0.2
POLL_START = 0.3
POLL_BUDGET = 0.6
DEFAULT_FAILURE_MESSAGE = "Transcription task failed"


class RemoteTranscriber:
    """
    Runs one remote transcription job per call.

    The uploaded object is deleted exactly once after the job leaves the
    polling phase, on every exit path. Deletion runs as a detached task and
    never delays or masks the job's own result; ``drain`` waits for pending
    deletions, e.g. before the event loop closes.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        service: TranscriptionService,
        poll_interval: float = 3.0,
        max_attempts: int = 60,
    ):
        self._storage = storage
        self._service = service
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._cleanup_tasks: set[asyncio.Task] = set()

    async def transcribe(
        self,
        audio_path: Path,
        progress: ProgressCallback | None = None,
        abandon: asyncio.Event | None = None,
    ) -> str:
        """Runs a job and returns its transcript."""
        job = await self.run_job(audio_path, progress, abandon)
        return job.result_text

    async def run_job(
        self,
        audio_path: Path,
        progress: ProgressCallback | None = None,
        abandon: asyncio.Event | None = None,
    ) -> TranscriptionJob:
        """
        Uploads, submits and polls a transcription job until it is terminal.

        Args:
            audio_path: The finished recording.
            progress: Receives overall progress in [0, 1].
            abandon: When set, polling stops without parsing a result.

        Returns:
            The succeeded job with ``result_text`` populated.

        Raises:
            StorageUploadError: If the upload fails.
            TranscriptionProtocolError: If a response lacks required fields.
            TranscriptionFailedError: If the service reports FAILED.
            TranscriptionTimeoutError: If the poll cap is exhausted.
            TranscriptionCancelledError: If the job was abandoned.
            EmptyTranscriptError: If the result carries no text.
        """
        report = progress or (lambda fraction: None)
        job = TranscriptionJob(audio_file_path=audio_path)
        logger.info("Remote transcription started", extra={"audio_file": str(audio_path)})

        job.remote_object_url = await self._upload(audio_path, report)

        try:
            job.phase = JobPhase.SUBMITTED
            job.job_id = extract_task_id(await self._service.submit(job.remote_object_url))
            report(SUBMITTED_PROGRESS)
            logger.info("Transcription task submitted", extra={"task_id": job.job_id})

            job.phase = JobPhase.POLLING
            output = await self._poll(job, report, abandon)

            text = await resolve_transcript(output, self._service.download)
            if not text:
                raise EmptyTranscriptError(audio_path.name)

            job.result_text = text
            job.phase = JobPhase.SUCCEEDED
            report(1.0)
            logger.info(
                "Remote transcription completed",
                extra={"task_id": job.job_id, "attempts": job.attempt, "chars": len(text)},
            )
            return job
        except (TranscriptionCancelledError, asyncio.CancelledError):
            job.phase = JobPhase.CANCELLED
            logger.info("Remote transcription abandoned", extra={"task_id": job.job_id})
            raise
        except TranscriptionTimeoutError:
            job.phase = JobPhase.TIMED_OUT
            logger.error(
                "Remote transcription timed out",
                extra={"task_id": job.job_id, "attempts": job.attempt},
            )
            raise
        except Exception:
            job.phase = JobPhase.FAILED
            logger.exception("Remote transcription failed", extra={"task_id": job.job_id})
            raise
        finally:
            self._schedule_cleanup(job.remote_object_url)

    async def drain(self) -> None:
        """Waits for all scheduled upload deletions to finish."""
        if self._cleanup_tasks:
            await asyncio.gather(*list(self._cleanup_tasks), return_exceptions=True)

    async def _upload(self, audio_path: Path, report: ProgressCallback) -> str:
        loop = asyncio.get_running_loop()

        def on_upload_progress(fraction: float) -> None:
            scaled = min(max(fraction, 0.0), 1.0) * UPLOAD_BUDGET
            loop.call_soon_threadsafe(report, scaled)

        upload = asyncio.ensure_future(
            asyncio.to_thread(self._storage.upload, audio_path, on_upload_progress)
        )
        try:
            return await asyncio.shield(upload)
        except asyncio.CancelledError:
            # The worker thread keeps running; remove its object once it lands.
            upload.add_done_callback(self._cleanup_abandoned_upload)
            raise

    async def _poll(
        self,
        job: TranscriptionJob,
        report: ProgressCallback,
        abandon: asyncio.Event | None,
    ) -> dict:
        for attempt in range(1, self._max_attempts + 1):
            if abandon is not None and abandon.is_set():
                raise TranscriptionCancelledError(job.job_id)
            job.attempt = attempt

            try:
                output = extract_task_output(await self._service.fetch_task(job.job_id))
            except TranscriptionServiceError as e:
                logger.warning(
                    "Task poll failed, retrying",
                    extra={"task_id": job.job_id, "attempt": attempt, "status_code": e.status_code},
                )
            else:
                job.status = TaskStatus.parse(output["task_status"])
                if job.status is TaskStatus.SUCCEEDED:
                    return output
                if job.status is TaskStatus.FAILED:
                    message = output.get("message") or DEFAULT_FAILURE_MESSAGE
                    raise TranscriptionFailedError(job.job_id, message)
                if job.status is TaskStatus.UNKNOWN:
                    logger.warning(
                        "Unrecognized task status, continuing to poll",
                        extra={"task_id": job.job_id, "task_status": output["task_status"]},
                    )

            report(POLL_START + attempt / self._max_attempts * POLL_BUDGET)
            if attempt < self._max_attempts:
                await self._wait(job, abandon)

        raise TranscriptionTimeoutError(job.job_id, self._max_attempts)

    async def _wait(self, job: TranscriptionJob, abandon: asyncio.Event | None) -> None:
        if abandon is None:
            await asyncio.sleep(self._poll_interval)
            return
        try:
            await asyncio.wait_for(abandon.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            return
        raise TranscriptionCancelledError(job.job_id)

    def _schedule_cleanup(self, remote_url: str | None) -> None:
        if not remote_url:
            return
        task = asyncio.get_running_loop().create_task(self._delete_upload(remote_url))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    def _cleanup_abandoned_upload(self, upload: asyncio.Future) -> None:
        if upload.cancelled() or upload.exception() is not None:
            return
        self._schedule_cleanup(upload.result())

    async def _delete_upload(self, remote_url: str) -> None:
        try:
            await asyncio.to_thread(self._storage.delete, remote_url)
            logger.info("Temporary upload deleted", extra={"remote_url": remote_url})
        except Exception:
            logger.exception("Temporary upload cleanup failed", extra={"remote_url": remote_url})
