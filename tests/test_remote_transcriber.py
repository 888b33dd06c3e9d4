import asyncio
import tempfile
import unittest
from pathlib import Path

from fakes import FakeStorage, FakeTranscriptionService, task_body

from meeting_recorder.domain.remote_transcriber import RemoteTranscriber
from meeting_recorder.exceptions import (
    EmptyTranscriptError,
    StorageUploadError,
    TranscriptionCancelledError,
    TranscriptionFailedError,
    TranscriptionProtocolError,
    TranscriptionServiceError,
    TranscriptionTimeoutError,
)

SUCCEEDED = task_body("SUCCEEDED", result={"text": "Minutes of the meeting."})


class RemoteTranscriberTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.audio_path = Path(self.tmpdir.name) / "meeting_1700000000.wav"
        self.audio_path.write_bytes(b"RIFF")
        self.storage = FakeStorage()
        self.progress: list[float] = []

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def transcriber(self, service, max_attempts: int = 60) -> RemoteTranscriber:
        return RemoteTranscriber(
            self.storage, service, poll_interval=0.01, max_attempts=max_attempts
        )

    def run_job(self, transcriber: RemoteTranscriber, abandon=None):
        async def scenario():
            try:
                return await transcriber.run_job(
                    self.audio_path, self.progress.append, abandon
                )
            finally:
                await transcriber.drain()

        return asyncio.run(scenario())


class SuccessTests(RemoteTranscriberTestCase):
    def test_job_succeeds_and_upload_is_deleted_once(self) -> None:
        service = FakeTranscriptionService(
            [task_body("PENDING"), task_body("RUNNING"), SUCCEEDED]
        )
        job = self.run_job(self.transcriber(service))

        self.assertEqual(job.result_text, "Minutes of the meeting.")
        self.assertEqual(job.phase.value, "succeeded")
        self.assertEqual(job.attempt, 3)
        self.assertEqual(service.submitted, [FakeStorage.URL])
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])
        self.assertEqual(self.progress, sorted(self.progress))
        self.assertEqual(self.progress[-1], 1.0)
        self.assertLessEqual(max(self.progress[:2]), 0.2)

    def test_transcribe_returns_text(self) -> None:
        service = FakeTranscriptionService([SUCCEEDED])
        transcriber = self.transcriber(service)

        async def scenario():
            text = await transcriber.transcribe(self.audio_path)
            await transcriber.drain()
            return text

        self.assertEqual(asyncio.run(scenario()), "Minutes of the meeting.")

    def test_result_document_is_downloaded(self) -> None:
        url = "https://results.example/doc.json"
        service = FakeTranscriptionService(
            [task_body("SUCCEEDED", result={"transcription_url": url.replace("https", "http")})],
            documents={url: b'{"transcripts": [{"sentences": [{"text": "A"}, {"text": "B"}]}]}'},
        )
        job = self.run_job(self.transcriber(service))
        self.assertEqual(job.result_text, "AB")
        self.assertEqual(service.downloads, [url])

    def test_transient_poll_errors_are_retried(self) -> None:
        service = FakeTranscriptionService(
            [TranscriptionServiceError(503, "busy"), task_body("RUNNING"), SUCCEEDED]
        )
        job = self.run_job(self.transcriber(service))
        self.assertEqual(job.attempt, 3)

    def test_unknown_status_keeps_polling(self) -> None:
        service = FakeTranscriptionService([task_body("QUEUED_SOMEWHERE"), SUCCEEDED])
        job = self.run_job(self.transcriber(service))
        self.assertEqual(job.result_text, "Minutes of the meeting.")


class FailureTests(RemoteTranscriberTestCase):
    def test_failed_task_reports_service_message(self) -> None:
        service = FakeTranscriptionService([task_body("FAILED", message="Unsupported format")])
        with self.assertRaises(TranscriptionFailedError) as ctx:
            self.run_job(self.transcriber(service))
        self.assertEqual(ctx.exception.service_message, "Unsupported format")
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])

    def test_failed_task_without_message_uses_default(self) -> None:
        service = FakeTranscriptionService([task_body("FAILED")])
        with self.assertRaises(TranscriptionFailedError) as ctx:
            self.run_job(self.transcriber(service))
        self.assertEqual(ctx.exception.service_message, "Transcription task failed")

    def test_poll_cap_times_out_and_cleans_up(self) -> None:
        service = FakeTranscriptionService([task_body("RUNNING")])
        with self.assertRaises(TranscriptionTimeoutError) as ctx:
            self.run_job(self.transcriber(service, max_attempts=3))
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(service.fetches, 3)
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])

    def test_missing_task_id_is_a_protocol_error(self) -> None:
        service = FakeTranscriptionService(submit_body={"output": {}})
        with self.assertRaises(TranscriptionProtocolError):
            self.run_job(self.transcriber(service))
        self.assertEqual(service.fetches, 0)
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])

    def test_upload_failure_skips_submit_and_delete(self) -> None:
        self.storage.fail_upload = True
        service = FakeTranscriptionService([SUCCEEDED])
        with self.assertRaises(StorageUploadError):
            self.run_job(self.transcriber(service))
        self.assertEqual(service.submitted, [])
        self.assertEqual(self.storage.deletes, [])

    def test_empty_result_is_an_error(self) -> None:
        service = FakeTranscriptionService([task_body("SUCCEEDED", result={"text": "  "})])
        with self.assertRaises(EmptyTranscriptError):
            self.run_job(self.transcriber(service))
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])

    def test_delete_failure_does_not_mask_result(self) -> None:
        self.storage.fail_delete = True
        service = FakeTranscriptionService([SUCCEEDED])
        job = self.run_job(self.transcriber(service))
        self.assertEqual(job.result_text, "Minutes of the meeting.")
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])


class AbandonTests(RemoteTranscriberTestCase):
    def test_abandon_stops_polling_without_parsing(self) -> None:
        async def scenario():
            abandon = asyncio.Event()
            service = FakeTranscriptionService(
                [task_body("RUNNING")], on_fetch=lambda n: n == 2 and abandon.set()
            )
            transcriber = self.transcriber(service)
            try:
                with self.assertRaises(TranscriptionCancelledError):
                    await transcriber.run_job(self.audio_path, abandon=abandon)
            finally:
                await transcriber.drain()
            return service

        service = asyncio.run(scenario())
        self.assertEqual(service.fetches, 2)
        self.assertEqual(service.downloads, [])
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])

    def test_task_cancellation_still_deletes_upload(self) -> None:
        async def scenario():
            service = FakeTranscriptionService([task_body("RUNNING")])
            transcriber = self.transcriber(service)
            task = asyncio.create_task(transcriber.run_job(self.audio_path))
            while service.fetches < 2:
                await asyncio.sleep(0.005)
            task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task
            await transcriber.drain()

        asyncio.run(scenario())
        self.assertEqual(self.storage.deletes, [FakeStorage.URL])


if __name__ == "__main__":
    unittest.main()
