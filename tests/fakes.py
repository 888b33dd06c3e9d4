"""In-memory collaborators shared by the test modules."""

import asyncio
import math
import threading
from pathlib import Path
from uuid import UUID, uuid4

from meeting_recorder.db_models import MeetingRecord
from meeting_recorder.domain.models import MeetingDraft, ProgressSnapshot
from meeting_recorder.domain.transcript_accumulator import TranscriptAccumulator
from meeting_recorder.exceptions import (
    CacheServiceError,
    LLMServiceError,
    MeetingNotFoundError,
    RecognitionError,
    RecordPersistenceError,
    StorageDeleteError,
    StorageUploadError,
)
from meeting_recorder.infrastructure.interfaces import (
    AudioSegmentExporter,
    AudioSession,
    BatchRecognizer,
    CacheService,
    LLMService,
    ObjectStorage,
    PermissionGate,
    PresentationSurface,
    RecordStore,
    StreamingRecognizer,
    TranscriptionService,
)


class FakeAudioSession(AudioSession):
    def __init__(self, fail_open: bool = False):
        self.fail_open = fail_open
        self.calls: list[str] = []
        self.path: Path | None = None

    def open(self, path: Path) -> None:
        self.calls.append("open")
        path.write_bytes(b"RIFF")
        if self.fail_open:
            raise OSError("input device busy")
        self.path = path

    def pause(self) -> None:
        self.calls.append("pause")

    def resume(self) -> None:
        self.calls.append("resume")

    def finalize(self) -> None:
        self.calls.append("finalize")

    def keep_alive(self) -> None:
        self.calls.append("keep_alive")


class FakeStreamingRecognizer(StreamingRecognizer):
    def __init__(self, available: bool = True, fail_start: bool = False):
        self.available = available
        self.fail_start = fail_start
        self.accumulator: TranscriptAccumulator | None = None
        self.starts = 0
        self.stops = 0
        self.cancelled = False
        self.pending_tail: str | None = None
        self.stopped_on_loop_thread: list[bool] = []

    def is_available(self) -> bool:
        return self.available

    def start(self, accumulator: TranscriptAccumulator) -> None:
        if self.fail_start:
            raise RuntimeError("recognizer unavailable")
        self.starts += 1
        self.accumulator = accumulator

    def stop(self) -> None:
        """Delivers the partial still being recognized, like a real flush."""
        self.stops += 1
        self.stopped_on_loop_thread.append(threading.current_thread() is threading.main_thread())
        if self.pending_tail is not None:
            self.accumulator.update(self.pending_tail)
            self.pending_tail = None

    def cancel(self) -> None:
        self.cancelled = True

    def emit(self, partial: str) -> bool:
        return self.accumulator.update(partial)


class FakePermissions(PermissionGate):
    def __init__(self, microphone: bool = True, speech: bool = True):
        self.microphone = microphone
        self.speech = speech

    async def request_microphone(self) -> bool:
        return self.microphone

    async def request_speech_recognition(self) -> bool:
        return self.speech


class FakeSurface(PresentationSurface):
    def __init__(self, fail_publish: bool = False):
        self.fail_publish = fail_publish
        self.published: list[ProgressSnapshot] = []
        self.dismissed: list[float] = []

    def publish(self, snapshot: ProgressSnapshot) -> None:
        if self.fail_publish:
            raise OSError("surface gone")
        self.published.append(snapshot)

    def dismiss(self, after: float) -> None:
        self.dismissed.append(after)


class FakeStore(RecordStore):
    def __init__(self, fail: bool = False, fail_paths: set[str] | None = None):
        self.fail = fail
        self.fail_paths = fail_paths or set()
        self.records: dict[UUID, MeetingRecord] = {}

    def create_record(self, draft: MeetingDraft) -> UUID:
        if self.fail or draft.audio_file_path in self.fail_paths:
            raise RecordPersistenceError(draft.audio_file_path, OSError("disk full"))
        record = MeetingRecord(id=uuid4(), **draft.model_dump())
        self.records[record.id] = record
        return record.id

    def list_audio_paths(self) -> set[str]:
        return {r.audio_file_path for r in self.records.values() if r.audio_file_path}

    def get_record(self, record_id: UUID) -> MeetingRecord:
        if record_id not in self.records:
            raise MeetingNotFoundError(record_id)
        return self.records[record_id]

    def update_transcript(self, record_id: UUID, transcript: str) -> None:
        self.get_record(record_id).transcript = transcript

    @property
    def drafts(self) -> list[MeetingRecord]:
        return list(self.records.values())


class FakeStorage(ObjectStorage):
    URL = "https://minio.local/meeting-recordings/audio/1700000000_abc.wav"

    def __init__(self, fail_upload: bool = False, fail_delete: bool = False):
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete
        self.uploads: list[Path] = []
        self.deletes: list[str] = []

    def upload(self, file_path, on_progress=None) -> str:
        if self.fail_upload:
            raise StorageUploadError("audio/x.wav", OSError("connection refused"))
        self.uploads.append(file_path)
        if on_progress:
            on_progress(0.5)
            on_progress(1.0)
        return self.URL

    def delete(self, remote_url: str) -> None:
        self.deletes.append(remote_url)
        if self.fail_delete:
            raise StorageDeleteError("audio/x.wav", OSError("connection refused"))


def task_body(status: str, **output) -> dict:
    return {"request_id": "req", "output": {"task_id": "task-1", "task_status": status, **output}}


class FakeTranscriptionService(TranscriptionService):
    """
    Replays scripted task bodies; an exception instance in the script is raised.

    The last body repeats once the script is exhausted.
    """

    def __init__(self, task_bodies=None, submit_body=None, documents=None, on_fetch=None):
        self.task_bodies = list(task_bodies or [])
        self.submit_body = submit_body if submit_body is not None else {"output": {"task_id": "task-1", "task_status": "PENDING"}}
        self.documents = documents or {}
        self.on_fetch = on_fetch
        self.submitted: list[str] = []
        self.fetches = 0
        self.downloads: list[str] = []

    async def submit(self, file_url: str) -> dict:
        self.submitted.append(file_url)
        if isinstance(self.submit_body, Exception):
            raise self.submit_body
        return self.submit_body

    async def fetch_task(self, task_id: str) -> dict:
        index = min(self.fetches, len(self.task_bodies) - 1)
        self.fetches += 1
        if self.on_fetch:
            self.on_fetch(self.fetches)
        body = self.task_bodies[index]
        if isinstance(body, Exception):
            raise body
        return body

    async def download(self, url: str) -> bytes:
        self.downloads.append(url)
        return self.documents[url]


class FakeBatchRecognizer(BatchRecognizer):
    def __init__(self, texts=None, default: str = "", fail_on: set[str] | None = None):
        self.texts = texts or {}
        self.default = default
        self.fail_on = fail_on or set()
        self.calls: list[Path] = []
        self.existed: list[bool] = []

    async def transcribe(self, audio_path: Path) -> str:
        self.calls.append(audio_path)
        self.existed.append(audio_path.exists())
        if audio_path.name in self.fail_on:
            raise RecognitionError(audio_path.name, RuntimeError("model error"))
        return self.texts.get(audio_path.name, self.default)


class FakeExporter(AudioSegmentExporter):
    def __init__(self, total: float = math.nan, fail_index: int | None = None, segment: float = 300.0):
        self.total = total
        self.fail_index = fail_index
        self.segment = segment
        self.exports: list[tuple[float, float, Path]] = []

    def duration(self, audio_path: Path) -> float:
        return self.total

    def export(self, audio_path: Path, start: float, duration: float, destination: Path) -> None:
        self.exports.append((start, duration, destination))
        if self.fail_index is not None and round(start / self.segment) == self.fail_index:
            raise OSError("encoder crashed")
        destination.write_bytes(b"RIFF")


class FakeLLM(LLMService):
    def __init__(self, result: str = "Refined.", fail: bool = False):
        self.result = result
        self.fail = fail
        self.calls: list[str] = []

    def refine_transcript(self, text: str) -> str:
        self.calls.append(text)
        if self.fail:
            raise LLMServiceError("quota exceeded")
        return self.result


class FakeCache(CacheService):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        if self.fail:
            raise CacheServiceError(key, "get")
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail:
            raise CacheServiceError(key, "set")
        self.values[key] = value


def run(coro):
    return asyncio.run(coro)
