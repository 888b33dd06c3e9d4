"""Domain models for recording and transcription."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from .transcript_accumulator import TranscriptAccumulator


class RecordingState(str, Enum):
    """Lifecycle states of a live recording."""

    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


class PauseCause(str, Enum):
    """What caused an automatic pause; a matching event may resume it."""

    INTERRUPTION = "interruption"
    BACKGROUND = "background"


class RecordingSession(BaseModel):
    """In-memory state of one recording, owned by the recorder."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    audio_file_path: Path
    started_at: datetime
    accumulator: TranscriptAccumulator
    elapsed_duration: float = 0.0
    publish_live_transcript: bool = True

    @property
    def live_transcript(self) -> str:
        return self.accumulator.text


class ProgressSnapshot(BaseModel, frozen=True):
    """State pushed to the live progress surface."""

    text: str
    duration: float
    is_recording: bool
    is_paused: bool

    @model_validator(mode="after")
    def _single_state(self) -> "ProgressSnapshot":
        if self.is_recording and self.is_paused:
            raise ValueError("A snapshot cannot be both recording and paused")
        return self


class MeetingDraft(BaseModel, frozen=True):
    """Record handed to durable storage when a recording is finalized."""

    title: str
    transcript: str
    audio_file_path: str
    created_at: datetime
    duration: float


class StopResult(BaseModel, frozen=True):
    """Outcome of a successful stop."""

    audio_file_path: Path
    record_id: UUID


class TaskStatus(str, Enum):
    """Status values reported by the remote transcription service."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> "TaskStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class JobPhase(str, Enum):
    """Orchestrator-side phases of one transcription job."""

    UPLOADING = "uploading"
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class TranscriptionJob(BaseModel):
    """One remote transcription invocation."""

    audio_file_path: Path
    phase: JobPhase = JobPhase.UPLOADING
    remote_object_url: str | None = None
    job_id: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    attempt: int = 0
    result_text: str | None = None


class TranscriptionMode(str, Enum):
    """Which recognition path produces a record's final transcript."""

    REMOTE = "remote"
    SEGMENTED = "segmented"


class TranscriptionOutcome(BaseModel, frozen=True):
    """Result of transcribing a stored meeting."""

    record_id: UUID
    mode: TranscriptionMode
    transcript: str
    optimized: bool = False
