"""Domain layer exports."""

from .models import (
    JobPhase,
    MeetingDraft,
    PauseCause,
    ProgressSnapshot,
    RecordingSession,
    RecordingState,
    StopResult,
    TaskStatus,
    TranscriptionJob,
    TranscriptionMode,
    TranscriptionOutcome,
)
from .transcript_accumulator import TranscriptAccumulator

__all__ = [
    "JobPhase",
    "MeetingDraft",
    "PauseCause",
    "ProgressSnapshot",
    "RecordingSession",
    "RecordingState",
    "StopResult",
    "TaskStatus",
    "TranscriptAccumulator",
    "TranscriptionJob",
    "TranscriptionMode",
    "TranscriptionOutcome",
]
