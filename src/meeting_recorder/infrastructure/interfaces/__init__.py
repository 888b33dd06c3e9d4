"""Infrastructure interface exports."""

from .audio import (
    AudioSegmentExporter,
    AudioSession,
    BatchRecognizer,
    PermissionGate,
    StreamingRecognizer,
)
from .cache_service import CacheService
from .llm_service import LLMService
from .presentation import PresentationSurface
from .record_store import RecordStore
from .storage import ObjectStorage
from .transcription_service import TranscriptionService

__all__ = [
    "AudioSegmentExporter",
    "AudioSession",
    "BatchRecognizer",
    "CacheService",
    "LLMService",
    "ObjectStorage",
    "PermissionGate",
    "PresentationSurface",
    "RecordStore",
    "StreamingRecognizer",
    "TranscriptionService",
]
