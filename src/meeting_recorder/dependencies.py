"""Dependency injection configuration for the meeting recorder."""

from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path

import httpx
import redis
from google import genai
from minio import Minio
from sqlmodel import Session, SQLModel, create_engine

from meeting_recorder.config import load_config
from meeting_recorder.domain.lifecycle import LifecycleChannel
from meeting_recorder.domain.orphan_recovery import OrphanRecoverySweep
from meeting_recorder.domain.progress import LiveProgressReporter
from meeting_recorder.domain.recorder import LiveRecorder
from meeting_recorder.domain.remote_transcriber import RemoteTranscriber
from meeting_recorder.domain.segmented_transcriber import SegmentedTranscriber
from meeting_recorder.domain.text_optimizer import TextOptimizer
from meeting_recorder.handlers import MeetingTranscriptionHandler
from meeting_recorder.infrastructure.dashscope_client import DashScopeTranscriptionClient
from meeting_recorder.infrastructure.gemini_llm import GeminiLLMService
from meeting_recorder.infrastructure.gemini_recognizer import (
    AudioOnlyRecognizer,
    GeminiBatchRecognizer,
    GeminiStreamingRecognizer,
)
from meeting_recorder.infrastructure.interfaces import CacheService, StreamingRecognizer
from meeting_recorder.infrastructure.minio_storage import MinioStorage
from meeting_recorder.infrastructure.moviepy_audio import MoviePyAudioExporter
from meeting_recorder.infrastructure.redis_cache import RedisCacheService
from meeting_recorder.infrastructure.sounddevice_audio import (
    DevicePermissionGate,
    SoundDeviceAudioSession,
)
from meeting_recorder.infrastructure.status_file_surface import StatusFileSurface
from meeting_recorder.logging import setup_logging
from meeting_recorder.repositories import MeetingRepository

logger = setup_logging()

_config = load_config()
_config.recorder.recordings_dir.mkdir(parents=True, exist_ok=True)

# Meeting record database
_connect_args = (
    {"check_same_thread": False} if _config.database.url.startswith("sqlite") else {}
)
_db_engine = create_engine(_config.database.url, connect_args=_connect_args)
SQLModel.metadata.create_all(_db_engine)
logger.info("Database initialized", extra={"url": _db_engine.url.render_as_string()})


@contextmanager
def _session_factory():
    """Creates a database session context manager."""
    with Session(_db_engine) as session:
        yield session


_repository = MeetingRepository(_session_factory)
_audio_exporter = MoviePyAudioExporter(_config.recorder.sample_rate)
_lifecycle_channel = LifecycleChannel()


def get_config():
    """Returns the loaded application configuration."""
    return _config


def get_repository() -> MeetingRepository:
    """Returns the meeting record repository."""
    return _repository


def get_lifecycle_channel() -> LifecycleChannel:
    """Returns the process-wide lifecycle channel."""
    return _lifecycle_channel


def get_orphan_sweep() -> OrphanRecoverySweep:
    """Returns the orphan recovery sweep over all known recording directories."""
    return OrphanRecoverySweep(
        store=_repository,
        directories=[_config.recorder.recordings_dir, *_config.recorder.extra_scan_dirs],
        duration_reader=_audio_exporter.duration,
        extension=_config.recorder.file_extension,
        title_prefix=_config.recorder.title_prefix,
    )


@lru_cache(maxsize=1)
def get_gemini_client() -> genai.Client:
    """Returns the Gemini client."""
    if not _config.gemini.api_key:
        raise RuntimeError("GEMINI_API_KEY is not configured")
    return genai.Client(api_key=_config.gemini.api_key)


@lru_cache(maxsize=1)
def get_storage() -> MinioStorage:
    """Returns the MinIO storage for temporary uploads, creating its bucket."""
    minio_client = Minio(
        endpoint=_config.minio.endpoint,
        access_key=_config.minio.user,
        secret_key=_config.minio.password,
        secure=_config.minio.secure,
    )
    storage = MinioStorage(
        minio_client, _config.minio.bucket_name, _config.minio.url_expiry_seconds
    )
    storage.ensure_bucket_exists()
    return storage


@lru_cache(maxsize=1)
def get_cache() -> CacheService | None:
    """Returns the Redis cache, or None if Redis is unreachable."""
    redis_client = redis.Redis(
        host=_config.redis.host,
        port=_config.redis.port,
        decode_responses=True,
    )
    try:
        redis_client.ping()
    except redis.RedisError:
        logger.error("Redis connection failed, refinement cache disabled", extra={"host": _config.redis.host})
        return None
    return RedisCacheService(redis_client, _config.redis.cache_ttl_seconds)


def get_text_optimizer() -> TextOptimizer:
    """Returns the LLM transcript optimizer."""
    system_prompt_path = Path(__file__).parent / _config.gemini.system_prompt_path
    system_prompt = system_prompt_path.read_text(encoding="utf-8")
    llm = GeminiLLMService(
        get_gemini_client(),
        _config.gemini.model_name,
        system_prompt,
        _config.gemini.temperature,
    )
    return TextOptimizer(llm, get_cache())


def get_transcription_client() -> DashScopeTranscriptionClient:
    """Returns a new DashScope client; the caller closes it with ``aclose``."""
    return DashScopeTranscriptionClient(
        httpx.AsyncClient(timeout=_config.dashscope.request_timeout_seconds),
        api_key=_config.dashscope.api_key,
        model=_config.dashscope.model,
        submit_url=_config.dashscope.submit_url,
        tasks_url=_config.dashscope.tasks_url,
    )


def get_transcription_handler(
    transcription_client: DashScopeTranscriptionClient,
    optimize: bool = False,
) -> MeetingTranscriptionHandler:
    """Returns the handler for transcribing stored meetings."""
    remote = RemoteTranscriber(
        get_storage(),
        transcription_client,
        poll_interval=_config.dashscope.poll_interval_seconds,
        max_attempts=_config.dashscope.max_poll_attempts,
    )
    segmented = SegmentedTranscriber(
        GeminiBatchRecognizer(get_gemini_client(), _config.gemini.recognizer_model_name),
        _audio_exporter,
        segment_duration=_config.segmentation.segment_duration_seconds,
        threshold=_config.segmentation.threshold_seconds,
    )
    optimizer = get_text_optimizer() if optimize else None
    return MeetingTranscriptionHandler(_repository, remote, segmented, optimizer)


def get_streaming_recognizer() -> StreamingRecognizer:
    """Returns the live recognizer, or an audio-only stand-in when live text cannot be produced."""
    if not _config.recorder.publish_live_transcript:
        return AudioOnlyRecognizer()
    if not _config.gemini.api_key:
        logger.warning("GEMINI_API_KEY is not configured, live transcript disabled")
        return AudioOnlyRecognizer()
    return GeminiStreamingRecognizer(
        get_gemini_client(),
        _config.gemini.recognizer_model_name,
        sample_rate=_config.recorder.sample_rate,
        window_seconds=_config.gemini.streaming_window_seconds,
        flush_timeout=_config.gemini.streaming_flush_timeout_seconds,
    )


def get_live_recorder() -> LiveRecorder:
    """Returns a new single-use live recorder wired to the microphone."""
    recorder_config = _config.recorder
    audio_session = SoundDeviceAudioSession(
        sample_rate=recorder_config.sample_rate,
        channels=recorder_config.channels,
    )
    recognizer = get_streaming_recognizer()
    if isinstance(recognizer, GeminiStreamingRecognizer):
        audio_session.add_listener(recognizer.feed)
    reporter = LiveProgressReporter(
        StatusFileSurface(recorder_config.status_file),
        interval=recorder_config.tick_interval_seconds,
        grace_seconds=recorder_config.dismiss_grace_seconds,
    )
    return LiveRecorder(
        audio_session=audio_session,
        recognizer=recognizer,
        permissions=DevicePermissionGate(),
        reporter=reporter,
        recordings_dir=recorder_config.recordings_dir,
        file_extension=recorder_config.file_extension,
        publish_live_transcript=recorder_config.publish_live_transcript,
        title_prefix=recorder_config.title_prefix,
    )
