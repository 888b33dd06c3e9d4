"""Application configuration loaded from environment variables."""

import os
from pathlib import Path

from pydantic import BaseModel


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {"1", "true", "yes"}


def _env_paths(name: str) -> tuple[Path, ...]:
    raw = os.getenv(name, "")
    return tuple(Path(p).expanduser() for p in raw.split(os.pathsep) if p.strip())


class RecorderConfig(BaseModel, frozen=True):
    """Live recording configuration."""

    recordings_dir: Path
    extra_scan_dirs: tuple[Path, ...] = ()
    file_extension: str = ".wav"
    sample_rate: int = 16000
    channels: int = 1
    tick_interval_seconds: float = 0.5
    dismiss_grace_seconds: float = 3.0
    publish_live_transcript: bool = True
    pause_on_background: bool = False
    title_prefix: str = "Meeting Recording"
    status_file: Path = Path("recorder_status.json")


class MinioConfig(BaseModel, frozen=True):
    """MinIO connection configuration."""

    endpoint: str
    user: str
    password: str
    bucket_name: str = "meeting-recordings"
    secure: bool = False
    url_expiry_seconds: int = 3600


class DashScopeConfig(BaseModel, frozen=True):
    """Remote transcription service configuration."""

    api_key: str
    model: str = "qwen3-asr-flash-filetrans"
    submit_url: str = (
        "https://dashscope.aliyuncs.com/api/v1/services/audio/asr/transcription"
    )
    tasks_url: str = "https://dashscope.aliyuncs.com/api/v1/tasks"
    poll_interval_seconds: float = 3.0
    max_poll_attempts: int = 60
    request_timeout_seconds: float = 30.0


class GeminiConfig(BaseModel, frozen=True):
    """Gemini configuration for text refinement and batch recognition."""

    api_key: str
    model_name: str = "gemini-2.5-flash-lite"
    recognizer_model_name: str = "gemini-2.5-flash"
    streaming_window_seconds: float = 5.0
    streaming_flush_timeout_seconds: float = 10.0
    system_prompt_path: Path = Path("system.txt")
    temperature: float = 0.3


class RedisConfig(BaseModel, frozen=True):
    """Redis connection configuration."""

    host: str
    port: int = 6379
    cache_ttl_seconds: int = 86400  # 24 hours default


class SegmentationConfig(BaseModel, frozen=True):
    """Segmented batch transcription configuration."""

    segment_duration_seconds: float = 300.0
    threshold_seconds: float = 300.0


class DatabaseConfig(BaseModel, frozen=True):
    """Meeting record database configuration."""

    url: str


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    recorder: RecorderConfig
    minio: MinioConfig
    dashscope: DashScopeConfig
    gemini: GeminiConfig
    redis: RedisConfig
    segmentation: SegmentationConfig
    database: DatabaseConfig


def load_config() -> AppConfig:
    """Loads configuration from environment variables."""
    recordings_dir = Path(
        os.getenv("RECORDINGS_DIR", str(Path.home() / "MeetingRecordings"))
    ).expanduser()
    return AppConfig(
        recorder=RecorderConfig(
            recordings_dir=recordings_dir,
            extra_scan_dirs=_env_paths("RECORDINGS_EXTRA_SCAN_DIRS"),
            tick_interval_seconds=float(os.getenv("RECORDER_TICK_SECONDS", "0.5")),
            publish_live_transcript=_env_bool("RECORDER_PUBLISH_LIVE_TEXT", True),
            pause_on_background=_env_bool("RECORDER_PAUSE_ON_BACKGROUND", False),
            status_file=Path(
                os.getenv("RECORDER_STATUS_FILE", str(recordings_dir / "status.json"))
            ),
        ),
        minio=MinioConfig(
            endpoint=os.getenv("MINIO_ENDPOINT", "minio:9000"),
            user=os.getenv("MINIO_USER", ""),
            password=os.getenv("MINIO_PASSWORD", ""),
            secure=_env_bool("MINIO_SECURE", False),
        ),
        dashscope=DashScopeConfig(
            api_key=os.getenv("DASHSCOPE_API_KEY", ""),
            poll_interval_seconds=float(os.getenv("ASR_POLL_INTERVAL_SECONDS", "3")),
            max_poll_attempts=int(os.getenv("ASR_MAX_POLL_ATTEMPTS", "60")),
        ),
        gemini=GeminiConfig(
            api_key=os.getenv("GEMINI_API_KEY", ""),
            streaming_window_seconds=float(os.getenv("GEMINI_STREAMING_WINDOW_SECONDS", "5")),
            streaming_flush_timeout_seconds=float(
                os.getenv("GEMINI_STREAMING_FLUSH_TIMEOUT_SECONDS", "10")
            ),
        ),
        redis=RedisConfig(
            host=os.getenv("REDIS_HOST", "redis"),
            cache_ttl_seconds=int(os.getenv("REDIS_CACHE_TTL_SECONDS", "86400")),
        ),
        segmentation=SegmentationConfig(
            segment_duration_seconds=float(os.getenv("SEGMENT_DURATION_SECONDS", "300")),
            threshold_seconds=float(os.getenv("SEGMENT_THRESHOLD_SECONDS", "300")),
        ),
        database=DatabaseConfig(
            url=os.getenv("MEETINGS_DB_URL", f"sqlite:///{recordings_dir / 'meetings.db'}"),
        ),
    )
