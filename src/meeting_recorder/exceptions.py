"""Custom exceptions for the meeting recorder."""

from uuid import UUID


class CapabilityDeniedError(Exception):
    """Raised when a device capability grant (microphone, speech) is refused."""

    def __init__(self, capability: str):
        self.capability = capability
        super().__init__(f"Permission for '{capability}' was denied")


class RecordingStartError(Exception):
    """Raised when the audio session or recognizer cannot be started."""

    def __init__(self, audio_file_path: str, cause: Exception | None = None):
        self.audio_file_path = audio_file_path
        self.cause = cause
        super().__init__(f"Failed to start recording to '{audio_file_path}'")


class RecordPersistenceError(Exception):
    """
    Raised when a finished recording could not be written to durable storage.

    The audio file is left on disk; the orphan recovery sweep reconciles it
    on the next startup.
    """

    def __init__(self, audio_file_path: str | None, cause: Exception | None = None):
        self.audio_file_path = audio_file_path
        self.cause = cause
        super().__init__(f"Failed to persist meeting record for '{audio_file_path}'")


class MeetingNotFoundError(Exception):
    """Raised when a requested meeting record does not exist."""

    def __init__(self, record_id: UUID):
        self.record_id = record_id
        super().__init__(f"Meeting {record_id} not found")


class MissingAudioFileError(Exception):
    """Raised when a meeting record has no usable audio file."""

    def __init__(self, record_id: UUID, audio_file_path: str | None):
        self.record_id = record_id
        self.audio_file_path = audio_file_path
        super().__init__(
            f"Meeting {record_id} has no audio file at '{audio_file_path}'"
        )


class StorageUploadError(Exception):
    """Raised when uploading a file to object storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Failed to upload '{object_name}' to storage")


class StorageDeleteError(Exception):
    """Raised when deleting an object from storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Failed to delete '{object_name}' from storage")


class TranscriptionError(Exception):
    """Base class for transcription failures."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class TranscriptionServiceError(TranscriptionError):
    """Raised on an HTTP or transport failure talking to the transcription service."""

    def __init__(
        self, status_code: int, detail: str, cause: Exception | None = None
    ):
        self.status_code = status_code
        self.detail = detail
        super().__init__(
            f"Transcription request failed ({status_code}): {detail}", cause
        )


class TranscriptionProtocolError(TranscriptionError):
    """Raised when a service response is missing required fields or is malformed."""

    def __init__(self, detail: str, cause: Exception | None = None):
        self.detail = detail
        super().__init__(f"Invalid transcription service response: {detail}", cause)


class TranscriptionFailedError(TranscriptionError):
    """Raised when the service reports the transcription task as FAILED."""

    def __init__(self, task_id: str, message: str):
        self.task_id = task_id
        self.service_message = message
        super().__init__(f"Transcription task '{task_id}' failed: {message}")


class TranscriptionTimeoutError(TranscriptionError):
    """Raised when a task does not reach a terminal state within the poll cap."""

    def __init__(self, task_id: str, attempts: int):
        self.task_id = task_id
        self.attempts = attempts
        super().__init__(
            f"Transcription task '{task_id}' timed out after {attempts} polls"
        )


class TranscriptionCancelledError(TranscriptionError):
    """Raised when the caller abandons a transcription task."""

    def __init__(self, task_id: str | None):
        self.task_id = task_id
        super().__init__(f"Transcription task '{task_id}' was abandoned")


class EmptyTranscriptError(TranscriptionError):
    """Raised when a well-formed result carries no usable text."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Transcription of '{source}' produced no text")


class RecognitionError(TranscriptionError):
    """Raised when a batch or streaming recognizer call fails."""

    def __init__(self, file_name: str, cause: Exception | None = None):
        self.file_name = file_name
        super().__init__(f"Failed to recognize audio file '{file_name}'", cause)


class SegmentExportError(TranscriptionError):
    """Raised when exporting a time-bounded slice of a recording fails."""

    def __init__(
        self, file_name: str, index: int | None = None, cause: Exception | None = None
    ):
        self.file_name = file_name
        self.index = index
        slice_name = f"segment {index}" if index is not None else "a slice"
        super().__init__(f"Failed to export {slice_name} of '{file_name}'", cause)


class LLMServiceError(Exception):
    """Raised when LLM service call fails."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class CacheServiceError(Exception):
    """Raised when cache operations fail."""

    def __init__(self, key: str, operation: str, cause: Exception | None = None):
        self.key = key
        self.operation = operation
        self.cause = cause
        super().__init__(f"Cache {operation} failed for key '{key}'")
