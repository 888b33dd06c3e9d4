"""Handler layer exports."""

from .meeting_transcription_handler import MeetingTranscriptionHandler

__all__ = ["MeetingTranscriptionHandler"]
