"""Abstract interface for durable meeting record storage."""

from abc import ABC, abstractmethod
from uuid import UUID

from meeting_recorder.db_models import MeetingRecord
from meeting_recorder.domain.models import MeetingDraft


class RecordStore(ABC):
    """Durable storage of meeting records."""

    @abstractmethod
    def create_record(self, draft: MeetingDraft) -> UUID:
        """
        Persists a new meeting record.

        Returns:
            The generated record identifier.

        Raises:
            RecordPersistenceError: If the write fails.
        """

    @abstractmethod
    def list_audio_paths(self) -> set[str]:
        """Returns every audio file path already referenced by a record."""

    @abstractmethod
    def get_record(self, record_id: UUID) -> MeetingRecord:
        """
        Retrieves a single record.

        Raises:
            MeetingNotFoundError: If the record does not exist.
        """

    @abstractmethod
    def update_transcript(self, record_id: UUID, transcript: str) -> None:
        """
        Replaces the transcript of an existing record.

        Raises:
            MeetingNotFoundError: If the record does not exist.
            RecordPersistenceError: If the write fails.
        """
