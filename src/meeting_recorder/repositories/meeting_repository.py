"""Repository for meeting record persistence."""

from uuid import UUID

from sqlmodel import Session, select

from meeting_recorder.db_models import MeetingRecord
from meeting_recorder.domain.models import MeetingDraft
from meeting_recorder.exceptions import MeetingNotFoundError, RecordPersistenceError
from meeting_recorder.infrastructure.interfaces import RecordStore
from meeting_recorder.logging import setup_logging

logger = setup_logging()


class MeetingRepository(RecordStore):
    """
    Handles database operations for meeting records.

    Encapsulates SQL queries and transaction management, keeping the
    recorder and the transcription handler free of database concerns.
    """

    def __init__(self, session_factory):
        """
        Initializes the repository.

        Args:
            session_factory: Callable that returns a SQLModel Session context manager.
        """
        self._session_factory = session_factory

    def create_record(self, draft: MeetingDraft) -> UUID:
        try:
            with self._session_factory() as db_session:
                record = MeetingRecord(
                    title=draft.title,
                    transcript=draft.transcript,
                    audio_file_path=draft.audio_file_path,
                    created_at=draft.created_at,
                    duration=draft.duration,
                )
                db_session.add(record)
                db_session.commit()
                record_id = record.id
        except Exception as e:
            logger.exception(
                "Failed to persist meeting record",
                extra={"audio_file": draft.audio_file_path},
            )
            raise RecordPersistenceError(draft.audio_file_path, cause=e) from e

        logger.info(
            "Meeting record persisted",
            extra={"record_id": str(record_id), "audio_file": draft.audio_file_path},
        )
        return record_id

    def list_audio_paths(self) -> set[str]:
        with self._session_factory() as db_session:
            statement = select(MeetingRecord.audio_file_path).where(
                MeetingRecord.audio_file_path.is_not(None)
            )
            return set(db_session.exec(statement).all())

    def get_record(self, record_id: UUID) -> MeetingRecord:
        with self._session_factory() as db_session:
            record = db_session.get(MeetingRecord, record_id)
            if record is None:
                raise MeetingNotFoundError(record_id)
            db_session.expunge(record)
            return record

    def list_records(self) -> list[MeetingRecord]:
        """Returns all records, newest first."""
        with self._session_factory() as db_session:
            statement = select(MeetingRecord).order_by(MeetingRecord.created_at.desc())
            records = list(db_session.exec(statement).all())
            for record in records:
                db_session.expunge(record)
            return records

    def update_transcript(self, record_id: UUID, transcript: str) -> None:
        try:
            with self._session_factory() as db_session:
                record = db_session.get(MeetingRecord, record_id)
                if record is None:
                    raise MeetingNotFoundError(record_id)
                record.transcript = transcript
                db_session.add(record)
                db_session.commit()
                audio_file_path = record.audio_file_path
        except MeetingNotFoundError:
            raise
        except Exception as e:
            logger.exception(
                "Failed to update meeting transcript",
                extra={"record_id": str(record_id)},
            )
            raise RecordPersistenceError(None, cause=e) from e

        logger.info(
            "Meeting transcript updated",
            extra={
                "record_id": str(record_id),
                "audio_file": audio_file_path,
                "chars": len(transcript),
            },
        )
