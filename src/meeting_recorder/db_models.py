from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class MeetingRecord(SQLModel, table=True):
    __tablename__ = "meetings"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=255)
    transcript: str = ""
    audio_file_path: str | None = Field(default=None, unique=True, index=True)
    created_at: datetime
    duration: float = 0.0
