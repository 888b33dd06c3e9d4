"""Repository layer exports."""

from .meeting_repository import MeetingRepository

__all__ = ["MeetingRepository"]
