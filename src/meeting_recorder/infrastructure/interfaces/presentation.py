"""Abstract interface for the live progress surface."""

from abc import ABC, abstractmethod

from meeting_recorder.domain.models import ProgressSnapshot


class PresentationSurface(ABC):
    """External surface displaying recording status without owning it."""

    @abstractmethod
    def publish(self, snapshot: ProgressSnapshot) -> None:
        """Displays the given recording state."""

    @abstractmethod
    def dismiss(self, after: float) -> None:
        """Requests dismissal of the surface after ``after`` seconds."""
