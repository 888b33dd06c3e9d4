"""Abstract interface for object storage holding temporary uploads."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path


class ObjectStorage(ABC):
    """Abstract base class for object storage backends."""

    @abstractmethod
    def upload(
        self, file_path: Path, on_progress: Callable[[float], None] | None = None
    ) -> str:
        """
        Uploads a local file.

        Args:
            file_path: The local file to upload.
            on_progress: Called with the uploaded fraction in [0, 1].

        Returns:
            A URL the transcription service can fetch the object from.

        Raises:
            StorageUploadError: If the upload fails.
        """

    @abstractmethod
    def delete(self, remote_url: str) -> None:
        """
        Deletes a previously uploaded object.

        Raises:
            StorageDeleteError: If the delete fails.
        """
