"""Startup reconciliation of recordings on disk with durable records."""

import math
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from uuid import UUID

from meeting_recorder.infrastructure.interfaces import RecordStore
from meeting_recorder.logging import setup_logging

from .models import MeetingDraft

logger = setup_logging()

DurationReader = Callable[[Path], float]


class OrphanRecoverySweep:
    """
    Creates placeholder records for recordings that no record references.

    Running the sweep twice in a row creates nothing the second time. A file
    whose record write fails is logged and left for the next run.
    """

    def __init__(
        self,
        store: RecordStore,
        directories: Iterable[Path],
        duration_reader: DurationReader,
        extension: str = ".wav",
        title_prefix: str = "Meeting Recording",
    ):
        self._store = store
        self._directories = _unique(directories)
        self._duration_reader = duration_reader
        self._extension = extension.lower()
        self._title_prefix = title_prefix

    def run(self) -> list[UUID]:
        """
        Scans every directory once and materializes missing records.

        Returns:
            Identifiers of the records created during this run.
        """
        known = {_normalize(p) for p in self._store.list_audio_paths()}
        created: list[UUID] = []

        for directory in self._directories:
            for audio_path in self._candidates(directory):
                key = _normalize(str(audio_path))
                if key in known:
                    continue
                record_id = self._recover(audio_path)
                if record_id is not None:
                    known.add(key)
                    created.append(record_id)

        logger.info(
            "Orphan recovery sweep finished",
            extra={"directories": len(self._directories), "recovered": len(created)},
        )
        return created

    def _candidates(self, directory: Path) -> list[Path]:
        if not directory.is_dir():
            return []
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            logger.exception("Failed to list recordings directory", extra={"directory": str(directory)})
            return []
        return [
            entry
            for entry in entries
            if not entry.name.startswith(".")
            and entry.suffix.lower() == self._extension
            and entry.is_file()
        ]

    def _recover(self, audio_path: Path) -> UUID | None:
        created_at = _creation_time(audio_path)
        draft = MeetingDraft(
            title=f"{self._title_prefix} - {created_at:%m-%d %H:%M}",
            transcript="",
            audio_file_path=str(audio_path),
            created_at=created_at,
            duration=self._read_duration(audio_path),
        )
        try:
            record_id = self._store.create_record(draft)
        except Exception:
            logger.exception("Failed to recover orphaned recording", extra={"audio_file": str(audio_path)})
            return None
        logger.info(
            "Orphaned recording recovered",
            extra={"audio_file": str(audio_path), "record_id": str(record_id)},
        )
        return record_id

    def _read_duration(self, audio_path: Path) -> float:
        try:
            duration = float(self._duration_reader(audio_path))
        except Exception:
            logger.warning("Could not read recording duration", extra={"audio_file": str(audio_path)})
            return 0.0
        if not math.isfinite(duration) or duration < 0:
            return 0.0
        return duration


def _normalize(path: str) -> str:
    return str(Path(path).expanduser().resolve())


def _creation_time(path: Path) -> datetime:
    try:
        stat = path.stat()
    except OSError:
        return datetime.now()
    return datetime.fromtimestamp(getattr(stat, "st_birthtime", stat.st_mtime))


def _unique(directories: Iterable[Path]) -> list[Path]:
    seen: set[Path] = set()
    ordered = []
    for directory in directories:
        resolved = directory.expanduser().resolve()
        if resolved not in seen:
            seen.add(resolved)
            ordered.append(resolved)
    return ordered
