"""Presentation surface that mirrors recording status into a JSON file."""

import json
import os
import threading
import time
from pathlib import Path

from meeting_recorder.domain.models import ProgressSnapshot
from meeting_recorder.logging import setup_logging

from .interfaces import PresentationSurface

logger = setup_logging()

DISMISSAL_THREAD_NAME = "status-file-dismissal"


class StatusFileSurface(PresentationSurface):
    """
    Writes each snapshot atomically to a status file for external widgets.

    Dismissal removes the file after the grace period on a timer thread; a
    zero grace removes it immediately. The timer is not a daemon, so a
    process exiting right after a stop still removes the file once the
    grace period ends.
    """

    def __init__(self, status_path: Path):
        self._status_path = status_path
        self._timer: threading.Timer | None = None

    def publish(self, snapshot: ProgressSnapshot) -> None:
        payload = {
            "text": snapshot.text,
            "elapsedDuration": snapshot.duration,
            "isRecording": snapshot.is_recording,
            "isPaused": snapshot.is_paused,
            "updatedAt": time.time(),
        }
        self._status_path.parent.mkdir(parents=True, exist_ok=True)
        encoded = json.dumps(payload, ensure_ascii=False, indent=2)
        temp_path = self._status_path.with_suffix(".tmp")
        temp_path.write_text(encoded, encoding="utf-8")
        os.replace(temp_path, self._status_path)

    def dismiss(self, after: float) -> None:
        if self._timer is not None:
            self._timer.cancel()
        if after <= 0:
            self._remove()
            return
        self._timer = threading.Timer(after, self._remove)
        self._timer.name = DISMISSAL_THREAD_NAME
        self._timer.start()

    def _remove(self) -> None:
        try:
            self._status_path.unlink(missing_ok=True)
            logger.info("Status surface dismissed", extra={"path": str(self._status_path)})
        except OSError:
            logger.exception("Failed to remove status file", extra={"path": str(self._status_path)})
