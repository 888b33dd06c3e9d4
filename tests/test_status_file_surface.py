import json
import tempfile
import threading
import time
import unittest
from pathlib import Path

from meeting_recorder.domain.models import ProgressSnapshot
from meeting_recorder.infrastructure.status_file_surface import (
    DISMISSAL_THREAD_NAME,
    StatusFileSurface,
)


class StatusFileSurfaceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.status_path = Path(self.tmpdir.name) / "state" / "recording.json"
        self.surface = StatusFileSurface(self.status_path)

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def publish(self) -> None:
        self.surface.publish(
            ProgressSnapshot(text="Bonjour à tous", duration=12.5, is_recording=False, is_paused=True)
        )

    def test_publish_writes_status_document(self) -> None:
        self.publish()
        payload = json.loads(self.status_path.read_text(encoding="utf-8"))
        self.assertEqual(payload["text"], "Bonjour à tous")
        self.assertEqual(payload["elapsedDuration"], 12.5)
        self.assertFalse(payload["isRecording"])
        self.assertTrue(payload["isPaused"])
        self.assertIn("updatedAt", payload)
        self.assertEqual([p.name for p in self.status_path.parent.iterdir()], ["recording.json"])

    def test_immediate_dismiss_removes_file(self) -> None:
        self.publish()
        self.surface.dismiss(0.0)
        self.assertFalse(self.status_path.exists())

    def test_delayed_dismiss_removes_file_after_grace(self) -> None:
        self.publish()
        self.surface.dismiss(0.05)
        self.assertTrue(self.status_path.exists())
        deadline = time.monotonic() + 2.0
        while self.status_path.exists() and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertFalse(self.status_path.exists())

    def test_dismissal_timer_keeps_process_alive_until_removed(self) -> None:
        self.publish()
        self.surface.dismiss(0.05)
        timer = next(t for t in threading.enumerate() if t is self.surface._timer)
        self.assertEqual(timer.name, DISMISSAL_THREAD_NAME)
        self.assertFalse(timer.daemon)
        timer.join(2.0)
        self.assertFalse(self.status_path.exists())

    def test_dismiss_without_file_is_harmless(self) -> None:
        self.surface.dismiss(0.0)
        self.assertFalse(self.status_path.exists())


if __name__ == "__main__":
    unittest.main()
