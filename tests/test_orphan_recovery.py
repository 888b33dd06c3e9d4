import math
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from fakes import FakeStore

from meeting_recorder.domain.models import MeetingDraft
from meeting_recorder.domain.orphan_recovery import OrphanRecoverySweep


class OrphanRecoverySweepTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.recordings = Path(self.tmpdir.name).resolve() / "MeetingRecordings"
        self.recordings.mkdir()
        self.store = FakeStore()

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def touch(self, name: str, directory: Path | None = None) -> Path:
        path = (directory or self.recordings) / name
        path.write_bytes(b"RIFF")
        return path

    def sweep(self, duration_of=lambda path: 42.0, directories=None) -> OrphanRecoverySweep:
        return OrphanRecoverySweep(
            self.store, directories or [self.recordings], duration_reader=duration_of
        )

    def test_unreferenced_recordings_get_placeholder_records(self) -> None:
        first = self.touch("meeting_1.wav")
        second = self.touch("meeting_2.WAV")
        self.touch(".meeting_3.wav")
        self.touch("notes.txt")

        created = self.sweep().run()

        self.assertEqual(len(created), 2)
        paths = sorted(r.audio_file_path for r in self.store.records.values())
        self.assertEqual(paths, [str(first), str(second)])
        record = self.store.get_record(created[0])
        self.assertEqual(record.transcript, "")
        self.assertEqual(record.duration, 42.0)
        self.assertTrue(record.title.startswith("Meeting Recording - "))

    def test_second_run_creates_nothing(self) -> None:
        self.touch("meeting_1.wav")
        sweep = self.sweep()
        self.assertEqual(len(sweep.run()), 1)
        self.assertEqual(sweep.run(), [])

    def test_referenced_recording_is_skipped(self) -> None:
        path = self.touch("meeting_1.wav")
        self.store.create_record(
            MeetingDraft(
                title="Weekly sync",
                transcript="Hello.",
                audio_file_path=str(path),
                created_at=datetime(2024, 3, 5, 9, 0),
                duration=12.0,
            )
        )
        self.assertEqual(self.sweep().run(), [])

    def test_unreadable_duration_is_recorded_as_zero(self) -> None:
        def broken(path: Path) -> float:
            raise OSError("corrupt header")

        self.touch("meeting_1.wav")
        self.touch("meeting_2.wav")
        durations = {"meeting_1.wav": broken, "meeting_2.wav": lambda p: math.nan}

        created = self.sweep(duration_of=lambda p: durations[p.name](p)).run()

        self.assertEqual([self.store.get_record(i).duration for i in created], [0.0, 0.0])

    def test_duplicate_directories_are_scanned_once(self) -> None:
        self.touch("meeting_1.wav")
        alias = self.recordings / ".." / self.recordings.name
        created = self.sweep(directories=[self.recordings, alias]).run()
        self.assertEqual(len(created), 1)

    def test_missing_directory_is_ignored(self) -> None:
        other = Path(self.tmpdir.name) / "Recordings"
        self.touch("meeting_1.wav")
        created = self.sweep(directories=[other, self.recordings]).run()
        self.assertEqual(len(created), 1)

    def test_store_failure_for_one_file_does_not_stop_sweep(self) -> None:
        bad = self.touch("meeting_1.wav")
        self.touch("meeting_2.wav")
        self.store.fail_paths = {str(bad)}

        created = self.sweep().run()

        self.assertEqual(len(created), 1)
        self.store.fail_paths = set()
        self.assertEqual(len(self.sweep().run()), 1)


if __name__ == "__main__":
    unittest.main()
