import asyncio
import tempfile
import unittest
from pathlib import Path

from fakes import (
    FakeAudioSession,
    FakePermissions,
    FakeStore,
    FakeStreamingRecognizer,
    FakeSurface,
)

from meeting_recorder.domain.lifecycle import (
    LifecycleChannel,
    LifecycleEvent,
    LifecycleEventType,
    RecorderLifecycleObserver,
)
from meeting_recorder.domain.models import PauseCause, RecordingState
from meeting_recorder.domain.progress import LiveProgressReporter
from meeting_recorder.domain.recorder import LiveRecorder

BEGAN = LifecycleEvent(type=LifecycleEventType.INTERRUPTION_BEGAN)
ENDED_RESUME = LifecycleEvent(type=LifecycleEventType.INTERRUPTION_ENDED, should_resume=True)
ENDED_NO_RESUME = LifecycleEvent(type=LifecycleEventType.INTERRUPTION_ENDED)
BACKGROUND = LifecycleEvent(type=LifecycleEventType.DID_ENTER_BACKGROUND)
FOREGROUND = LifecycleEvent(type=LifecycleEventType.WILL_ENTER_FOREGROUND)


class LifecycleTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.audio = FakeAudioSession()
        self.surface = FakeSurface()
        self.store = FakeStore()
        self.channel = LifecycleChannel()

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def make_recorder(self) -> LiveRecorder:
        return LiveRecorder(
            audio_session=self.audio,
            recognizer=FakeStreamingRecognizer(),
            permissions=FakePermissions(),
            reporter=LiveProgressReporter(self.surface, interval=60.0),
            recordings_dir=Path(self.tmpdir.name),
        )

    def observe(self, recorder: LiveRecorder, pause_on_background: bool = False):
        observer = RecorderLifecycleObserver(recorder, self.store, pause_on_background)
        subscription = self.channel.subscribe(observer)
        return observer, subscription


class InterruptionTests(LifecycleTestCase):
    def test_interruption_pauses_and_resumes(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            observer, _ = self.observe(recorder)
            await recorder.start()
            await self.channel.publish(BEGAN)
            during = (recorder.state, observer.pause_cause)
            await self.channel.publish(ENDED_RESUME)
            after = (recorder.state, observer.pause_cause)
            await recorder.stop(self.store)
            return during, after

        during, after = asyncio.run(scenario())
        self.assertEqual(during, (RecordingState.PAUSED, PauseCause.INTERRUPTION))
        self.assertEqual(after, (RecordingState.RECORDING, None))

    def test_manual_pause_is_not_auto_resumed(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            self.observe(recorder)
            await recorder.start()
            await recorder.pause()
            await self.channel.publish(BEGAN)
            await self.channel.publish(ENDED_RESUME)
            state = recorder.state
            await recorder.stop(self.store)
            return state

        self.assertIs(asyncio.run(scenario()), RecordingState.PAUSED)

    def test_user_transition_during_interruption_blocks_auto_resume(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            self.observe(recorder)
            await recorder.start()
            await self.channel.publish(BEGAN)
            await recorder.resume()
            await recorder.pause()
            await self.channel.publish(ENDED_RESUME)
            state = recorder.state
            await recorder.stop(self.store)
            return state

        self.assertIs(asyncio.run(scenario()), RecordingState.PAUSED)

    def test_interruption_end_without_resume_hint_stays_paused(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            observer, _ = self.observe(recorder)
            await recorder.start()
            await self.channel.publish(BEGAN)
            await self.channel.publish(ENDED_NO_RESUME)
            await self.channel.publish(ENDED_RESUME)
            state = recorder.state
            await recorder.stop(self.store)
            return state, observer.pause_cause

        self.assertEqual(asyncio.run(scenario()), (RecordingState.PAUSED, None))


class BackgroundTests(LifecycleTestCase):
    def test_background_keeps_recording_by_default(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            self.observe(recorder)
            await recorder.start()
            await self.channel.publish(BACKGROUND)
            state = recorder.state
            await self.channel.publish(FOREGROUND)
            await recorder.stop(self.store)
            return state

        self.assertIs(asyncio.run(scenario()), RecordingState.RECORDING)
        self.assertIn("keep_alive", self.audio.calls)

    def test_pause_on_background_resumes_on_foreground(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            self.observe(recorder, pause_on_background=True)
            await recorder.start()
            await self.channel.publish(BACKGROUND)
            backgrounded = recorder.state
            await self.channel.publish(FOREGROUND)
            foregrounded = recorder.state
            await recorder.stop(self.store)
            return backgrounded, foregrounded

        self.assertEqual(
            asyncio.run(scenario()), (RecordingState.PAUSED, RecordingState.RECORDING)
        )

    def test_foreground_does_not_resume_an_interruption_pause(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            self.observe(recorder, pause_on_background=True)
            await recorder.start()
            await self.channel.publish(BEGAN)
            await self.channel.publish(FOREGROUND)
            state = recorder.state
            await recorder.stop(self.store)
            return state

        self.assertIs(asyncio.run(scenario()), RecordingState.PAUSED)


class TerminationTests(LifecycleTestCase):
    def test_terminate_finalizes_and_persists(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            self.observe(recorder)
            await recorder.start()
            self.channel.terminate()
            return recorder.state

        self.assertIs(asyncio.run(scenario()), RecordingState.STOPPED)
        self.assertEqual(len(self.store.records), 1)
        self.assertEqual(self.surface.dismissed, [0.0])

    def test_published_terminate_event_is_delivered_synchronously(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            self.observe(recorder)
            await recorder.start()
            await self.channel.publish(LifecycleEvent(type=LifecycleEventType.WILL_TERMINATE))
            return recorder.state

        self.assertIs(asyncio.run(scenario()), RecordingState.STOPPED)
        self.assertEqual(len(self.store.records), 1)

    def test_cancelled_subscription_receives_nothing(self) -> None:
        async def scenario():
            recorder = self.make_recorder()
            _, subscription = self.observe(recorder)
            subscription.cancel()
            await recorder.start()
            await self.channel.publish(BEGAN)
            self.channel.terminate()
            state = recorder.state
            await recorder.stop(self.store)
            return state

        self.assertIs(asyncio.run(scenario()), RecordingState.RECORDING)


if __name__ == "__main__":
    unittest.main()
