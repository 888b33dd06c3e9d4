"""In-process lifecycle signals and the recorder's reaction to them."""

import threading
from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel

from meeting_recorder.infrastructure.interfaces import RecordStore
from meeting_recorder.logging import setup_logging

from .models import PauseCause, RecordingState
from .recorder import LiveRecorder

logger = setup_logging()


class LifecycleEventType(str, Enum):
    DID_ENTER_BACKGROUND = "did_enter_background"
    WILL_ENTER_FOREGROUND = "will_enter_foreground"
    WILL_TERMINATE = "will_terminate"
    INTERRUPTION_BEGAN = "interruption_began"
    INTERRUPTION_ENDED = "interruption_ended"


class LifecycleEvent(BaseModel, frozen=True):
    type: LifecycleEventType
    should_resume: bool = False


class LifecycleSubscriber(ABC):
    """Receiver of lifecycle events."""

    @abstractmethod
    async def on_event(self, event: LifecycleEvent) -> None:
        """Handles a non-terminal lifecycle event."""

    @abstractmethod
    def on_termination(self) -> None:
        """Handles process termination; must not await anything."""


class Subscription:
    """Handle returned by ``LifecycleChannel.subscribe``."""

    def __init__(self, channel: "LifecycleChannel", subscriber: LifecycleSubscriber):
        self._channel = channel
        self._subscriber = subscriber

    def cancel(self) -> None:
        self._channel._remove(self._subscriber)


class LifecycleChannel:
    """
    Fan-out of process lifecycle events to subscribers.

    ``terminate`` is synchronous so it can be called from a signal handler;
    every other event is delivered with ``publish``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: list[LifecycleSubscriber] = []

    def subscribe(self, subscriber: LifecycleSubscriber) -> Subscription:
        with self._lock:
            self._subscribers.append(subscriber)
        return Subscription(self, subscriber)

    async def publish(self, event: LifecycleEvent) -> None:
        if event.type is LifecycleEventType.WILL_TERMINATE:
            self.terminate()
            return
        for subscriber in self._snapshot():
            try:
                await subscriber.on_event(event)
            except Exception:
                logger.exception(
                    "Lifecycle subscriber failed",
                    extra={"event": event.type.value},
                )

    def terminate(self) -> None:
        logger.info("Delivering termination to lifecycle subscribers")
        for subscriber in self._snapshot():
            try:
                subscriber.on_termination()
            except Exception:
                logger.exception("Lifecycle subscriber failed on termination")

    def _snapshot(self) -> list[LifecycleSubscriber]:
        with self._lock:
            return list(self._subscribers)

    def _remove(self, subscriber: LifecycleSubscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)


class RecorderLifecycleObserver(LifecycleSubscriber):
    """
    Applies lifecycle events to a live recorder.

    Automatic pauses remember their cause and the recorder's transition count
    at the moment of pausing. A matching "resume" event only resumes when the
    cause matches and no other transition happened in between, so a manual
    pause or resume is never overridden.
    """

    def __init__(
        self,
        recorder: LiveRecorder,
        store: RecordStore | None,
        pause_on_background: bool = False,
    ):
        self._recorder = recorder
        self._store = store
        self._pause_on_background = pause_on_background
        self._pause_cause: PauseCause | None = None
        self._paused_at_transition: int | None = None

    @property
    def pause_cause(self) -> PauseCause | None:
        return self._pause_cause

    async def on_event(self, event: LifecycleEvent) -> None:
        if event.type is LifecycleEventType.INTERRUPTION_BEGAN:
            await self._auto_pause(PauseCause.INTERRUPTION)
        elif event.type is LifecycleEventType.INTERRUPTION_ENDED:
            if event.should_resume:
                await self._auto_resume(PauseCause.INTERRUPTION)
            else:
                self._clear_pause_cause()
        elif event.type is LifecycleEventType.DID_ENTER_BACKGROUND:
            if self._pause_on_background:
                await self._auto_pause(PauseCause.BACKGROUND)
            else:
                self._recorder.keep_alive()
        elif event.type is LifecycleEventType.WILL_ENTER_FOREGROUND:
            if self._pause_on_background:
                await self._auto_resume(PauseCause.BACKGROUND)
            else:
                self._recorder.refresh()
        elif event.type is LifecycleEventType.WILL_TERMINATE:
            self.on_termination()

    def on_termination(self) -> None:
        self._recorder.emergency_finalize(self._store)

    async def _auto_pause(self, cause: PauseCause) -> None:
        if self._recorder.state is not RecordingState.RECORDING:
            return
        if await self._recorder.pause():
            self._pause_cause = cause
            self._paused_at_transition = self._recorder.transition_count
            logger.info("Recording paused automatically", extra={"cause": cause.value})

    async def _auto_resume(self, cause: PauseCause) -> None:
        matches = (
            self._pause_cause is cause
            and self._paused_at_transition == self._recorder.transition_count
            and self._recorder.state is RecordingState.PAUSED
        )
        self._clear_pause_cause()
        if not matches:
            logger.info("Automatic resume skipped", extra={"cause": cause.value})
            return
        await self._recorder.resume()
        logger.info("Recording resumed automatically", extra={"cause": cause.value})

    def _clear_pause_cause(self) -> None:
        self._pause_cause = None
        self._paused_at_transition = None
