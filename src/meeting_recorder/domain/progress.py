"""Periodic live progress reporting to an external surface."""

import asyncio
from collections.abc import Callable

from meeting_recorder.infrastructure.interfaces import PresentationSurface
from meeting_recorder.logging import setup_logging

from .models import ProgressSnapshot

logger = setup_logging()

TickCallback = Callable[[float], ProgressSnapshot | None]


class LiveProgressReporter:
    """
    Pushes recording snapshots to a presentation surface on a fixed tick.

    Published durations never go backwards and consecutive identical
    snapshots are published once. After ``finish`` the surface handle is
    released and further publishes are ignored.
    """

    def __init__(
        self,
        surface: PresentationSurface,
        interval: float = 0.5,
        grace_seconds: float = 3.0,
    ):
        self._surface: PresentationSurface | None = surface
        self._interval = interval
        self._grace_seconds = grace_seconds
        self._task: asyncio.Task | None = None
        self._last: ProgressSnapshot | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_ticking(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_snapshot(self) -> ProgressSnapshot | None:
        return self._last

    def start(self, on_tick: TickCallback) -> None:
        """Starts the tick loop on the running event loop."""
        if self.is_ticking:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(on_tick))
        self._task.add_done_callback(self._on_loop_done)

    def suspend(self) -> None:
        """Stops the tick loop; safe to call from synchronous code."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def publish(self, snapshot: ProgressSnapshot) -> None:
        if self._surface is None:
            return
        if self._last is not None:
            if snapshot.duration < self._last.duration:
                logger.warning(
                    "Dropped non-monotonic progress snapshot",
                    extra={
                        "duration": snapshot.duration,
                        "last_duration": self._last.duration,
                    },
                )
                return
            if snapshot == self._last:
                return
        self._last = snapshot
        try:
            self._surface.publish(snapshot)
        except Exception:
            logger.exception("Progress surface publish failed")

    def finish(self, snapshot: ProgressSnapshot, grace: float | None = None) -> None:
        """Publishes the terminal snapshot, requests dismissal and releases the surface."""
        self.suspend()
        self.publish(snapshot)
        surface = self._surface
        self._surface = None
        if surface is None:
            return
        after = self._grace_seconds if grace is None else grace
        try:
            surface.dismiss(after)
        except Exception:
            logger.exception("Progress surface dismissal failed")

    def _on_loop_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Progress tick loop failed", exc_info=exc)

    async def _run(self, on_tick: TickCallback) -> None:
        while True:
            await asyncio.sleep(self._interval)
            snapshot = on_tick(self._interval)
            if snapshot is not None:
                self.publish(snapshot)
