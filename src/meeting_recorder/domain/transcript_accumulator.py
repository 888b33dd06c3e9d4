"""Live transcript accumulation across recognizer restarts."""

import threading


class TranscriptAccumulator:
    """
    Collects streaming recognizer output for one recording session.

    A streaming recognizer reports cumulative partial results for the stream
    it is currently running, so each update replaces the previous partial.
    Restarting the recognizer (after a pause) begins a new stream whose
    partials start from scratch; closing a stream folds its last partial into
    the committed text so the new stream appends instead of overwriting.

    Recognizer callbacks may arrive on audio threads, so all state is guarded
    by a single lock. Updates received while no stream is open are dropped.
    """

    def __init__(self, enabled: bool = True):
        self._lock = threading.Lock()
        self._enabled = enabled
        self._committed: list[str] = []
        self._partial = ""
        self._accepting = False

    @property
    def text(self) -> str:
        with self._lock:
            return "".join(self._committed) + self._partial

    @property
    def is_accepting(self) -> bool:
        with self._lock:
            return self._accepting

    def open_stream(self) -> None:
        """Starts accepting partials for a new recognizer stream."""
        with self._lock:
            self._commit_locked()
            self._accepting = True

    def update(self, partial: str) -> bool:
        """
        Replaces the current stream's partial transcript.

        Returns:
            True if the update was applied.
        """
        with self._lock:
            if not self._enabled or not self._accepting:
                return False
            self._partial = partial
            return True

    def close_stream(self) -> None:
        """Commits the current partial and stops accepting updates."""
        with self._lock:
            self._commit_locked()
            self._accepting = False

    def _commit_locked(self) -> None:
        if self._partial:
            self._committed.append(self._partial)
        self._partial = ""
