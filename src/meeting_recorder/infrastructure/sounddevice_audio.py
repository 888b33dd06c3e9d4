"""Microphone capture to WAV via sounddevice and soundfile."""

import asyncio
import threading
from collections.abc import Callable
from pathlib import Path

import numpy as np
import soundfile as sf

from meeting_recorder.logging import setup_logging

from .interfaces import AudioSession, PermissionGate

logger = setup_logging()

SampleListener = Callable[[np.ndarray], None]


class SoundDeviceAudioSession(AudioSession):
    """
    Records the default (or given) input device into a PCM WAV file.

    The input stream keeps running while paused and incoming blocks are
    dropped, so resuming is immediate. Listeners receive every block that is
    written, e.g. a streaming recognizer tapping the live audio.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        subtype: str = "PCM_16",
        device: int | str | None = None,
    ):
        self._sample_rate = sample_rate
        self._channels = channels
        self._subtype = subtype
        self._device = device
        self._lock = threading.Lock()
        self._listeners: list[SampleListener] = []
        self._stream = None
        self._sndfile: sf.SoundFile | None = None
        self._paused = False

    def add_listener(self, listener: SampleListener) -> None:
        self._listeners.append(listener)

    def open(self, path: Path) -> None:
        # Requires PortAudio; loaded on first use.
        import sounddevice as sd

        self._sndfile = sf.SoundFile(
            path,
            mode="w",
            samplerate=self._sample_rate,
            channels=self._channels,
            subtype=self._subtype,
        )
        try:
            self._stream = sd.InputStream(
                samplerate=self._sample_rate,
                channels=self._channels,
                dtype="float32",
                callback=self._on_audio,
                blocksize=0,
                device=self._device,
            )
            self._stream.start()
        except Exception:
            self._stream = None
            self._close_file()
            raise
        self._paused = False
        logger.info(
            "Audio capture opened",
            extra={"audio_file": str(path), "sample_rate": self._sample_rate},
        )

    def pause(self) -> None:
        with self._lock:
            self._paused = True

    def resume(self) -> None:
        with self._lock:
            self._paused = False
        self.keep_alive()

    def finalize(self) -> None:
        try:
            if self._stream is not None:
                self._stream.stop()
                self._stream.close()
        finally:
            self._stream = None
            self._close_file()

    def keep_alive(self) -> None:
        if self._stream is not None and not self._stream.active:
            self._stream.start()
            logger.info("Audio capture reactivated")

    def _on_audio(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning("Audio input status", extra={"status": str(status)})
        with self._lock:
            if self._paused or self._sndfile is None:
                return
            self._sndfile.write(indata)
        for listener in self._listeners:
            try:
                listener(indata)
            except Exception:
                logger.exception("Audio listener failed")

    def _close_file(self) -> None:
        with self._lock:
            if self._sndfile is not None:
                self._sndfile.flush()
                self._sndfile.close()
                self._sndfile = None


class DevicePermissionGate(PermissionGate):
    """Grants the microphone when an input device exists; recognition when configured."""

    def __init__(self, device: int | str | None = None, recognition_enabled: bool = True):
        self._device = device
        self._recognition_enabled = recognition_enabled

    async def request_microphone(self) -> bool:
        return await asyncio.to_thread(self._has_input_device)

    async def request_speech_recognition(self) -> bool:
        return self._recognition_enabled

    def _has_input_device(self) -> bool:
        try:
            import sounddevice as sd

            info = sd.query_devices(self._device, kind="input")
        except Exception:
            logger.exception("No usable input device")
            return False
        return int(info.get("max_input_channels", 0)) > 0
