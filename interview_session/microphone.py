"""PyAudio-backed microphone for local recording."""
from __future__ import annotations

import logging
from typing import Any, Optional

from .errors import MicrophoneAccessDenied

logger = logging.getLogger(__name__)


class PyAudioStream:
    def __init__(self, pa: Any, stream: Any, *, sample_rate: int, channels: int, sample_width: int, frames: int) -> None:
        self._pa = pa
        self._stream = stream
        self._frames = frames
        self._closed = False
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width

    def read(self) -> bytes:
        return self._stream.read(self._frames, exception_on_overflow=False)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.stop_stream()
            self._stream.close()
        finally:
            self._pa.terminate()
        logger.info("Audio stream closed")


class PyAudioMicrophone:
    """Opens a 16-bit PCM input stream on the default (or given) device."""

    def __init__(
        self,
        *,
        rate: int = 16000,
        channels: int = 1,
        frames_per_buffer: int = 1024,
        device_index: Optional[int] = None,
    ) -> None:
        self._rate = rate
        self._channels = channels
        self._frames = frames_per_buffer
        self._device_index = device_index

    def open(self) -> PyAudioStream:
        try:
            import pyaudio
        except ImportError as exc:
            raise MicrophoneAccessDenied("Microphone unavailable: PyAudio is not installed") from exc

        pa = pyaudio.PyAudio()
        try:
            stream = pa.open(
                format=pyaudio.paInt16,
                channels=self._channels,
                rate=self._rate,
                input=True,
                input_device_index=self._device_index,
                frames_per_buffer=self._frames,
            )
        except Exception as exc:  # noqa: BLE001
            pa.terminate()
            logger.warning("Failed to open input device %s: %s", self._device_index, exc)
            raise MicrophoneAccessDenied(f"Microphone access denied: {exc}") from exc
        logger.info("Opened input device %s at %d Hz", self._device_index, self._rate)
        return PyAudioStream(
            pa,
            stream,
            sample_rate=self._rate,
            channels=self._channels,
            sample_width=pa.get_sample_size(pyaudio.paInt16),
            frames=self._frames,
        )


__all__ = ["PyAudioMicrophone", "PyAudioStream"]
