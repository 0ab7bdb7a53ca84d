"""Answer capture for the current question: typed text and an optional voice recording."""
from __future__ import annotations

import io
import logging
import threading
import time
import wave
from typing import Callable, List, Literal, Optional, Protocol

from .errors import EmptyAnswerError, InvalidTransition, MicrophoneAccessDenied
from .models import FinalizedAnswer

logger = logging.getLogger(__name__)

RecorderState = Literal["idle", "recording", "stopped"]

_JOIN_TIMEOUT_S = 2.0


class AudioStream(Protocol):  # An open capture stream; close() releases the device
    sample_rate: int
    channels: int
    sample_width: int

    def read(self) -> bytes: ...

    def close(self) -> None: ...


class AudioSource(Protocol):  # Opens the capture device; raises MicrophoneAccessDenied when refused
    def open(self) -> AudioStream: ...


def encode_wav(frames: List[bytes], *, sample_rate: int, channels: int, sample_width: int) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(b"".join(frames))
    return buffer.getvalue()


class AnswerRecorder:
    """Holds the in-progress answer for one question.

    State machine: ``idle -> recording -> stopped``. The device stream is owned only
    while recording and is closed on stop, abort, re-arm and finalize.
    """

    def __init__(self, source: Optional[AudioSource] = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._source = source
        self._clock = clock
        self._lock = threading.Lock()
        self._state: RecorderState = "idle"
        self._text = ""
        self._blob: Optional[bytes] = None
        self._chunks: List[bytes] = []
        self._stream: Optional[AudioStream] = None
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._recording_started: Optional[float] = None
        self._recording_seconds = 0.0
        self._armed_at = clock()

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def current_text(self) -> str:
        return self._text

    @current_text.setter
    def current_text(self, value: str) -> None:
        self._text = value or ""

    @property
    def has_recording(self) -> bool:
        return self._blob is not None

    @property
    def recording_seconds(self) -> float:
        if self._state == "recording" and self._recording_started is not None:
            return max(0.0, self._clock() - self._recording_started)
        return self._recording_seconds

    def arm(self) -> None:
        """Reset for a newly displayed question."""

        self.abort()
        self._text = ""
        self._blob = None
        self._recording_seconds = 0.0
        self._state = "idle"
        self._armed_at = self._clock()

    def start_recording(self) -> None:
        with self._lock:
            if self._state == "recording":
                raise InvalidTransition("Already recording")
            if self._source is None:
                raise MicrophoneAccessDenied("No microphone is available")
            try:
                stream = self._source.open()
            except MicrophoneAccessDenied:
                raise
            except Exception as exc:  # noqa: BLE001
                raise MicrophoneAccessDenied(f"Microphone access denied: {exc}") from exc

            self._chunks = []
            self._blob = None
            self._stream = stream
            self._stop = threading.Event()
            self._thread = threading.Thread(target=self._capture, args=(stream, self._stop), daemon=True)
            self._recording_started = self._clock()
            self._state = "recording"
            self._thread.start()
        logger.info("Recording started")

    def stop_recording(self) -> bytes:
        with self._lock:
            if self._state != "recording":
                raise InvalidTransition("Not recording")
            stream = self._stream
            self._release()
            self._recording_seconds = self._elapsed_since(self._recording_started)
            self._recording_started = None
            self._blob = encode_wav(
                self._chunks,
                sample_rate=stream.sample_rate,
                channels=stream.channels,
                sample_width=stream.sample_width,
            )
            self._chunks = []
            self._state = "stopped"
        logger.info("Recording stopped seconds=%.1f bytes=%d", self._recording_seconds, len(self._blob))
        return self._blob

    def abort(self) -> None:
        """Drop an in-progress recording and release the device."""

        with self._lock:
            if self._state != "recording":
                return
            self._release()
            self._chunks = []
            self._recording_started = None
            self._state = "idle"
        logger.info("Recording aborted")

    def attach_recording(self, blob: bytes, *, seconds: float = 0.0) -> None:
        """Accept a recording captured outside this process."""

        if self._state == "recording":
            raise InvalidTransition("Stop the current recording first")
        self._blob = bytes(blob)
        self._recording_seconds = max(0.0, seconds)
        self._state = "stopped"

    def discard_recording(self) -> None:
        self.abort()
        self._blob = None
        self._recording_seconds = 0.0
        self._state = "idle"

    def finalize(self) -> FinalizedAnswer:
        """Return the answer payload without clearing it, so a failed submit can be retried."""

        if self._state == "recording":
            self.stop_recording()
        if not self._text.strip() and not self._blob:
            raise EmptyAnswerError()
        return FinalizedAnswer(
            text=self._text,
            audio_blob=self._blob,
            elapsed_seconds=self._elapsed_since(self._armed_at),
        )

    def _capture(self, stream: AudioStream, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                chunk = stream.read()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Audio capture stopped early: %s", exc)
                return
            if chunk:
                self._chunks.append(chunk)

    def _release(self) -> None:
        stream, stop, thread = self._stream, self._stop, self._thread
        self._stream, self._stop, self._thread = None, None, None
        try:
            if stop is not None:
                stop.set()
            if thread is not None:
                thread.join(timeout=_JOIN_TIMEOUT_S)
        finally:
            if stream is not None:
                stream.close()

    def _elapsed_since(self, start: Optional[float]) -> float:
        if start is None:
            return 0.0
        return max(0.0, self._clock() - start)


__all__ = ["AnswerRecorder", "AudioSource", "AudioStream", "RecorderState", "encode_wav"]
