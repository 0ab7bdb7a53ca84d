"""Upload of answer recordings to the blob store."""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from interview_session.errors import StorageError
from storage.blobs import BlobStore

logger = logging.getLogger(__name__)

RECORDING_CONTENT_TYPE = "audio/wav"


def recording_key(user_id: str, session_id: str, question_id: str, unix_ms: int) -> str:
    """Object key for one recorded answer."""

    return f"{user_id}/{session_id}/q{question_id}_{unix_ms}.wav"


class RecordingUploader:
    def __init__(self, store: BlobStore, *, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock

    def upload(self, blob: bytes, *, user_id: str, session_id: Optional[str], question_id: str) -> str:
        """Store ``blob`` and return its reference; raises ``StorageError`` on any failure."""

        if not session_id:
            raise StorageError("Recording not saved: no session record to attach it to")
        if not blob:
            raise StorageError("Recording not saved: the recording is empty")
        key = recording_key(user_id, session_id, question_id, int(self._clock() * 1000))
        try:
            return self._store.put(key, blob, content_type=RECORDING_CONTENT_TYPE)
        except StorageError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("Recording upload failed key=%s: %s", key, exc)
            raise StorageError(f"Recording upload failed: {exc}") from exc


__all__ = ["RECORDING_CONTENT_TYPE", "RecordingUploader", "recording_key"]
