"""Durable session records: creation at start, write-back at completion."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from interview_session.models import Answer, SessionRecord, SessionScores
from observability import log_event
from storage.sessions import DEFAULT_ROLE, SessionStore, SessionUpdate

from .scoring import round_half_up

logger = logging.getLogger(__name__)


class SessionPersister:
    """Creates and completes interview session records in a ``SessionStore``."""

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def create(self, user_id: str, target_role: str, industry: str) -> SessionRecord:
        """Insert an empty session so a stable id exists even if the interview is abandoned."""

        record = self._store.create_session(user_id, target_role or DEFAULT_ROLE, industry or "")
        log_event("session_created", record.id, user_id=user_id)
        return record

    def finalize(
        self,
        session_id: Optional[str],
        answers: Sequence[Answer],
        audio_refs: Dict[str, str],
        scores: SessionScores,
        duration_minutes: int,
        *,
        user_id: str,
        target_role: str = DEFAULT_ROLE,
        industry: str = "",
        completed_at: Optional[datetime] = None,
    ) -> SessionRecord:
        """Write the completed interview in one update and return the stored record.

        When no session exists yet (creation at start failed) one is created first.
        Any store failure propagates as ``StorageError``.
        """

        if not session_id:
            record = self.create(user_id, target_role, industry)
            session_id = record.id
            logger.info("Session created on completion id=%s", session_id)

        update = SessionUpdate(
            questions=list(answers),
            audio_urls=dict(audio_refs),
            total_score=round_half_up(scores.overall),
            average_score=round_half_up(scores.average),
            duration_minutes=duration_minutes,
            completed_at=completed_at or datetime.now(timezone.utc),
        )
        stored = self._store.update_session(session_id, user_id, update)
        log_event(
            "session_persisted",
            stored.id,
            user_id=user_id,
            outcome=f"answers={len(stored.questions)} total={stored.total_score}",
        )
        return stored


__all__ = ["SessionPersister"]
