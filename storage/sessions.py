"""Record store for interview sessions."""
from __future__ import annotations

import datetime as dt
import json
import sqlite3
import uuid
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from interview_session.errors import StorageError
from interview_session.models import Answer, SessionRecord

from .sqlite import get_conn

DEFAULT_ROLE = "General Interview"


class SessionUpdate(BaseModel):  # Fields written once when an interview completes
    questions: List[Answer] = Field(default_factory=list)
    audio_urls: Dict[str, str] = Field(default_factory=dict)
    total_score: Optional[float] = None
    average_score: Optional[float] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    completed_at: Optional[dt.datetime] = None


class HistoryFilters(BaseModel):  # Filters offered by the session history view
    search: str = ""
    role: str = ""
    industry: str = ""
    min_score: float = 0.0
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None


class SessionStore(Protocol):  # Record store consumed by the session persister
    def create_session(self, user_id: str, target_role: str = DEFAULT_ROLE, industry: str = "") -> SessionRecord: ...

    def update_session(self, session_id: str, user_id: str, update: SessionUpdate) -> SessionRecord: ...

    def get_session(self, session_id: str, user_id: str) -> Optional[SessionRecord]: ...


def matches(record: SessionRecord, filters: HistoryFilters) -> bool:
    """Return True when ``record`` passes every non-empty filter."""

    if filters.search and filters.search.lower() not in record.target_role.lower():
        return False
    if filters.role and record.target_role != filters.role:
        return False
    if filters.industry and record.industry != filters.industry:
        return False
    if filters.min_score and (record.average_score or 0) < filters.min_score:
        return False
    created = record.created_at.date()
    if filters.date_from and created < filters.date_from:
        return False
    if filters.date_to and created > filters.date_to:
        return False
    return True


class SqliteSessionStore:  # SQLite-backed interview session records
    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path

    def create_session(self, user_id: str, target_role: str = DEFAULT_ROLE, industry: str = "") -> SessionRecord:
        now = _now()
        record = SessionRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            target_role=target_role or DEFAULT_ROLE,
            industry=industry or "",
            created_at=now,
            updated_at=now,
        )
        try:
            with get_conn(self._db_path) as conn:
                conn.execute(
                    """INSERT INTO interview_sessions
                       (id, user_id, target_role, industry, questions, audio_urls, created_at, updated_at)
                       VALUES (?, ?, ?, ?, '[]', '{}', ?, ?)""",
                    (
                        record.id,
                        record.user_id,
                        record.target_role,
                        record.industry,
                        now.isoformat(),
                        now.isoformat(),
                    ),
                )
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to create session: {exc}") from exc
        return record

    def update_session(self, session_id: str, user_id: str, update: SessionUpdate) -> SessionRecord:
        now = _now()
        try:
            with get_conn(self._db_path) as conn:
                cur = conn.execute(
                    """UPDATE interview_sessions
                       SET questions = ?, audio_urls = ?, total_score = ?, average_score = ?,
                           duration_minutes = ?, completed_at = ?, updated_at = ?
                       WHERE id = ? AND user_id = ?""",
                    (
                        json.dumps([answer.model_dump(mode="json") for answer in update.questions]),
                        json.dumps(update.audio_urls),
                        update.total_score,
                        update.average_score,
                        update.duration_minutes,
                        update.completed_at.isoformat() if update.completed_at else None,
                        now.isoformat(),
                        session_id,
                        user_id,
                    ),
                )
                if cur.rowcount == 0:
                    raise StorageError(f"Session {session_id} not found for user")
                row = _fetch(conn, session_id, user_id)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to update session: {exc}") from exc
        return _record_from_row(row)

    def get_session(self, session_id: str, user_id: str) -> Optional[SessionRecord]:
        try:
            with get_conn(self._db_path) as conn:
                row = _fetch(conn, session_id, user_id)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to load session: {exc}") from exc
        return _record_from_row(row) if row is not None else None

    def list_sessions(self, user_id: str, filters: Optional[HistoryFilters] = None) -> List[SessionRecord]:
        """Return the user's sessions, newest first."""

        try:
            with get_conn(self._db_path) as conn:
                rows = conn.execute(
                    "SELECT * FROM interview_sessions WHERE user_id = ? ORDER BY created_at DESC",
                    (user_id,),
                ).fetchall()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to list sessions: {exc}") from exc
        records = [_record_from_row(row) for row in rows]
        if filters is None:
            return records
        return [record for record in records if matches(record, filters)]

    def delete_session(self, session_id: str, user_id: str) -> bool:
        try:
            with get_conn(self._db_path) as conn:
                cur = conn.execute(
                    "DELETE FROM interview_sessions WHERE id = ? AND user_id = ?",
                    (session_id, user_id),
                )
                return cur.rowcount > 0
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to delete session: {exc}") from exc


def _fetch(conn: sqlite3.Connection, session_id: str, user_id: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM interview_sessions WHERE id = ? AND user_id = ?",
        (session_id, user_id),
    ).fetchone()


def _record_from_row(row: sqlite3.Row) -> SessionRecord:
    data: Dict[str, Any] = dict(row)
    data["questions"] = json.loads(data.get("questions") or "[]")
    data["audio_urls"] = json.loads(data.get("audio_urls") or "{}")
    return SessionRecord.model_validate(data)


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


__all__ = [
    "DEFAULT_ROLE",
    "HistoryFilters",
    "SessionStore",
    "SessionUpdate",
    "SqliteSessionStore",
    "matches",
]
