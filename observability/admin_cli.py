"""Lightweight CLI helpers for inspecting stored interview sessions."""
from __future__ import annotations

import argparse
import sqlite3

from config.settings import settings


def tail_sessions(limit: int = 20, user_id: str | None = None) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        query = """
            SELECT created_at, id, user_id, target_role, industry, total_score, duration_minutes, completed_at
            FROM interview_sessions
        """
        params: tuple = ()
        if user_id:
            query += " WHERE user_id = ?"
            params = (user_id,)
        query += " ORDER BY created_at DESC LIMIT ?"
        cursor.execute(query, params + (limit,))
        for row in cursor.fetchall():
            ts, session_id, owner, role, industry, total, minutes, completed = row
            status = f"score={total} minutes={minutes}" if completed else "incomplete"
            print(f"[{ts}] {session_id} user={owner} role={role!r} industry={industry!r} {status}")
    finally:
        conn.close()


def show_session(session_id: str) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT target_role, questions, audio_urls, total_score, completed_at FROM interview_sessions WHERE id = ?",
            (session_id,),
        )
        row = cursor.fetchone()
        if row is None:
            print(f"session {session_id} not found")
            return
        role, questions, audio_urls, total, completed = row
        print(f"{session_id} role={role!r} score={total} completed_at={completed}")
        print(f"questions={questions}")
        print(f"audio_urls={audio_urls}")
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-sessions", type=int, help="Show the latest interview sessions")
    parser.add_argument("--user", help="Restrict --tail-sessions to one user id")
    parser.add_argument("--show", help="Print one stored session")
    args = parser.parse_args()

    if args.tail_sessions:
        tail_sessions(args.tail_sessions, args.user)
    if args.show:
        show_session(args.show)


if __name__ == "__main__":
    main()
