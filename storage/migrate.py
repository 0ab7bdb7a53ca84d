"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable, Optional

from config.settings import settings

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS interview_sessions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  target_role TEXT NOT NULL,
  industry TEXT NOT NULL DEFAULT '',
  questions TEXT NOT NULL DEFAULT '[]',
  audio_urls TEXT NOT NULL DEFAULT '{}',
  total_score REAL,
  average_score REAL,
  duration_minutes INTEGER,
  completed_at TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_interview_sessions_user
  ON interview_sessions (user_id, created_at);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    path = db_path or settings.DB_PATH
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
