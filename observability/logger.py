"""Structured logging of interview session events."""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/interview.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

_HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
_HUMAN_KEYS = ("user_id", "stage", "question_id", "question_index", "payload_kind", "ms", "outcome", "error")

_logger = logging.getLogger("interview")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False


def _human_formatter() -> logging.Formatter:
    return logging.Formatter(_HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def _ensure_handlers() -> None:
    if _logger.handlers:
        return

    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(LOG_LEVEL)
    console.setFormatter(_human_formatter())
    console.addFilter(lambda record: getattr(record, "is_json", False) is not True)
    _logger.addHandler(console)

    if not ENABLE_FILE_LOGS:
        return

    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    # One JSON object per line for machine consumption
    json_file = logging.handlers.RotatingFileHandler(LOG_FILE, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    json_file.setLevel(LOG_LEVEL)
    json_file.setFormatter(logging.Formatter("%(message)s"))
    json_file.addFilter(lambda record: getattr(record, "is_json", False) is True)
    _logger.addHandler(json_file)

    base, _ = os.path.splitext(LOG_FILE)
    human_file = logging.handlers.RotatingFileHandler(
        f"{base}-human.log", maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT
    )
    human_file.setLevel(LOG_LEVEL)
    human_file.setFormatter(_human_formatter())
    human_file.addFilter(lambda record: getattr(record, "is_json", False) is not True)
    _logger.addHandler(human_file)


def _format_human(evt: dict[str, Any]) -> str:
    base = f"session={evt.get('session_id')} kind={evt.get('kind')}"
    extras = [f"{key}={evt[key]}" for key in _HUMAN_KEYS if evt.get(key) is not None]
    return base + (" " + " ".join(extras) if extras else "")


def _emit(msg: str, level: int, *, is_json: bool) -> None:
    if not _logger.isEnabledFor(level):
        return
    record = _logger.makeRecord(
        name=_logger.name,
        level=level,
        fn="",
        lno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.is_json = is_json  # type: ignore[attr-defined]
    _logger.handle(record)


def log_event(kind: str, session_id: Optional[str], *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one session event as a human line and, when file logs are on, a JSON line."""

    _ensure_handlers()

    payload: dict[str, Any] = {
        "ts": time.time(),
        "trace": str(uuid.uuid4()),
        "kind": kind,
        "session_id": session_id,
    }
    payload.update(fields)

    _emit(_format_human(payload), level, is_json=False)
    if ENABLE_FILE_LOGS:
        _emit(json.dumps(payload, ensure_ascii=False, default=str), level, is_json=True)


__all__ = ["log_event"]
