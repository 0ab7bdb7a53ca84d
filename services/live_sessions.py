"""In-process registry of interview controllers served over HTTP."""
from __future__ import annotations

import threading
from typing import Dict, Optional

from interview_session.controller import InterviewController

_LIVE: Dict[str, InterviewController] = {}
_GUARD = threading.Lock()


def register(controller: InterviewController) -> InterviewController:
    with _GUARD:
        _LIVE[controller.id] = controller
    return controller


def get(interview_key: str) -> Optional[InterviewController]:
    with _GUARD:
        return _LIVE.get(interview_key)


def discard(interview_key: str) -> Optional[InterviewController]:
    with _GUARD:
        return _LIVE.pop(interview_key, None)


def clear() -> None:
    with _GUARD:
        _LIVE.clear()


__all__ = ["register", "get", "discard", "clear"]
