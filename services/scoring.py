"""Session-level score aggregation."""
from __future__ import annotations

import math
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from config.settings import settings
from interview_session.models import Answer, FeedbackTurn, SessionScores


def _round1(value: float) -> float:
    """Round a float to one decimal place with stable formatting."""
    return float(f"{value:.1f}")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative input."""
    return int(math.floor(value + 0.5))


def display_score(raw: Optional[float], scale: Optional[float] = None) -> float:
    """Map a 0..10 service score onto the 0..100 display range; missing scores read as 0."""

    if raw is None:
        return 0.0
    factor = settings.SCORE_SCALE if scale is None else scale
    return _round1(raw * factor)


def estimate_duration(
    answered: int,
    started_at: Optional[datetime],
    completed_at: Optional[datetime],
    minutes_per_answer: Optional[float] = None,
) -> Tuple[int, bool]:
    """Return ``(minutes, estimated)``.

    The wall-clock span wins when both timestamps exist and it rounds to at least one
    minute. Otherwise the result is an approximation of ``minutes_per_answer`` per
    answered question (never below one minute) and ``estimated`` is True.
    """

    if started_at is not None and completed_at is not None:
        measured = round_half_up((completed_at - started_at).total_seconds() / 60.0)
        if measured > 0:
            return measured, False
    per_answer = settings.MINUTES_PER_ANSWER_ESTIMATE if minutes_per_answer is None else minutes_per_answer
    return max(1, round_half_up(answered * per_answer)), True


def aggregate(
    answers: Sequence[Answer],
    terminal: Optional[FeedbackTurn],
    *,
    started_at: Optional[datetime] = None,
    completed_at: Optional[datetime] = None,
    scale: Optional[float] = None,
    minutes_per_answer: Optional[float] = None,
) -> SessionScores:
    """Fold the terminal feedback and accumulated answers into session scores."""

    overall = display_score(terminal.overall if terminal else None, scale) if answers else 0.0
    per_answer: List[Optional[float]] = [
        display_score(answer.feedback.score, scale) if answer.feedback is not None else None for answer in answers
    ]
    scored = [value for value in per_answer if value is not None]
    average = _round1(sum(scored) / len(scored)) if scored else overall
    minutes, estimated = estimate_duration(len(answers), started_at, completed_at, minutes_per_answer)
    return SessionScores(
        overall=overall,
        per_answer=per_answer,
        average=average,
        estimated_duration_minutes=minutes,
        duration_estimated=estimated,
    )


__all__ = [
    "aggregate",
    "display_score",
    "estimate_duration",
    "round_half_up",
]
