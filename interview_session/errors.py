"""Error taxonomy for interview sessions."""
from __future__ import annotations

from typing import Optional


class InterviewError(RuntimeError):  # Base interview error
    pass


class TurnError(InterviewError):  # Failure that aborts the current turn only
    pass


class TransportError(TurnError):
    """The turn request never produced a usable HTTP response."""


class ProtocolError(TurnError):
    """The response body violates the turn contract."""


class RemoteError(TurnError):
    """The interview service reported an application-level failure."""

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None) -> None:
        self.code = code or "UNKNOWN"
        self.status = status
        self.remote_message = message
        super().__init__(message)


class EmptyAnswerError(InterviewError):
    """Neither answer text nor a recording was provided."""

    def __init__(self, message: str = "Please provide an answer or recording") -> None:
        super().__init__(message)


class StorageError(InterviewError):
    """A recording upload or session record write failed."""


class MicrophoneAccessDenied(InterviewError):
    """The audio device could not be opened for recording."""

    def __init__(self, message: str = "Microphone access denied") -> None:
        super().__init__(message)


class TurnInFlightError(InterviewError):
    """A submission was attempted while another turn is still pending."""

    def __init__(self, message: str = "An answer is already being submitted") -> None:
        super().__init__(message)


class InvalidTransition(InterviewError):
    """The requested operation is not allowed in the current stage."""


def describe(exc: BaseException) -> str:
    """Human-readable failure reason for display next to a retry affordance."""

    if isinstance(exc, RemoteError):
        return exc.remote_message or f"Interview service error: {exc.code}"
    text = str(exc).strip()
    return text or exc.__class__.__name__


__all__ = [
    "InterviewError",
    "TurnError",
    "TransportError",
    "ProtocolError",
    "RemoteError",
    "EmptyAnswerError",
    "StorageError",
    "MicrophoneAccessDenied",
    "TurnInFlightError",
    "InvalidTransition",
    "describe",
]
