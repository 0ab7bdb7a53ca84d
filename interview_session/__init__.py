"""Interview session core: turn models, error taxonomy, recorder and controller.

Import the recorder and controller from their modules; this package namespace only
re-exports the leaf modules that the services and storage layers depend on.
"""
from .errors import (
    EmptyAnswerError,
    InterviewError,
    InvalidTransition,
    MicrophoneAccessDenied,
    ProtocolError,
    RemoteError,
    StorageError,
    TransportError,
    TurnError,
    TurnInFlightError,
)
from .models import (
    Answer,
    FeedbackTurn,
    InterviewMeta,
    InterviewSetup,
    QuestionTurn,
    SessionRecord,
    SessionScores,
    SessionState,
    TurnResponse,
)

__all__ = [
    "Answer",
    "EmptyAnswerError",
    "FeedbackTurn",
    "InterviewError",
    "InterviewMeta",
    "InterviewSetup",
    "InvalidTransition",
    "MicrophoneAccessDenied",
    "ProtocolError",
    "QuestionTurn",
    "RemoteError",
    "SessionRecord",
    "SessionScores",
    "SessionState",
    "StorageError",
    "TransportError",
    "TurnError",
    "TurnInFlightError",
    "TurnResponse",
]
