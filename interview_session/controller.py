"""Client-side state machine for one mock interview."""
from __future__ import annotations

import hashlib
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Tuple

from config.settings import settings
from observability import log_event, span
from services.recordings import RecordingUploader
from services.scoring import aggregate, round_half_up
from services.sessions import SessionPersister

from .errors import (
    InvalidTransition,
    ProtocolError,
    StorageError,
    TurnError,
    TurnInFlightError,
    describe,
)
from .models import (
    Answer,
    AnswerFeedback,
    Difficulty,
    FeedbackTurn,
    InterviewMeta,
    InterviewSetup,
    QuestionTurn,
    SessionRecord,
    SessionScores,
    SessionState,
    Stage,
    TurnResponse,
)
from .recorder import AnswerRecorder

logger = logging.getLogger(__name__)

# Sent in place of answer text when the candidate only recorded audio.
VOICE_ONLY_MESSAGE = "[Voice answer recorded]"


class TurnSender(Protocol):
    def send_turn(
        self,
        answer_text: str,
        meta: InterviewMeta,
        state: Optional[SessionState],
        *,
        credential: str,
    ) -> TurnResponse: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InterviewController:
    """Owns ``stage``, ``session_state`` and ``current_turn`` for one interview.

    Stages run ``setup -> active -> completed``; ``abandoned`` absorbs from any stage
    before completion. Only this class interprets the payload kind of a turn response.
    A failed turn leaves every field untouched apart from ``last_error``.
    """

    def __init__(
        self,
        *,
        user_id: str,
        turn_client: TurnSender,
        persister: SessionPersister,
        uploader: Optional[RecordingUploader] = None,
        recorder: Optional[AnswerRecorder] = None,
        questions_target: Optional[int] = None,
        difficulty: Optional[Difficulty] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.user_id = user_id
        self.recorder = recorder or AnswerRecorder()
        self._turn_client = turn_client
        self._persister = persister
        self._uploader = uploader
        self._questions_target = questions_target or settings.QUESTIONS_TARGET
        self._difficulty: Difficulty = difficulty or settings.DEFAULT_DIFFICULTY
        self._clock = clock

        self.stage: Stage = "setup"
        self.session_state: Optional[SessionState] = None
        self.current_turn: Optional[TurnResponse] = None

        self.setup: Optional[InterviewSetup] = None
        self.meta: Optional[InterviewMeta] = None
        self.session_id: Optional[str] = None
        self.started_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None

        self.answers: List[Answer] = []
        self.audio_refs: Dict[str, str] = {}
        self.scores: Optional[SessionScores] = None
        self.record: Optional[SessionRecord] = None

        self.hint_visible = False
        self.notices: List[str] = []
        self.last_error: Optional[str] = None
        self.events: List[Dict[str, Any]] = []

        self._turn_lock = threading.Lock()
        self._pending = False
        self._turn_seq = 0
        self._uploaded: Optional[Tuple[str, str, str]] = None

    # ------------------------------------------------------------------ views

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def can_submit(self) -> bool:
        return self.stage == "active" and not self._pending

    @property
    def current_question(self) -> Optional[QuestionTurn]:
        if self.current_turn is not None and isinstance(self.current_turn.payload, QuestionTurn):
            return self.current_turn.payload
        return None

    @property
    def feedback(self) -> Optional[FeedbackTurn]:
        if self.current_turn is not None and isinstance(self.current_turn.payload, FeedbackTurn):
            return self.current_turn.payload
        return None

    @property
    def progress(self) -> float:
        """Percent complete as reported by the service's own question counters."""

        if self.session_state is None:
            return 100.0 if self.stage == "completed" else 0.0
        return (self.session_state.question_index + 1) / self.session_state.total_questions * 100

    @property
    def display_score(self) -> int:
        if self.scores is None:
            return 0
        return round_half_up(self.scores.overall)

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    def reveal_hint(self) -> Optional[str]:
        question = self.current_question
        if question is None:
            return None
        self.hint_visible = True
        return question.helper_hint

    # ------------------------------------------------------------ transitions

    def start(self, setup: InterviewSetup, *, credential: str) -> Optional[TurnResponse]:
        """Create the session record (best effort) and request the opening question.

        Returns None when the controller was abandoned while the call was in flight.
        """

        if self.stage != "setup":
            raise InvalidTransition(f"Cannot start an interview that is {self.stage}")
        with self._in_flight():
            meta = setup.to_meta(questions_target=self._questions_target, difficulty=self._difficulty)
            self.setup = setup
            if self.session_id is None:
                self._create_record(setup)
            if self.started_at is None:
                self.started_at = self._clock()

            seq = self._next_seq()
            response = self._send("", meta, None, credential=credential)
            if not self._is_current(seq):
                log_event("turn_discarded", self.session_id, user_id=self.user_id, stage=self.stage)
                return None
            self.meta = meta
            self._apply(response, None)
            return response

    def submit_answer(self, *, credential: str) -> Optional[TurnResponse]:
        """Send the recorder's answer and apply the next turn.

        ``EmptyAnswerError`` is raised before any network call. Turn errors propagate
        after being recorded in ``last_error``; the question, state and answers stay as
        they were and the typed text remains in the recorder.
        """

        if self.stage != "active":
            raise InvalidTransition(f"Cannot submit an answer while the interview is {self.stage}")
        with self._in_flight():
            question = self.current_question
            if question is None or self.meta is None:
                raise InvalidTransition("No question is being displayed")
            finalized = self.recorder.finalize()

            audio_ref = None
            if finalized.audio_blob:
                audio_ref = self._upload(finalized.audio_blob, question.question_id)
            message = finalized.text if finalized.text.strip() else VOICE_ONLY_MESSAGE

            seq = self._next_seq()
            response = self._send(message, self.meta, self.session_state, credential=credential)
            if not self._is_current(seq):
                log_event("turn_discarded", self.session_id, user_id=self.user_id, stage=self.stage)
                return None
            answer = Answer(
                question_id=question.question_id,
                question_text=question.question,
                answer_text=finalized.text,
                audio_reference=audio_ref,
                time_spent_seconds=finalized.elapsed_seconds,
            )
            self._apply(response, answer)
            return response

    def abandon(self) -> None:
        """Leave the interview; a late turn response will be discarded."""

        if self.stage in ("completed", "abandoned"):
            return
        self.stage = "abandoned"
        self.session_state = None
        self.recorder.abort()
        log_event("session_abandoned", self.session_id, user_id=self.user_id, outcome=f"answers={len(self.answers)}")

    # --------------------------------------------------------------- internals

    @contextmanager
    def _in_flight(self) -> Iterator[None]:
        if not self._turn_lock.acquire(blocking=False):
            raise TurnInFlightError()
        self._pending = True
        try:
            yield
        finally:
            self._pending = False
            self._turn_lock.release()

    def _next_seq(self) -> int:
        self._turn_seq += 1
        return self._turn_seq

    def _is_current(self, seq: int) -> bool:
        return seq == self._turn_seq and self.stage != "abandoned"

    def _send(
        self, message: str, meta: InterviewMeta, state: Optional[SessionState], *, credential: str
    ) -> TurnResponse:
        log_event(
            "turn_sent",
            self.session_id,
            user_id=self.user_id,
            stage=self.stage,
            question_index=state.question_index if state is not None else None,
        )
        try:
            with span(self.events, "turn"):
                response = self._turn_client.send_turn(message, meta, state, credential=credential)
            self._check_progress(response)
        except TurnError as exc:
            self.last_error = describe(exc)
            logger.warning("Turn failed stage=%s: %s", self.stage, exc)
            log_event(
                "turn_failed",
                self.session_id,
                level=logging.WARNING,
                user_id=self.user_id,
                stage=self.stage,
                error=exc.__class__.__name__,
            )
            raise
        self.last_error = None
        return response

    def _check_progress(self, response: TurnResponse) -> None:
        if self.session_state is None or not isinstance(response.payload, QuestionTurn):
            return
        previous = self.session_state.question_index
        current = response.session_state.question_index
        if current < previous:
            raise ProtocolError(f"question_index went backwards from {previous} to {current}")

    def _apply(self, response: TurnResponse, answer: Optional[Answer]) -> None:
        payload = response.payload
        if isinstance(payload, QuestionTurn):
            self.session_state = response.session_state
            self.current_turn = response
            if answer is not None:
                self._append(answer)
            self.recorder.arm()
            self.hint_visible = False
            self._uploaded = None
            self.stage = "active"
            log_event(
                "question_shown",
                self.session_id,
                user_id=self.user_id,
                question_id=payload.question_id,
                question_index=response.session_state.question_index,
            )
        elif isinstance(payload, FeedbackTurn):
            self.current_turn = response
            if answer is not None:
                feedback = AnswerFeedback(
                    score=payload.overall or 0.0,
                    strengths=list(payload.strengths),
                    improvements=list(payload.improvements),
                    detail=payload.summary,
                )
                self._append(answer.model_copy(update={"feedback": feedback}))
            self.recorder.arm()
            self.hint_visible = False
            self._complete(payload)
        else:
            raise ProtocolError(f"Unknown payload kind: {getattr(payload, 'kind', None)!r}")

    def _append(self, answer: Answer) -> None:
        self.answers.append(answer)
        if answer.audio_reference:
            self.audio_refs[answer.question_id] = answer.audio_reference

    def _complete(self, payload: FeedbackTurn) -> None:
        self.stage = "completed"
        self.session_state = None
        self.completed_at = self._clock()
        self.scores = aggregate(
            self.answers,
            payload,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
        log_event(
            "session_completed",
            self.session_id,
            user_id=self.user_id,
            payload_kind=payload.kind,
            outcome=f"overall={self.scores.overall}",
        )
        setup = self.setup
        try:
            self.record = self._persister.finalize(
                self.session_id,
                self.answers,
                self.audio_refs,
                self.scores,
                self.scores.estimated_duration_minutes,
                user_id=self.user_id,
                target_role=setup.target_role if setup else "",
                industry=setup.industry if setup else "",
                completed_at=self.completed_at,
            )
            self.session_id = self.record.id
        except StorageError as exc:
            logger.error("Failed to persist completed session %s: %s", self.session_id, exc)
            log_event("persist_failed", self.session_id, level=logging.ERROR, user_id=self.user_id, error=str(exc))
            self.notices.append("Failed to save session, but results are still available.")

    def _create_record(self, setup: InterviewSetup) -> None:
        try:
            record = self._persister.create(self.user_id, setup.target_role, setup.industry)
        except StorageError as exc:
            logger.warning("Session creation failed, proceeding with interview: %s", exc)
            log_event("session_create_failed", None, level=logging.WARNING, user_id=self.user_id, error=str(exc))
            self.notices.append("Session could not be created yet; results will be saved at the end.")
            return
        self.session_id = record.id

    def _upload(self, blob: bytes, question_id: str) -> Optional[str]:
        digest = hashlib.sha256(blob).hexdigest()
        if self._uploaded is not None and self._uploaded[:2] == (question_id, digest):
            return self._uploaded[2]
        if self._uploader is None:
            self.notices.append("Recording not saved: no recording store is configured.")
            return None
        try:
            reference = self._uploader.upload(
                blob,
                user_id=self.user_id,
                session_id=self.session_id,
                question_id=question_id,
            )
        except StorageError as exc:
            logger.warning("Recording upload failed question=%s: %s", question_id, exc)
            log_event(
                "upload_failed",
                self.session_id,
                level=logging.WARNING,
                user_id=self.user_id,
                question_id=question_id,
                error=str(exc),
            )
            self.notices.append(f"{exc}. Continuing with the text answer only.")
            return None
        self._uploaded = (question_id, digest, reference)
        return reference


__all__ = ["InterviewController", "TurnSender", "VOICE_ONLY_MESSAGE"]
