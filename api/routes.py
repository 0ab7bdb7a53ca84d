"""FastAPI routes for interview session control."""
from __future__ import annotations

import base64
import binascii
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Header, HTTPException

from api.schemas import AbandonReq, AnswerReq, ApiResp, FeedbackView, QuestionView, StartReq
from interview_session.controller import InterviewController
from interview_session.errors import (
    EmptyAnswerError,
    InterviewError,
    InvalidTransition,
    ProtocolError,
    RemoteError,
    StorageError,
    TransportError,
    TurnInFlightError,
    describe,
)
from interview_session.models import InterviewSetup, SessionRecord
from interview_session.recorder import AnswerRecorder
from services import collaborators, live_sessions
from services.recordings import RecordingUploader
from services.sessions import SessionPersister
from storage.sessions import HistoryFilters


router = APIRouter(prefix="/api/interview-sessions")


def _credential(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="missing bearer credential")
    token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="missing bearer credential")
    return token


def _live(interview_key: str, user_id: str) -> InterviewController:
    controller = live_sessions.get(interview_key)
    if controller is None or controller.user_id != user_id:
        raise HTTPException(status_code=404, detail="interview not found")
    return controller


def _http_error(exc: InterviewError) -> HTTPException:
    detail = describe(exc)
    if isinstance(exc, EmptyAnswerError):
        return HTTPException(status_code=422, detail=detail)
    if isinstance(exc, (TurnInFlightError, InvalidTransition)):
        return HTTPException(status_code=409, detail=detail)
    if isinstance(exc, RemoteError):
        return HTTPException(status_code=503, detail=detail)
    if isinstance(exc, (TransportError, ProtocolError)):
        return HTTPException(status_code=502, detail=detail)
    if isinstance(exc, StorageError):
        return HTTPException(status_code=503, detail=detail)
    return HTTPException(status_code=400, detail=detail)


def _resp_from_controller(controller: InterviewController) -> ApiResp:
    question = None
    current = controller.current_question
    if current is not None:
        question = QuestionView(
            question_id=current.question_id,
            text=current.question,
            topic=current.topic,
            phase=current.phase,
            helper_hint=current.helper_hint,
        )
    feedback = None
    terminal = controller.feedback
    if terminal is not None:
        feedback = FeedbackView(**terminal.model_dump(exclude={"kind"}))

    scores = controller.scores
    notices = list(controller.notices)
    controller.notices.clear()
    return ApiResp(
        interview_key=controller.id,
        stage=controller.stage,
        session_id=controller.session_id,
        question=question,
        feedback=feedback,
        progress=controller.progress,
        answered_count=controller.answered_count,
        display_score=controller.display_score if scores is not None else None,
        duration_minutes=scores.estimated_duration_minutes if scores is not None else None,
        duration_estimated=scores.duration_estimated if scores is not None else False,
        can_submit=controller.can_submit,
        notices=notices,
        error=controller.last_error,
    )


def _respond(controller: InterviewController) -> ApiResp:
    resp = _resp_from_controller(controller)
    if controller.stage == "completed":
        live_sessions.discard(controller.id)
    return resp


def _new_controller(user_id: str) -> InterviewController:
    return InterviewController(
        user_id=user_id,
        turn_client=collaborators.turn_client(),
        persister=SessionPersister(collaborators.session_store()),
        uploader=RecordingUploader(collaborators.blob_store()),
        recorder=AnswerRecorder(),
    )


@router.post("/start", response_model=ApiResp)
def start(req: StartReq, authorization: Optional[str] = Header(default=None)) -> ApiResp:
    credential = _credential(authorization)
    if req.interview_key:
        controller = _live(req.interview_key, req.user_id)
    else:
        controller = live_sessions.register(_new_controller(req.user_id))
    setup = InterviewSetup(target_role=req.target_role, industry=req.industry, experience_level=req.experience_level)
    try:
        controller.start(setup, credential=credential)
    except InterviewError as exc:
        # The controller stays registered in setup so the client can retry with its key.
        failure = _http_error(exc)
        raise HTTPException(
            status_code=failure.status_code,
            detail={"message": failure.detail, "interview_key": controller.id},
        ) from exc
    return _respond(controller)


@router.post("/answer", response_model=ApiResp)
def answer(req: AnswerReq, authorization: Optional[str] = Header(default=None)) -> ApiResp:
    credential = _credential(authorization)
    controller = _live(req.interview_key, req.user_id)
    if controller.pending:
        raise _http_error(TurnInFlightError())
    controller.recorder.current_text = req.answer_text
    if req.audio_b64:
        try:
            blob = base64.b64decode(req.audio_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(status_code=422, detail="audio_b64 is not valid base64") from exc
        try:
            controller.recorder.attach_recording(blob, seconds=req.audio_seconds)
        except InterviewError as exc:
            raise _http_error(exc) from exc
    try:
        controller.submit_answer(credential=credential)
    except InterviewError as exc:
        raise _http_error(exc) from exc
    return _respond(controller)


@router.get("/live/{interview_key}", response_model=ApiResp)
def live(interview_key: str, user_id: str) -> ApiResp:
    return _resp_from_controller(_live(interview_key, user_id))


@router.post("/abandon", response_model=ApiResp)
def abandon(req: AbandonReq) -> ApiResp:
    controller = _live(req.interview_key, req.user_id)
    live_sessions.discard(controller.id)
    controller.abandon()
    return _resp_from_controller(controller)


@router.get("/history", response_model=List[SessionRecord])
def history(
    user_id: str,
    search: str = "",
    role: str = "",
    industry: str = "",
    min_score: float = 0.0,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[SessionRecord]:
    filters = HistoryFilters(
        search=search,
        role=role,
        industry=industry,
        min_score=min_score,
        date_from=date_from,
        date_to=date_to,
    )
    try:
        return collaborators.session_store().list_sessions(user_id, filters)
    except StorageError as exc:
        raise _http_error(exc) from exc


@router.delete("/{session_id}")
def delete(session_id: str, user_id: str) -> dict:
    try:
        deleted = collaborators.session_store().delete_session(session_id, user_id)
    except StorageError as exc:
        raise _http_error(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="session not found")
    return {"deleted": True, "session_id": session_id}
