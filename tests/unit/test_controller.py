"""Interview controller behaviour against a scripted interview service."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from interview_session.controller import VOICE_ONLY_MESSAGE, InterviewController
from interview_session.errors import (
    EmptyAnswerError,
    InvalidTransition,
    ProtocolError,
    RemoteError,
    StorageError,
    TransportError,
    TurnInFlightError,
)
from interview_session.models import InterviewSetup
from interview_session.recorder import AnswerRecorder
from services.recordings import RecordingUploader
from services.sessions import SessionPersister
from storage.sessions import SqliteSessionStore

from conftest import FakeBlobStore, FakeTurnClient, feedback_turn, question_turn


SETUP = InterviewSetup(target_role="Backend Engineer", industry="Tech", experience_level="junior")
TOKEN = "token-abc"


class _Ticker:
    """Clock advancing a fixed step per call."""

    def __init__(self, step: timedelta) -> None:
        self.now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


class _FlakyStore(SqliteSessionStore):
    def __init__(self, db_path, *, fail_creates: int = 0, fail_updates: bool = False) -> None:
        super().__init__(db_path)
        self.fail_creates = fail_creates
        self.fail_updates = fail_updates

    def create_session(self, user_id, target_role="General Interview", industry=""):
        if self.fail_creates:
            self.fail_creates -= 1
            raise StorageError("Failed to create session: database is locked")
        return super().create_session(user_id, target_role, industry)

    def update_session(self, session_id, user_id, update):
        if self.fail_updates:
            raise StorageError("Failed to update session: disk full")
        return super().update_session(session_id, user_id, update)


def _controller(client, db_path, *, store=None, blobs=None, recorder=None, clock=None):
    store = store or SqliteSessionStore(db_path)
    return InterviewController(
        user_id="u1",
        turn_client=client,
        persister=SessionPersister(store),
        uploader=RecordingUploader(blobs) if blobs is not None else None,
        recorder=recorder,
        clock=clock or _Ticker(timedelta(minutes=2)),
    )


def _answer(controller, text="A considered answer."):
    controller.recorder.current_text = text
    return controller.submit_answer(credential=TOKEN)


def test_opening_turn_then_first_answer(tmp_db):
    client = FakeTurnClient([question_turn(0), question_turn(1)])
    controller = _controller(client, tmp_db)

    controller.start(SETUP, credential=TOKEN)

    assert controller.stage == "active"
    assert controller.session_state.question_index == 0
    assert controller.current_question.question == "Question 1"
    assert controller.progress == pytest.approx(12.5)
    assert controller.session_id is not None
    assert client.calls[0]["answer_text"] == ""
    assert client.calls[0]["state"] is None
    assert client.calls[0]["credential"] == TOKEN
    assert client.calls[0]["meta"].experience_level == "2-4 years"

    opening_state = controller.session_state.model_dump()
    _answer(controller, "I have built payment APIs.")

    assert controller.session_state.question_index == 1
    assert client.calls[1]["answer_text"] == "I have built payment APIs."
    assert client.calls[1]["state"] == opening_state
    assert [a.question_id for a in controller.answers] == ["1"]
    assert controller.answers[0].answer_text == "I have built payment APIs."
    assert controller.recorder.current_text == ""


def test_full_interview_completes_and_persists(tmp_db):
    client = FakeTurnClient([question_turn(i) for i in range(8)] + [feedback_turn(7.5)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)

    for i in range(8):
        assert controller.session_state.question_index == i
        _answer(controller, f"Answer {i + 1}")

    assert controller.stage == "completed"
    assert controller.session_state is None
    assert controller.display_score == 75
    assert controller.progress == 100.0
    assert controller.answered_count == 8
    assert controller.answers[-1].feedback.score == 7.5
    assert controller.answers[-1].feedback.detail == "Solid interview overall."
    assert controller.answers[0].feedback is None
    assert controller.scores.per_answer[-1] == 75.0
    assert controller.feedback.strengths == ["Clear structure"]

    stored = SqliteSessionStore(tmp_db).get_session(controller.session_id, "u1")
    assert stored.total_score == 75
    assert len(stored.questions) == 8
    assert stored.duration_minutes == controller.scores.estimated_duration_minutes
    assert stored.completed_at is not None


def test_transport_failure_keeps_question_and_text(tmp_db):
    client = FakeTurnClient([question_turn(0), TransportError("Interview service unreachable"), question_turn(1)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)

    controller.recorder.current_text = "My typed answer"
    with pytest.raises(TransportError):
        controller.submit_answer(credential=TOKEN)

    assert controller.stage == "active"
    assert controller.session_state.question_index == 0
    assert controller.can_submit
    assert controller.recorder.current_text == "My typed answer"
    assert controller.answers == []
    assert controller.last_error == "Interview service unreachable"

    controller.submit_answer(credential=TOKEN)
    assert controller.session_state.question_index == 1
    assert controller.last_error is None
    assert controller.answers[0].answer_text == "My typed answer"


def test_upload_failure_falls_back_to_text(tmp_db):
    client = FakeTurnClient([question_turn(0), question_turn(1)])
    controller = _controller(client, tmp_db, blobs=FakeBlobStore(fail=True))
    controller.start(SETUP, credential=TOKEN)

    controller.recorder.attach_recording(b"RIFF-audio", seconds=4)
    _answer(controller, "Spoken and typed")

    assert controller.session_state.question_index == 1
    assert controller.answers[0].audio_reference is None
    assert controller.audio_refs == {}
    assert client.calls[1]["answer_text"] == "Spoken and typed"
    assert any("Continuing with the text answer only" in notice for notice in controller.notices)


def test_voice_only_answer_uploads_and_sends_marker(tmp_db):
    blobs = FakeBlobStore()
    client = FakeTurnClient([question_turn(0), question_turn(1)])
    controller = _controller(client, tmp_db, blobs=blobs)
    controller.start(SETUP, credential=TOKEN)

    controller.recorder.attach_recording(b"RIFF-audio", seconds=4)
    controller.submit_answer(credential=TOKEN)

    assert client.calls[1]["answer_text"] == VOICE_ONLY_MESSAGE
    answer = controller.answers[0]
    assert answer.answer_text == ""
    assert answer.audio_reference.startswith(f"https://blobs.example/u1/{controller.session_id}/q1_")
    assert controller.audio_refs == {"1": answer.audio_reference}


def test_retry_reuses_uploaded_recording(tmp_db):
    blobs = FakeBlobStore()
    client = FakeTurnClient([question_turn(0), TransportError("timeout"), question_turn(1)])
    controller = _controller(client, tmp_db, blobs=blobs)
    controller.start(SETUP, credential=TOKEN)
    controller.recorder.attach_recording(b"RIFF-audio")
    controller.recorder.current_text = "answer"

    with pytest.raises(TransportError):
        controller.submit_answer(credential=TOKEN)
    controller.submit_answer(credential=TOKEN)

    assert len(blobs.objects) == 1
    assert controller.answers[0].audio_reference is not None


def test_session_creation_failure_recovered_at_completion(tmp_db):
    store = _FlakyStore(tmp_db, fail_creates=1)
    client = FakeTurnClient([question_turn(0, total=1), feedback_turn(6.0, index=0, total=1)])
    controller = _controller(client, tmp_db, store=store)

    controller.start(SETUP, credential=TOKEN)
    assert controller.stage == "active"
    assert controller.session_id is None
    assert controller.notices

    _answer(controller)

    assert controller.stage == "completed"
    assert controller.session_id is not None
    assert controller.record.total_score == 60
    assert [r.id for r in store.list_sessions("u1")] == [controller.session_id]


def test_persist_failure_keeps_results(tmp_db):
    store = _FlakyStore(tmp_db, fail_updates=True)
    client = FakeTurnClient([question_turn(0, total=1), feedback_turn(8.0, index=0, total=1)])
    controller = _controller(client, tmp_db, store=store)
    controller.start(SETUP, credential=TOKEN)
    _answer(controller)

    assert controller.stage == "completed"
    assert controller.display_score == 80
    assert controller.record is None
    assert "Failed to save session, but results are still available." in controller.notices


def test_question_index_never_moves_backwards(tmp_db):
    client = FakeTurnClient([question_turn(2), question_turn(1)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)

    with pytest.raises(ProtocolError):
        _answer(controller)
    assert controller.session_state.question_index == 2
    assert controller.answers == []


def test_resubmit_while_pending_is_rejected(tmp_db):
    client = FakeTurnClient([question_turn(0), question_turn(1)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)
    rejected = []

    def _double_submit():
        assert controller.pending
        assert not controller.can_submit
        try:
            controller.submit_answer(credential=TOKEN)
        except TurnInFlightError as exc:
            rejected.append(exc)

    client.on_send = _double_submit
    _answer(controller)

    assert len(rejected) == 1
    assert len(client.calls) == 2
    assert controller.answered_count == 1
    assert not controller.pending


def test_response_after_abandon_is_discarded(tmp_db):
    client = FakeTurnClient([question_turn(0), question_turn(1)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)
    client.on_send = controller.abandon

    assert _answer(controller) is None
    assert controller.stage == "abandoned"
    assert controller.session_state is None
    assert controller.answers == []
    with pytest.raises(InvalidTransition):
        controller.submit_answer(credential=TOKEN)


def test_feedback_on_opening_turn_completes_with_zero(tmp_db):
    client = FakeTurnClient([feedback_turn(9.0, index=0)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)

    assert controller.stage == "completed"
    assert controller.answers == []
    assert controller.display_score == 0
    assert controller.record.total_score == 0


def test_remote_error_message_surfaces_and_start_can_retry(tmp_db):
    client = FakeTurnClient(
        [RemoteError("You have reached today's interview limit.", code="RATE_LIMITED"), question_turn(0)]
    )
    controller = _controller(client, tmp_db)

    with pytest.raises(RemoteError):
        controller.start(SETUP, credential=TOKEN)
    assert controller.stage == "setup"
    assert controller.last_error == "You have reached today's interview limit."
    first_session = controller.session_id

    controller.start(SETUP, credential=TOKEN)
    assert controller.stage == "active"
    assert controller.session_id == first_session
    assert len(SqliteSessionStore(tmp_db).list_sessions("u1")) == 1


def test_empty_answer_makes_no_call(tmp_db):
    client = FakeTurnClient([question_turn(0)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)

    with pytest.raises(EmptyAnswerError):
        _answer(controller, "  ")
    assert len(client.calls) == 1
    assert controller.can_submit


def test_invalid_transitions(tmp_db):
    client = FakeTurnClient([question_turn(0)])
    controller = _controller(client, tmp_db)
    with pytest.raises(InvalidTransition):
        controller.submit_answer(credential=TOKEN)
    controller.start(SETUP, credential=TOKEN)
    with pytest.raises(InvalidTransition):
        controller.start(SETUP, credential=TOKEN)


def test_time_spent_measured_from_question_display(tmp_db):
    ticks = {"now": 0.0}
    recorder = AnswerRecorder(clock=lambda: ticks["now"])
    client = FakeTurnClient([question_turn(0), question_turn(1)])
    controller = _controller(client, tmp_db, recorder=recorder)

    ticks["now"] = 50.0
    controller.start(SETUP, credential=TOKEN)
    ticks["now"] = 95.0
    _answer(controller)

    assert controller.answers[0].time_spent_seconds == pytest.approx(45.0)


def test_hint_reset_on_next_question(tmp_db):
    client = FakeTurnClient([question_turn(0), question_turn(1)])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)

    assert controller.reveal_hint() == "Hint 1"
    assert controller.hint_visible
    _answer(controller)
    assert not controller.hint_visible


def test_turn_spans_recorded(tmp_db):
    client = FakeTurnClient([question_turn(0), TransportError("down")])
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)
    with pytest.raises(TransportError):
        _answer(controller)
    assert [event["outcome"] for event in controller.events] == ["ok", "error"]


def test_unwritable_data_dir_does_not_block_start(tmp_path):
    blocker = tmp_path / "notadir"
    blocker.write_text("a regular file")
    store = SqliteSessionStore(str(blocker / "sub" / "interviews.db"))
    client = FakeTurnClient([question_turn(0, total=1), feedback_turn(7.0, index=0, total=1)])
    controller = _controller(client, None, store=store)

    controller.start(SETUP, credential=TOKEN)

    assert controller.stage == "active"
    assert controller.session_id is None
    assert controller.notices == ["Session could not be created yet; results will be saved at the end."]

    _answer(controller)

    assert controller.stage == "completed"
    assert controller.display_score == 70
    assert controller.record is None
    assert "Failed to save session, but results are still available." in controller.notices


def test_remote_error_mid_interview_aborts_only_that_turn(tmp_db):
    client = FakeTurnClient(
        [
            question_turn(0),
            question_turn(1),
            RemoteError("Interview quota exceeded for today.", code="QUOTA_EXCEEDED"),
            question_turn(2),
        ]
    )
    controller = _controller(client, tmp_db)
    controller.start(SETUP, credential=TOKEN)
    _answer(controller, "First answer")
    state_before = controller.session_state.model_dump()

    controller.recorder.current_text = "Second answer"
    with pytest.raises(RemoteError):
        controller.submit_answer(credential=TOKEN)

    assert controller.stage == "active"
    assert controller.session_state.model_dump() == state_before
    assert controller.session_state.question_index == 1
    assert controller.current_question.question == "Question 2"
    assert [a.answer_text for a in controller.answers] == ["First answer"]
    assert controller.recorder.current_text == "Second answer"
    assert controller.last_error == "Interview quota exceeded for today."

    controller.submit_answer(credential=TOKEN)
    assert controller.session_state.question_index == 2
    assert [a.answer_text for a in controller.answers] == ["First answer", "Second answer"]
