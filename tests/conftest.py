import os
import sys
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import BLOB_STORE_KEY, SESSION_STORE_KEY, TURN_CLIENT_KEY, unbind_model
from interview_session.models import TurnResponse
from services import live_sessions


def question_turn(index: int, *, total: int = 8, qid: Any = None, text: Optional[str] = None, **extra) -> Dict[str, Any]:
    """Raw turn response carrying question ``index``."""

    transcript = [{"question": f"Question {i + 1}", "answer": f"Answer {i + 1}"} for i in range(index)]
    payload = {
        "kind": "question",
        "question_id": qid if qid is not None else index + 1,
        "question": text or f"Question {index + 1}",
        "topic": "general",
        "phase": "core",
        "helper_hint": f"Hint {index + 1}",
    }
    payload.update(extra)
    return {
        "session_state": {
            "question_index": index,
            "total_questions": total,
            "transcript": transcript,
            "server_cursor": {"seed": 42, "asked": list(range(index + 1))},
        },
        "payload": payload,
    }


def feedback_turn(overall: Optional[float] = 7.5, *, index: int = 7, total: int = 8) -> Dict[str, Any]:
    scores = {"communication": 8.0, "technical": 7.0}
    if overall is not None:
        scores["overall"] = overall
    return {
        "session_state": {"question_index": index, "total_questions": total, "transcript": [], "done": True},
        "payload": {
            "kind": "feedback",
            "scores": scores,
            "strengths": ["Clear structure"],
            "improvements": ["Quantify impact"],
            "summary": "Solid interview overall.",
            "next_steps": ["Practise system design"],
        },
    }


class FakeTurnClient:
    """Scripted stand-in for the remote interview service."""

    def __init__(self, script: List[Any]) -> None:
        self.script = list(script)
        self.calls: List[Dict[str, Any]] = []
        self.on_send = None

    def send_turn(self, answer_text, meta, state, *, credential):
        self.calls.append(
            {
                "answer_text": answer_text,
                "meta": meta,
                "state": state.model_dump() if state is not None else None,
                "credential": credential,
            }
        )
        if self.on_send is not None:
            self.on_send()
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return TurnResponse.model_validate(step)


class FakeStream:
    sample_rate = 16000
    channels = 1
    sample_width = 2

    def __init__(self) -> None:
        self.closed = False
        self.reads = 0

    def read(self) -> bytes:
        if self.closed:
            raise OSError("stream closed")
        self.reads += 1
        time.sleep(0.001)
        return b"\x01\x00" * 16

    def close(self) -> None:
        self.closed = True


class FakeSource:
    def __init__(self, *, deny: bool = False) -> None:
        self.deny = deny
        self.streams: List[FakeStream] = []

    def open(self) -> FakeStream:
        if self.deny:
            raise PermissionError("NotAllowedError: permission denied")
        stream = FakeStream()
        self.streams.append(stream)
        return stream


class FakeBlobStore:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.objects: Dict[str, bytes] = {}

    def put(self, key: str, data: bytes, *, content_type: str) -> str:
        if self.fail:
            raise ConnectionError("storage outage")
        self.objects[key] = data
        return f"https://blobs.example/{key}"


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def clean_registry():
    yield
    for key in (TURN_CLIENT_KEY, SESSION_STORE_KEY, BLOB_STORE_KEY):
        unbind_model(key)
    live_sessions.clear()


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def fake_blob_store():
    return FakeBlobStore
