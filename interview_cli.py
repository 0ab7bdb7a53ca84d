from __future__ import annotations  # Terminal mock interview driver

import argparse
import logging
import os
import sys
from typing import Optional

from config.settings import settings
from interview_session.controller import InterviewController
from interview_session.errors import InterviewError, TurnError, describe
from interview_session.microphone import PyAudioMicrophone
from interview_session.models import InterviewSetup
from interview_session.recorder import AnswerRecorder
from services import collaborators
from services.recordings import RecordingUploader
from services.sessions import SessionPersister
from storage.migrate import migrate


logger = logging.getLogger(__name__)


def _print_notices(controller: InterviewController) -> None:
    for notice in controller.notices:
        print(f"  ! {notice}")
    controller.notices.clear()


def _read_answer(controller: InterviewController, voice: bool) -> Optional[str]:
    """Fill the recorder for the current question; returns None when the user quits."""

    recorder = controller.recorder
    if voice:
        command = input("  [Enter] to record, type 'text' to type instead, 'quit' to leave: ").strip().lower()
        if command == "quit":
            return None
        if command != "text":
            try:
                recorder.start_recording()
            except InterviewError as exc:
                print(f"  ! {describe(exc)}")
            else:
                input("  Recording... press [Enter] to stop ")
                recorder.stop_recording()
                print(f"  Captured {recorder.recording_seconds:.0f}s of audio")
    text = input("  Your answer (blank to keep current): ")
    if text.strip().lower() == "quit":
        return None
    if text:
        recorder.current_text = text
    return recorder.current_text


def run(args: argparse.Namespace) -> int:
    migrate(settings.DB_PATH)
    source = PyAudioMicrophone() if args.voice else None
    controller = InterviewController(
        user_id=args.user,
        turn_client=collaborators.turn_client(),
        persister=SessionPersister(collaborators.session_store()),
        uploader=RecordingUploader(collaborators.blob_store()),
        recorder=AnswerRecorder(source),
    )
    setup = InterviewSetup(target_role=args.role, industry=args.industry, experience_level=args.level)
    try:
        controller.start(setup, credential=args.token)
    except TurnError as exc:
        print(f"Failed to start interview: {describe(exc)}")
        return 1
    _print_notices(controller)

    while controller.stage == "active":
        question = controller.current_question
        if question is None:
            break
        print(f"\n[{controller.progress:.0f}%] {question.question}")
        if question.helper_hint:
            print(f"  hint: {question.helper_hint}")
        if _read_answer(controller, args.voice) is None:
            controller.abandon()
            print("Interview abandoned.")
            return 0
        try:
            controller.submit_answer(credential=args.token)
        except InterviewError as exc:
            print(f"  ! Failed to submit answer: {describe(exc)}. Try again.")
        _print_notices(controller)

    feedback = controller.feedback
    print(f"\nOverall score: {controller.display_score}/100")
    if feedback is not None:
        print(feedback.summary)
        for item in feedback.strengths:
            print(f"  + {item}")
        for item in feedback.improvements:
            print(f"  - {item}")
    if controller.scores is not None:
        suffix = " (estimated)" if controller.scores.duration_estimated else ""
        print(f"Duration: {controller.scores.estimated_duration_minutes} min{suffix}")
    _print_notices(controller)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a mock interview in the terminal")
    parser.add_argument("--user", required=True, help="User id owning the session record")
    parser.add_argument("--role", required=True)
    parser.add_argument("--industry", required=True)
    parser.add_argument("--level", default="fresher", choices=["fresher", "junior", "mid", "senior"])
    parser.add_argument("--token", default=os.getenv("INTERVIEW_TOKEN", ""), help="Bearer credential")
    parser.add_argument("--voice", action="store_true", help="Offer microphone recording for answers")
    args = parser.parse_args(argv)
    if not args.token:
        parser.error("a bearer credential is required (--token or INTERVIEW_TOKEN)")
    logging.basicConfig(level=logging.WARNING)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
