"""Pydantic models shared by the interview session components."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator

Stage = Literal["setup", "active", "completed", "abandoned"]
Difficulty = Literal["easy", "standard", "hard"]
ExperienceLevel = Literal["fresher", "junior", "mid", "senior"]

EXPERIENCE_BANDS: Dict[str, str] = {
    "fresher": "0-2 years",
    "junior": "2-4 years",
    "mid": "4-7 years",
    "senior": "7+ years",
}


class InterviewMeta(BaseModel):  # Interview parameters sent with every turn
    target_role: str
    experience_level: str
    difficulty: Difficulty = "standard"
    questions_target: int = Field(default=8, ge=1)

    model_config = ConfigDict(frozen=True)


class InterviewSetup(BaseModel):  # Configuration submitted before the interview starts
    target_role: str = Field(min_length=1)
    industry: str = Field(min_length=1)
    experience_level: ExperienceLevel = "fresher"

    def to_meta(self, *, questions_target: int, difficulty: Difficulty) -> InterviewMeta:
        return InterviewMeta(
            target_role=self.target_role,
            experience_level=EXPERIENCE_BANDS.get(self.experience_level, EXPERIENCE_BANDS["fresher"]),
            difficulty=difficulty,
            questions_target=questions_target,
        )


class TranscriptEntry(BaseModel):
    question: str = ""
    answer: str = ""


class SessionProgress(BaseModel):
    """Client-visible view of the session state token."""

    question_index: int = Field(ge=0)
    total_questions: int = Field(ge=1)
    transcript: List[TranscriptEntry] = Field(default_factory=list)


class SessionState(RootModel[Dict[str, Any]]):
    """Opaque progress token issued by the interview service.

    Only ``question_index``, ``total_questions`` and ``transcript`` are read locally; the
    wire form returned by ``model_dump()`` is the mapping exactly as it was received.
    """

    @model_validator(mode="after")
    def _check_visible_fields(self) -> "SessionState":
        SessionProgress.model_validate(self.root)
        return self

    @property
    def progress(self) -> SessionProgress:
        return SessionProgress.model_validate(self.root)

    @property
    def question_index(self) -> int:
        return self.progress.question_index

    @property
    def total_questions(self) -> int:
        return self.progress.total_questions

    @property
    def transcript(self) -> List[TranscriptEntry]:
        return self.progress.transcript


class QuestionTurn(BaseModel):  # Non-terminal payload: the next question to ask
    kind: Literal["question"]
    question_id: str
    question: str = Field(min_length=1)
    topic: Optional[str] = None
    phase: Optional[str] = None
    helper_hint: Optional[str] = None

    @field_validator("question_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class FeedbackTurn(BaseModel):  # Terminal payload: scores and written feedback
    kind: Literal["feedback"]
    scores: Dict[str, float] = Field(default_factory=dict)
    score_explanations: Optional[Dict[str, str]] = None
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    summary: str = ""
    skill_gaps: Optional[List[str]] = None
    next_steps: Optional[List[str]] = None

    @field_validator("scores")
    @classmethod
    def _scores_in_range(cls, value: Dict[str, float]) -> Dict[str, float]:
        for criterion, score in value.items():
            if not 0.0 <= score <= 10.0:
                raise ValueError(f"score for '{criterion}' must be within 0..10, got {score}")
        return value

    @property
    def overall(self) -> Optional[float]:
        return self.scores.get("overall")


TurnPayload = Annotated[Union[QuestionTurn, FeedbackTurn], Field(discriminator="kind")]


class TurnResponse(BaseModel):
    session_state: SessionState
    payload: TurnPayload


class FinalizedAnswer(BaseModel):  # Recorder output for one question
    text: str = ""
    audio_blob: Optional[bytes] = None
    elapsed_seconds: float = Field(default=0.0, ge=0)


class AnswerFeedback(BaseModel):
    score: float = 0.0
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    detail: str = ""


class Answer(BaseModel):  # Accumulated per-question record
    question_id: str
    question_text: str
    answer_text: str = ""
    audio_reference: Optional[str] = None
    time_spent_seconds: float = Field(default=0.0, ge=0)
    feedback: Optional[AnswerFeedback] = None


class SessionScores(BaseModel):  # Aggregated results on the 0..100 display scale
    overall: float = 0.0
    per_answer: List[Optional[float]] = Field(default_factory=list)
    average: float = 0.0
    estimated_duration_minutes: int = Field(default=1, ge=0)
    duration_estimated: bool = False


class SessionRecord(BaseModel):  # Persisted interview session
    id: str
    user_id: str
    target_role: str = "General Interview"
    industry: str = ""
    questions: List[Answer] = Field(default_factory=list)
    audio_urls: Dict[str, str] = Field(default_factory=dict)
    total_score: Optional[float] = None
    average_score: Optional[float] = None
    duration_minutes: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


__all__ = [
    "Stage",
    "Difficulty",
    "ExperienceLevel",
    "EXPERIENCE_BANDS",
    "InterviewMeta",
    "InterviewSetup",
    "TranscriptEntry",
    "SessionProgress",
    "SessionState",
    "QuestionTurn",
    "FeedbackTurn",
    "TurnPayload",
    "TurnResponse",
    "FinalizedAnswer",
    "AnswerFeedback",
    "Answer",
    "SessionScores",
    "SessionRecord",
]
