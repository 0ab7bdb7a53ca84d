"""Pydantic schemas for the interview session API."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from interview_session.models import ExperienceLevel, Stage


class StartReq(BaseModel):
    interview_key: Optional[str] = None
    user_id: str = Field(min_length=1)
    target_role: str = Field(min_length=1)
    industry: str = Field(min_length=1)
    experience_level: ExperienceLevel = "fresher"


class AnswerReq(BaseModel):
    interview_key: str
    user_id: str = Field(min_length=1)
    answer_text: str = ""
    audio_b64: Optional[str] = None
    audio_seconds: float = Field(default=0.0, ge=0)


class AbandonReq(BaseModel):
    interview_key: str
    user_id: str = Field(min_length=1)


class QuestionView(BaseModel):
    question_id: str
    text: str
    topic: Optional[str] = None
    phase: Optional[str] = None
    helper_hint: Optional[str] = None


class FeedbackView(BaseModel):
    scores: Dict[str, float] = Field(default_factory=dict)
    score_explanations: Optional[Dict[str, str]] = None
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    summary: str = ""
    skill_gaps: Optional[List[str]] = None
    next_steps: Optional[List[str]] = None


class ApiResp(BaseModel):
    interview_key: str
    stage: Stage
    session_id: Optional[str] = None
    question: Optional[QuestionView] = None
    feedback: Optional[FeedbackView] = None
    progress: float = 0.0
    answered_count: int = 0
    display_score: Optional[int] = None
    duration_minutes: Optional[int] = None
    duration_estimated: bool = False
    can_submit: bool = False
    notices: List[str] = Field(default_factory=list)
    error: Optional[str] = None
