"""Application settings and configuration management."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")

    TURN_ENDPOINT_URL: str = Field(default="http://localhost:54321/functions/v1/ai-career-companion")
    TURN_TIMEOUT_S: float = Field(default=60.0, ge=0.1)
    TURN_LANGUAGE: str = "en"

    BLOB_BACKEND: Literal["local", "http"] = "local"
    BLOB_LOCAL_DIR: str = Field(default="data/recordings")
    BLOB_BASE_URL: str = ""
    BLOB_BUCKET: str = "interview-recordings"
    BLOB_API_KEY: str = ""

    QUESTIONS_TARGET: int = Field(default=8, ge=1)
    DEFAULT_DIFFICULTY: Literal["easy", "standard", "hard"] = "standard"

    # Service scores are 0..10 and results show 0..100. Duration falls back to a flat per-answer estimate.
    SCORE_SCALE: float = Field(default=10.0, gt=0)
    MINUTES_PER_ANSWER_ESTIMATE: float = Field(default=2.0, gt=0)

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
