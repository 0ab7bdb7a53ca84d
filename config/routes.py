"""Endpoint configuration for the remote interview collaborators."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field

from .settings import Settings


class TurnRoute(BaseModel):
    """Interview turn endpoint configuration."""

    url: str
    timeout_s: float = Field(ge=0.1)
    language: str = "en"
    extra_headers: Dict[str, str] = Field(default_factory=dict)


class BlobRoute(BaseModel):
    """Object storage configuration for answer recordings."""

    backend: str = "local"
    local_dir: str = "data/recordings"
    base_url: str = ""
    bucket: str = "interview-recordings"
    api_key: Optional[str] = None


class RoutesConfig(BaseModel):
    """Routes file root."""

    turn: TurnRoute
    blobs: BlobRoute = Field(default_factory=BlobRoute)


def load_routes(path: Path) -> RoutesConfig:
    """Load a routes file from disk."""

    data = path.read_text(encoding="utf-8")
    return RoutesConfig.model_validate_json(data)


def routes_from_settings(cfg: Settings) -> RoutesConfig:
    """Build the routes config from environment-backed settings."""

    return RoutesConfig(
        turn=TurnRoute(url=cfg.TURN_ENDPOINT_URL, timeout_s=cfg.TURN_TIMEOUT_S, language=cfg.TURN_LANGUAGE),
        blobs=BlobRoute(
            backend=cfg.BLOB_BACKEND,
            local_dir=cfg.BLOB_LOCAL_DIR,
            base_url=cfg.BLOB_BASE_URL,
            bucket=cfg.BLOB_BUCKET,
            api_key=cfg.BLOB_API_KEY or None,
        ),
    )
