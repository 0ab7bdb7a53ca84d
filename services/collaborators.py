"""Default collaborator factories, overridable through the config registry."""
from __future__ import annotations

from config import (
    BLOB_STORE_KEY,
    SESSION_STORE_KEY,
    TURN_CLIENT_KEY,
    get_model,
    routes_from_settings,
    settings,
)
from storage.blobs import BlobStore, HttpBlobStore, LocalBlobStore
from storage.sessions import SqliteSessionStore
from turn_gateway import TurnClient


def default_turn_client() -> TurnClient:
    return TurnClient(routes_from_settings(settings).turn)


def default_session_store() -> SqliteSessionStore:
    return SqliteSessionStore()


def default_blob_store() -> BlobStore:
    blobs = routes_from_settings(settings).blobs
    if blobs.backend == "http":
        return HttpBlobStore(blobs.base_url, blobs.bucket, api_key=blobs.api_key)
    return LocalBlobStore(blobs.local_dir)


def turn_client():
    return get_model(TURN_CLIENT_KEY, default_turn_client)()


def session_store():
    return get_model(SESSION_STORE_KEY, default_session_store)()


def blob_store():
    return get_model(BLOB_STORE_KEY, default_blob_store)()
