"""Configuration package for the interview session services."""
from .registry import BLOB_STORE_KEY, SESSION_STORE_KEY, TURN_CLIENT_KEY, bind_model, get_model, unbind_model
from .routes import BlobRoute, RoutesConfig, TurnRoute, load_routes, routes_from_settings
from .settings import Settings, settings

__all__ = [
    "BlobRoute",
    "RoutesConfig",
    "TurnRoute",
    "load_routes",
    "routes_from_settings",
    "BLOB_STORE_KEY",
    "SESSION_STORE_KEY",
    "TURN_CLIENT_KEY",
    "bind_model",
    "get_model",
    "unbind_model",
    "Settings",
    "settings",
]
