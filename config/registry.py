"""In-memory registry for collaborator factories."""
from typing import Any, Callable, Dict, Optional

_REGISTRY: Dict[str, Callable[..., Any]] = {}


def bind_model(key: str, fn: Callable[..., Any]) -> None:
    """Bind a factory to a registry key."""
    _REGISTRY[key] = fn


def unbind_model(key: str) -> None:
    _REGISTRY.pop(key, None)


def get_model(key: str, default: Optional[Callable[..., Any]] = None) -> Callable[..., Any]:
    """Retrieve a factory from the registry.

    Raises:
        KeyError: If nothing has been bound for ``key`` and no default was given.
    """

    if key in _REGISTRY:
        return _REGISTRY[key]
    if default is not None:
        return default
    raise KeyError(f"Model not bound in registry: {key}")


TURN_CLIENT_KEY = "collaborators.turn_client"
SESSION_STORE_KEY = "collaborators.session_store"
BLOB_STORE_KEY = "collaborators.blob_store"
