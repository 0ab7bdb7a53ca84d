"""Span helper for timing remote calls."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


@contextmanager
def span(events: List[Dict[str, Any]], name: str) -> Iterator[None]:
    start = time.monotonic()
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        events.append({"span": name, "ms": elapsed_ms, "outcome": outcome})


__all__ = ["span"]
