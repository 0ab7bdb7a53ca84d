from __future__ import annotations  # Re-export turn_gateway public API

from .turn_gateway import HttpClient, HttpResponse, TurnClient, build_request, parse_response

__all__ = ["HttpClient", "HttpResponse", "TurnClient", "build_request", "parse_response"]
