from __future__ import annotations  # Interview turn request gateway

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

from pydantic import ValidationError

from config import TurnRoute
from interview_session.errors import ProtocolError, RemoteError, TransportError
from interview_session.models import InterviewMeta, SessionState, TurnResponse


logger = logging.getLogger(__name__)  # Module logger setup

TURN_CONTEXT = "interview_session"


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class TurnClient:
    """Sends one interview turn and returns the validated response.

    The client holds no session or auth state; the caller passes the last known
    ``SessionState`` and a bearer credential on every call and owns the transition.
    """

    def __init__(self, route: TurnRoute, *, client: Optional[HttpClient] = None) -> None:
        self._route = route
        self._client = client

    def send_turn(
        self,
        answer_text: str,
        meta: InterviewMeta,
        state: Optional[SessionState],
        *,
        credential: str,
    ) -> TurnResponse:
        if state is not None and not answer_text.strip():
            raise ValueError("answer_text may only be empty on the opening turn")
        body = build_request(answer_text, meta, state, language=self._route.language)
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {credential}"}
        headers.update(self._route.extra_headers)
        logger.info(
            "Turn request send url=%s first_turn=%s role=%s",
            self._route.url,
            state is None,
            meta.target_role,
        )
        try:
            response, close_cb = _post(self._route.url, body, headers, self._route.timeout_s, self._client)
        except Exception as exc:  # noqa: BLE001
            logger.error("Turn transport failure: %s", exc)
            raise TransportError(f"Interview service unreachable: {exc}") from exc
        try:
            return parse_response(response)
        finally:
            _close_safely(close_cb)


def build_request(
    answer_text: str,
    meta: InterviewMeta,
    state: Optional[SessionState],
    *,
    language: str = "en",
) -> Dict[str, Any]:  # Compose the wire request body
    return {
        "message": answer_text or "",
        "context": {
            "context": TURN_CONTEXT,
            "meta": meta.model_dump(),
            "session_state": state.model_dump() if state is not None else None,
        },
        "language": language,
        "mode": TURN_CONTEXT,
    }


def parse_response(response: HttpResponse) -> TurnResponse:  # Map an HTTP response onto the turn contract
    status = response.status_code
    try:
        data = response.json()
    except Exception as exc:  # noqa: BLE001
        if status >= 400:
            logger.error("Turn error status=%s body=%s", status, _truncate(response.text))
            raise TransportError(f"Interview API call failed with status {status}: {_truncate(response.text)}") from exc
        raise ProtocolError("Interview response was not JSON") from exc

    if isinstance(data, dict) and data.get("error"):
        raise _remote_error(data["error"], status)
    if status >= 400:
        logger.error("Turn error status=%s body=%s", status, _truncate(response.text))
        raise TransportError(f"Interview API call failed with status {status}: {_truncate(response.text)}")

    raw = _extract_payload(data)
    try:
        parsed = TurnResponse.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Turn response failed validation: %s", exc)
        raise ProtocolError(f"Invalid turn response: {_first_error(exc)}") from exc
    logger.info("Turn response kind=%s", parsed.payload.kind)
    return parsed


def _extract_payload(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, dict):
        raise ProtocolError("Invalid response structure from interview service: expected an object")
    payload = data.get("interviewPayload")
    if payload:
        if not isinstance(payload, dict):
            raise ProtocolError("interviewPayload must be an object")
        return payload
    items = data.get("items")
    if isinstance(items, list) and items and isinstance(items[0], dict) and items[0].get("content"):
        content = items[0]["content"]
        if isinstance(content, dict):
            return content
        if not isinstance(content, str):
            raise ProtocolError("items[0].content must be JSON text or an object")
        try:
            parsed = json.loads(_strip_code_fences(content))
        except json.JSONDecodeError as exc:
            raise ProtocolError(f"Failed to parse interview response: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ProtocolError("items[0].content did not decode to an object")
        return parsed
    keys = ", ".join(sorted(data.keys()))
    raise ProtocolError(f"No interview payload found in response. Response keys: {keys}")


def _remote_error(error: Any, status: int) -> RemoteError:
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message") or f"Interview service error: {code or 'UNKNOWN'}"
    else:
        code = None
        message = str(error)
    logger.error("Remote interview error code=%s message=%s", code, message)
    return RemoteError(message, code=code, status=status)


def _post(
    url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]
) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        return client.post(url, json=payload, headers=headers, timeout=timeout), None
    import httpx

    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _strip_code_fences(content: str) -> str:  # Remove markdown fences some relays wrap around JSON
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg', 'invalid')}" if loc else first.get("msg", "invalid")


def _truncate(text: str, limit: int = 200) -> str:
    text = (text or "").strip()
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
