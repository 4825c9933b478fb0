"""
Maps (event kind, JSON payload) pairs coming off the wire to typed stream events.

The ``done`` payload has shipped in two shapes across API generations: a nested
one carrying a ready ``response`` object and a flat one whose top-level fields
describe the response directly. Both are parsed into a raw variant first and a
single mapping function turns either variant into the canonical AgentResponse.

Field values are coerced leniently: a ``done`` block whose JSON parses always
yields a DoneEvent, with defaults in place of absent or unusable fields.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from stewrd.types import (
    AGENT_RESPONSE_OBJECT,
    AgentResponse,
    DoneEvent,
    ErrorEvent,
    Meta,
    ResponseFile,
    StreamError,
    StreamEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
    Usage,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lenient coercion
# ---------------------------------------------------------------------------


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _as_optional_str(value: Any) -> Optional[str]:
    return None if value is None else _as_str(value)


def _as_int(value: Any) -> int:
    # Servers timing with performance.now() send floats such as 1234.7.
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_optional_int(value: Any) -> Optional[int]:
    return None if value is None else _as_int(value)


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(_as_str(v) for v in value)


def _as_file(value: Any) -> Optional[ResponseFile]:
    if isinstance(value, str):
        return ResponseFile(name=value)
    if not isinstance(value, dict):
        return None
    return ResponseFile(
        name=_as_str(value.get("name")),
        content=_as_optional_str(value.get("content")),
        url=_as_optional_str(value.get("url")),
        mime_type=_as_optional_str(value.get("mime_type")),
    )


def _as_files(value: Any) -> tuple[ResponseFile, ...]:
    if not isinstance(value, list):
        return ()
    files = (_as_file(v) for v in value)
    return tuple(f for f in files if f is not None)


def _as_usage(value: Any) -> Optional[Usage]:
    if not isinstance(value, dict):
        return None
    return Usage(
        requests_used=_as_int(value.get("requests_used")),
        requests_limit=_as_int(value.get("requests_limit")),
        tokens_used=_as_int(value.get("tokens_used")),
        input_tokens=_as_int(value.get("input_tokens")),
        output_tokens=_as_int(value.get("output_tokens")),
    )


def _as_meta(value: Any) -> Meta:
    if not isinstance(value, dict):
        return Meta()
    return Meta(
        duration_ms=_as_int(value.get("duration_ms")),
        project_id=_as_str(value.get("project_id")),
        plan=_as_str(value.get("plan")),
        model=_as_str(value.get("model")),
    )


def _as_response(value: dict[str, Any]) -> AgentResponse:
    return AgentResponse(
        id=_as_str(value.get("id")),
        object=_as_str(value.get("object"), AGENT_RESPONSE_OBJECT),
        message=_as_str(value.get("message")),
        capabilities_used=_as_str_tuple(value.get("capabilities_used")),
        files=_as_files(value.get("files")),
        usage=_as_usage(value.get("usage")) or Usage(),
        meta=_as_meta(value.get("meta")),
    )


# ---------------------------------------------------------------------------
# Raw done payload variants
# ---------------------------------------------------------------------------


class _RawDonePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    usage: Optional[Usage] = None
    tokens_used: Optional[int] = None
    total_tokens: Optional[int] = None
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    requests_used: Optional[int] = None
    requests_limit: Optional[int] = None


class NestedDonePayload(_RawDonePayload):
    """``{"response": {...}, "usage": {...}}``"""

    shape: Literal["nested"] = "nested"
    response: AgentResponse
    # The response's own usage, kept apart so its absence can be told from zeros.
    response_usage: Optional[Usage] = None


class FlatDonePayload(_RawDonePayload):
    """``{"request_id": ..., "message": ..., "tokens_used": ..., ...}``"""

    shape: Literal["flat"] = "flat"
    request_id: str = ""
    object: str = AGENT_RESPONSE_OBJECT
    message: str = ""
    capabilities_used: tuple[str, ...] = ()
    files: tuple[ResponseFile, ...] = ()
    duration_ms: int = 0
    project_id: str = ""
    plan: str = ""
    model: str = ""


DonePayload = Union[NestedDonePayload, FlatDonePayload]


def _raw_counts(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "usage": _as_usage(data.get("usage")),
        "tokens_used": _as_optional_int(data.get("tokens_used")),
        "total_tokens": _as_optional_int(data.get("total_tokens")),
        "input_tokens": _as_optional_int(data.get("input_tokens")),
        "output_tokens": _as_optional_int(data.get("output_tokens")),
        "requests_used": _as_optional_int(data.get("requests_used")),
        "requests_limit": _as_optional_int(data.get("requests_limit")),
    }


def resolve_done_payload(payload: dict[str, Any]) -> DonePayload:
    """
    Classify a raw ``done`` payload into its shape variant.

    JSON null counts as an absent field. Values of an unexpected type are
    coerced (numbers to strings, floats to ints) or replaced by their default.
    """
    response = payload.get("response")

    if isinstance(response, dict):
        return NestedDonePayload(
            response=_as_response(response),
            response_usage=_as_usage(response.get("usage")),
            **_raw_counts(payload),
        )

    request_id = payload.get("request_id")
    if request_id is None:
        request_id = payload.get("id")

    return FlatDonePayload(
        request_id=_as_str(request_id),
        object=_as_str(payload.get("object"), AGENT_RESPONSE_OBJECT),
        message=_as_str(payload.get("message")),
        capabilities_used=_as_str_tuple(payload.get("capabilities_used")),
        files=_as_files(payload.get("files")),
        duration_ms=_as_int(payload.get("duration_ms")),
        project_id=_as_str(payload.get("project_id")),
        plan=_as_str(payload.get("plan")),
        model=_as_str(payload.get("model")),
        **_raw_counts(payload),
    )


def _usage_from_counts(payload: _RawDonePayload) -> Usage:
    input_tokens = payload.input_tokens or 0
    output_tokens = payload.output_tokens or 0

    if payload.tokens_used is not None:
        tokens = payload.tokens_used
    elif payload.total_tokens is not None:
        tokens = payload.total_tokens
    else:
        tokens = input_tokens + output_tokens

    return Usage(
        requests_used=payload.requests_used or 0,
        requests_limit=payload.requests_limit or 0,
        tokens_used=tokens,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


def resolve_usage(payload: DonePayload) -> Usage:
    """
    Pick the usage counters for a run.

    Precedence: top-level ``usage`` object, then the nested response's own
    ``usage``, then counters built from raw token fields (all zero if none).
    """
    if payload.usage is not None:
        return payload.usage
    if isinstance(payload, NestedDonePayload) and payload.response_usage is not None:
        return payload.response_usage
    return _usage_from_counts(payload)


def to_agent_response(payload: DonePayload) -> AgentResponse:
    """
    Map either done payload variant to the canonical AgentResponse.

    A nested response is returned as sent; only when it has no ``usage`` of
    its own is the resolved usage filled in.
    """
    if isinstance(payload, NestedDonePayload):
        if payload.response_usage is not None:
            return payload.response
        return payload.response.model_copy(update={"usage": resolve_usage(payload)})

    return AgentResponse(
        id=payload.request_id,
        object=payload.object,
        message=payload.message,
        capabilities_used=payload.capabilities_used,
        files=payload.files,
        usage=resolve_usage(payload),
        meta=Meta(
            duration_ms=payload.duration_ms,
            project_id=payload.project_id,
            plan=payload.plan,
            model=payload.model,
        ),
    )


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------


def _token_event(payload: dict[str, Any]) -> TokenEvent:
    # "content" is the field name used by the first API generation.
    text = payload.get("text")
    if text is None:
        text = payload.get("content")
    return TokenEvent(content=_as_str(text))


def _tool_start_event(payload: dict[str, Any]) -> ToolStartEvent:
    return ToolStartEvent(tool=_as_str(payload.get("tool")))


def _tool_end_event(payload: dict[str, Any]) -> ToolEndEvent:
    return ToolEndEvent(tool=_as_str(payload.get("tool")))


def _error_event(payload: dict[str, Any]) -> ErrorEvent:
    return ErrorEvent(
        error=StreamError(
            code=_as_str(payload.get("code")),
            message=_as_str(payload.get("message")),
        )
    )


def _done_event(payload: dict[str, Any]) -> DoneEvent:
    variant = resolve_done_payload(payload)
    return DoneEvent(response=to_agent_response(variant), usage=resolve_usage(variant))


_BUILDERS: dict[str, Callable[[dict[str, Any]], StreamEvent]] = {
    "token": _token_event,
    "tool_start": _tool_start_event,
    "tool_end": _tool_end_event,
    "error": _error_event,
    "done": _done_event,
}


def normalize_event(kind: str, payload: Any) -> StreamEvent | None:
    """
    Build the typed event for one block.

    Args:
        kind: The block's ``event:`` value.
        payload: The block's parsed JSON payload.

    Returns:
        The typed event, or None for unknown kinds and payloads that are not
        JSON objects.
    """
    builder = _BUILDERS.get(kind)
    if builder is None:
        logger.debug("Ignoring unknown event kind %r", kind)
        return None

    if not isinstance(payload, dict):
        logger.debug("Dropping %r event with non-object payload", kind)
        return None

    return builder(payload)
