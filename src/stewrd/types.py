"""
Typed models for the Stewrd agent API: request parameters, the aggregated
agent response and the closed set of events emitted by a streaming run.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

AGENT_RESPONSE_OBJECT = "agent.response"


class _ResponseModel(BaseModel):
    # Immutable once built; unknown fields from newer servers are ignored.
    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Request schema for POST /v1/agent
# ---------------------------------------------------------------------------


class InputFile(BaseModel):
    """A file sent to the agent as context."""

    model_config = ConfigDict(extra="forbid")
    name: str
    content: str


class AgentRunParams(BaseModel):
    """
    Request body for POST /v1/agent (without the ``stream`` flag, which the
    client sets itself).
    """

    model_config = ConfigDict(extra="forbid")

    message: Annotated[str, Field(min_length=1)]
    capabilities: Optional[list[str]] = None
    files: Optional[list[InputFile]] = None


# ---------------------------------------------------------------------------
# Aggregated response
# ---------------------------------------------------------------------------


class Usage(_ResponseModel):
    """Request and token usage for a run."""

    requests_used: int = 0
    requests_limit: int = 0
    tokens_used: int = 0
    input_tokens: int = 0
    output_tokens: int = 0


class Meta(_ResponseModel):
    """
    Run metadata. Older API generations report ``project_id``/``plan``,
    newer ones report ``model``; whichever is absent stays empty.
    """

    duration_ms: int = 0
    project_id: str = ""
    plan: str = ""
    model: str = ""


class ResponseFile(_ResponseModel):
    """A file produced by the agent."""

    name: str = ""
    content: Optional[str] = None
    url: Optional[str] = None
    mime_type: Optional[str] = None


class AgentResponse(_ResponseModel):
    """The canonical result of a completed run, whatever payload shape it came from."""

    id: str = ""
    object: str = AGENT_RESPONSE_OBJECT
    message: str = ""
    capabilities_used: tuple[str, ...] = ()
    files: tuple[ResponseFile, ...] = ()
    usage: Usage = Field(default_factory=Usage)
    meta: Meta = Field(default_factory=Meta)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


class TokenEvent(_ResponseModel):
    type: Literal["token"] = "token"
    content: str = ""


class ToolStartEvent(_ResponseModel):
    type: Literal["tool_start"] = "tool_start"
    tool: str = ""


class ToolEndEvent(_ResponseModel):
    type: Literal["tool_end"] = "tool_end"
    tool: str = ""


class StreamError(_ResponseModel):
    code: str = ""
    message: str = ""


class ErrorEvent(_ResponseModel):
    """An error reported in-band by the server. Delivered, never raised."""

    type: Literal["error"] = "error"
    error: StreamError


class DoneEvent(_ResponseModel):
    """Terminal event carrying the full response and its resolved usage."""

    type: Literal["done"] = "done"
    response: AgentResponse
    usage: Usage


StreamEvent = Annotated[
    Union[TokenEvent, ToolStartEvent, ToolEndEvent, ErrorEvent, DoneEvent],
    Field(discriminator="type"),
]
