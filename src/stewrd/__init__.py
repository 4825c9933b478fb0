from __future__ import annotations

from stewrd.agent import Agent, Stewrd
from stewrd.streaming import AgentStream, AsyncAgentStream, StreamState
from stewrd.types import (
    AgentResponse,
    AgentRunParams,
    DoneEvent,
    ErrorEvent,
    InputFile,
    Meta,
    ResponseFile,
    StreamError,
    StreamEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
    Usage,
)
from stewrd._errors import StewrdAPIError, StewrdError, StreamEndedWithoutResult

__all__ = [
    "Agent",
    "AgentResponse",
    "AgentRunParams",
    "AgentStream",
    "AsyncAgentStream",
    "DoneEvent",
    "ErrorEvent",
    "InputFile",
    "Meta",
    "ResponseFile",
    "Stewrd",
    "StewrdAPIError",
    "StewrdError",
    "StreamEndedWithoutResult",
    "StreamError",
    "StreamEvent",
    "StreamState",
    "TokenEvent",
    "ToolEndEvent",
    "ToolStartEvent",
    "Usage",
]

__version__ = "1.0.0"
