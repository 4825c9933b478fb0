"""
This module provides the entry points for streaming runs of the Stewrd agent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from stewrd._auth import AuthConfig
from stewrd._client import HttpConfig, StewrdHttpClient
from stewrd.streaming import AgentStream, AsyncAgentStream
from stewrd.types import AgentRunParams, InputFile

AGENT_PATH = "/v1/agent"
DEFAULT_BASE_URL = "https://api.stewrd.dev"
DEFAULT_TIMEOUT_S = 120.0


@dataclass(slots=True)
class Agent:
    """
    Streaming interface to POST /v1/agent.
    Every call opens one HTTP response and hands its body to a fresh event stream.
    """
    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = DEFAULT_TIMEOUT_S

    _http: StewrdHttpClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        auth = AuthConfig.from_env_or_value(self.api_key)
        self._http = StewrdHttpClient(
            config=HttpConfig(base_url=self.base_url, timeout_s=self.timeout_s),
            api_key=auth.api_key,
        )

    @staticmethod
    def _build_payload(
        message: str,
        capabilities: Sequence[str] | None,
        files: Sequence[InputFile | dict[str, Any]] | None,
    ) -> dict[str, Any]:
        params = AgentRunParams.model_validate(
            {
                "message": message,
                "capabilities": list(capabilities) if capabilities is not None else None,
                "files": list(files) if files is not None else None,
            }
        )
        payload = params.model_dump(exclude_none=True)
        payload["stream"] = True
        return payload

    def stream(
        self,
        message: str,
        *,
        capabilities: Sequence[str] | None = None,
        files: Sequence[InputFile | dict[str, Any]] | None = None,
    ) -> AgentStream:
        """
        Start a streaming run.

        Args:
            message: The instruction for the agent.
            capabilities: Capabilities to enable (e.g. ``["research", "documents"]``).
            files: Files to include as context.

        Returns:
            An AgentStream that closes the HTTP response when it closes.

        Raises:
            StewrdAPIError: If the API rejects the request or it times out.
        """
        payload = self._build_payload(message, capabilities, files)
        resp = self._http.open_stream(AGENT_PATH, payload)
        return AgentStream(self._http.iter_bytes(resp), on_close=resp.close)

    async def astream(
        self,
        message: str,
        *,
        capabilities: Sequence[str] | None = None,
        files: Sequence[InputFile | dict[str, Any]] | None = None,
    ) -> AsyncAgentStream:
        """Async version of stream()."""
        payload = self._build_payload(message, capabilities, files)
        resp = await self._http.aopen_stream(AGENT_PATH, payload)
        return AsyncAgentStream(self._http.aiter_bytes(resp), on_close=resp.aclose)

    def close(self) -> None:
        self._http.close()

    async def aclose(self) -> None:
        await self._http.aclose()


class Stewrd:
    """
    Stewrd SDK client.

        from stewrd import Stewrd

        stewrd = Stewrd("sk-stw_your_key")
        with stewrd.agent.stream("Hello") as stream:
            response = stream.final_response()
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.agent = Agent(api_key=api_key, base_url=base_url, timeout_s=timeout_s)

    def __enter__(self) -> Stewrd:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    async def __aenter__(self) -> Stewrd:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def close(self) -> None:
        self.agent.close()

    async def aclose(self) -> None:
        await self.agent.aclose()
