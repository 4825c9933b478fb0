import json
from typing import Any

import httpx
import pytest
from pydantic import ValidationError

from stewrd import Agent, Stewrd
from stewrd._auth import ENV_API_KEY
from stewrd._errors import StewrdAPIError, StreamEndedWithoutResult
from stewrd.agent import AGENT_PATH, DEFAULT_BASE_URL
from stewrd.streaming import StreamState
from stewrd.types import DoneEvent, InputFile, TokenEvent, ToolEndEvent, ToolStartEvent

STREAM_BODY = (
    b'event: tool_start\ndata: {"tool":"research"}\n\n'
    b'event: tool_end\ndata: {"tool":"research"}\n\n'
    b'event: token\ndata: {"content":"Hola"}\n\n'
    b'event: done\ndata: {"response":{"id":"run_1","object":"agent.response","message":"Hola",'
    b'"capabilities_used":["research"],"files":[],"usage":{"requests_used":1,"requests_limit":100,'
    b'"tokens_used":12},"meta":{"duration_ms":900,"project_id":"proj_1","plan":"free"}}}\n\n'
)


class RecordingTransport:
    def __init__(self, status: int = 200, body: bytes = STREAM_BODY, **kwargs: Any):
        self.status = status
        self.body = body
        self.kwargs = kwargs
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, content=self.body, **self.kwargs)


def make_agent(transport: RecordingTransport) -> Agent:
    agent = Agent(api_key="sk-stw_test", base_url="https://api.example.dev/")
    mock = httpx.MockTransport(transport)
    agent._http._client = httpx.Client(transport=mock)
    agent._http._aclient = httpx.AsyncClient(transport=mock)
    return agent


def test_agent_defaults(monkeypatch):
    monkeypatch.setenv(ENV_API_KEY, "sk-stw_env")

    agent = Agent()

    assert agent.base_url == DEFAULT_BASE_URL
    assert agent.timeout_s == 120.0
    assert agent._http._api_key == "sk-stw_env"


def test_agent_requires_api_key(monkeypatch):
    monkeypatch.delenv(ENV_API_KEY, raising=False)

    with pytest.raises(ValueError):
        Agent()


def test_build_payload_excludes_unset_fields():
    payload = Agent._build_payload("Hola", None, None)

    assert payload == {"message": "Hola", "stream": True}


def test_build_payload_with_capabilities_and_files():
    payload = Agent._build_payload(
        "Resume",
        ("research", "documents"),
        [InputFile(name="a.txt", content="A"), {"name": "b.md", "content": "B"}],
    )

    assert payload == {
        "message": "Resume",
        "capabilities": ["research", "documents"],
        "files": [{"name": "a.txt", "content": "A"}, {"name": "b.md", "content": "B"}],
        "stream": True,
    }


def test_build_payload_rejects_empty_message():
    with pytest.raises(ValidationError):
        Agent._build_payload("", None, None)


def test_stream_yields_typed_events():
    transport = RecordingTransport()
    agent = make_agent(transport)

    with agent.stream("Hola", capabilities=["research"]) as stream:
        events = list(stream)

    assert [type(e) for e in events] == [ToolStartEvent, ToolEndEvent, TokenEvent, DoneEvent]
    assert events[2].content == "Hola"
    assert events[3].response.meta.plan == "free"

    request = transport.requests[0]
    assert str(request.url) == f"https://api.example.dev{AGENT_PATH}"
    assert json.loads(request.content) == {"message": "Hola", "capabilities": ["research"], "stream": True}


def test_stream_final_response():
    agent = make_agent(RecordingTransport())

    response = agent.stream("Hola").final_response()

    assert response.id == "run_1"
    assert response.capabilities_used == ("research",)
    assert response.usage.tokens_used == 12


def test_stream_closes_http_response_on_close():
    agent = make_agent(RecordingTransport())

    stream = agent.stream("Hola")
    next(stream)
    stream.close()

    assert stream.state is StreamState.CLOSED
    assert list(stream) == []


def test_stream_without_done_raises_protocol_error():
    agent = make_agent(RecordingTransport(body=b'event: token\ndata: {"text":"a"}\n\n'))

    with pytest.raises(StreamEndedWithoutResult):
        agent.stream("Hola").final_response()


def test_stream_api_error_is_raised_before_iteration():
    agent = make_agent(RecordingTransport(status=401, body=b'{"code":"invalid_api_key","message":"Bad key"}'))

    with pytest.raises(StewrdAPIError) as exc:
        agent.stream("Hola")

    assert exc.value.code == "invalid_api_key"


@pytest.mark.asyncio
async def test_astream_final_response():
    agent = make_agent(RecordingTransport())

    async with await agent.astream("Hola") as stream:
        response = await stream.final_response()

    assert response.message == "Hola"
    assert stream.state is StreamState.CLOSED


def test_stewrd_client_exposes_agent():
    client = Stewrd("sk-stw_test", base_url="https://api.example.dev", timeout_s=30.0)

    assert isinstance(client.agent, Agent)
    assert client.agent.base_url == "https://api.example.dev"
    assert client.agent.timeout_s == 30.0
    client.close()
