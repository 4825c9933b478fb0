import os

import pytest

from stewrd import Stewrd
from stewrd.types import DoneEvent, ErrorEvent, TokenEvent, Usage


@pytest.mark.integration
def test_agent_streaming_collect() -> None:
    client = Stewrd(os.environ["STEWRD_API_KEY"])

    pieces: list[str] = []
    with client.agent.stream("Say: hello") as stream:
        for event in stream:
            assert not isinstance(event, ErrorEvent), event.error
            if isinstance(event, TokenEvent):
                pieces.append(event.content)
        response = stream.response

    client.close()

    assert "".join(pieces).strip()
    assert response is not None
    assert response.id
    assert response.message


@pytest.mark.integration
def test_agent_streaming_final_response() -> None:
    client = Stewrd(os.environ["STEWRD_API_KEY"])

    with client.agent.stream("Reply with one word.") as stream:
        response = stream.final_response()

    client.close()

    assert response.object == "agent.response"
    assert response.usage.tokens_used >= 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_agent_astreaming_done_event() -> None:
    client = Stewrd(os.environ["STEWRD_API_KEY"])

    done: list[DoneEvent] = []
    async with await client.agent.astream("Say: hola") as stream:
        async for event in stream:
            if isinstance(event, DoneEvent):
                done.append(event)

    await client.aclose()

    assert len(done) == 1
    assert isinstance(done[0].usage, Usage)
