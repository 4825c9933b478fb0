"""
Lazy, pull-driven event streams over the agent API's SSE byte stream.

Usage:
    with agent.stream("Summarise this repo") as stream:
        for event in stream:
            if event.type == "token":
                print(event.content, end="", flush=True)

    async with agent.astream("...") as stream:
        response = await stream.final_response()
"""

from __future__ import annotations

from enum import Enum
from typing import AsyncGenerator, AsyncIterable, AsyncIterator, Awaitable, Callable, Generator, Iterable, Iterator, Optional

from stewrd._errors import StreamEndedWithoutResult
from stewrd._normalize import normalize_event
from stewrd._sse import FrameBuffer, parse_block
from stewrd.types import AgentResponse, DoneEvent, StreamEvent, TokenEvent


class StreamState(str, Enum):
    """Lifecycle of a stream: OPEN while reading, DRAINING on end of input, then CLOSED."""

    OPEN = "open"
    DRAINING = "draining"
    CLOSED = "closed"


class EventDecoder:
    """
    Bytes in, typed events out, for a single stream.

    Blocks that fail to parse and events of unknown kinds produce nothing.
    """

    __slots__ = ("_frames",)

    def __init__(self) -> None:
        self._frames = FrameBuffer()

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Decode one chunk and return the events of every block it completes."""
        return self._decode(self._frames.feed(chunk))

    def flush(self) -> list[StreamEvent]:
        """Signal end of input and return the events of the trailing block, if any."""
        return self._decode(self._frames.flush())

    @staticmethod
    def _decode(blocks: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for block in blocks:
            parsed = parse_block(block)
            if parsed is None:
                continue
            event = normalize_event(parsed.event, parsed.data)
            if event is not None:
                events.append(event)
        return events


class _StreamBase:
    def __init__(self) -> None:
        self._decoder = EventDecoder()
        self._state = StreamState.OPEN
        self._response: Optional[AgentResponse] = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def response(self) -> Optional[AgentResponse]:
        """The response of the last ``done`` event yielded so far, if any."""
        return self._response

    def _drain(self) -> list[StreamEvent]:
        self._state = StreamState.DRAINING
        events = self._decoder.flush()
        self._state = StreamState.CLOSED
        return events

    def _remember(self, event: StreamEvent) -> StreamEvent:
        if isinstance(event, DoneEvent):
            self._response = event.response
        return event

    def _result(self) -> AgentResponse:
        if self._response is None:
            raise StreamEndedWithoutResult()
        return self._response


class AgentStream(_StreamBase):
    """
    Single-pass iterator of StreamEvent over a synchronous byte source.

    A chunk is only read when the consumer asks for an event that is not
    buffered yet. Closing the stream (or leaving its ``with`` block) stops all
    further reads and runs ``on_close``.
    """

    def __init__(self, source: Iterable[bytes], *, on_close: Callable[[], None] | None = None) -> None:
        super().__init__()
        self._source = source
        self._on_close = on_close
        self._events = self._iter_events()

    def __iter__(self) -> Iterator[StreamEvent]:
        return self

    def __next__(self) -> StreamEvent:
        return next(self._events)

    def __enter__(self) -> AgentStream:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _iter_events(self) -> Generator[StreamEvent, None, None]:
        try:
            for chunk in self._source:
                for event in self._decoder.feed(chunk):
                    yield self._remember(event)
            for event in self._drain():
                yield self._remember(event)
        finally:
            self._release()

    def _release(self) -> None:
        self._state = StreamState.CLOSED
        on_close, self._on_close = self._on_close, None
        if on_close is not None:
            on_close()

    def close(self) -> None:
        """Abandon the stream. No further chunks are read."""
        self._events.close()
        self._release()

    def final_response(self) -> AgentResponse:
        """
        Consume the rest of the stream and return the final AgentResponse.

        Raises:
            StreamEndedWithoutResult: If the stream closed without a ``done`` event.
        """
        for _ in self:
            pass
        return self._result()

    def text(self) -> str:
        """Consume the rest of the stream and join the token contents."""
        return "".join(event.content for event in self if isinstance(event, TokenEvent))


class AsyncAgentStream(_StreamBase):
    """Async counterpart of AgentStream, consumed with ``async for``."""

    def __init__(
        self,
        source: AsyncIterable[bytes],
        *,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__()
        self._source = source
        self._on_close = on_close
        self._events = self._aiter_events()

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self

    async def __anext__(self) -> StreamEvent:
        return await self._events.__anext__()

    async def __aenter__(self) -> AsyncAgentStream:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _aiter_events(self) -> AsyncGenerator[StreamEvent, None]:
        try:
            async for chunk in self._source:
                for event in self._decoder.feed(chunk):
                    yield self._remember(event)
            for event in self._drain():
                yield self._remember(event)
        finally:
            await self._release()

    async def _release(self) -> None:
        self._state = StreamState.CLOSED
        on_close, self._on_close = self._on_close, None
        if on_close is not None:
            await on_close()

    async def aclose(self) -> None:
        """Abandon the stream. No further chunks are read."""
        await self._events.aclose()
        await self._release()

    async def final_response(self) -> AgentResponse:
        """
        Consume the rest of the stream and return the final AgentResponse.

        Raises:
            StreamEndedWithoutResult: If the stream closed without a ``done`` event.
        """
        async for _ in self:
            pass
        return self._result()

    async def text(self) -> str:
        """Consume the rest of the stream and join the token contents."""
        parts: list[str] = []
        async for event in self:
            if isinstance(event, TokenEvent):
                parts.append(event.content)
        return "".join(parts)
