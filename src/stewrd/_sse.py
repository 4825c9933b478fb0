"""
Incremental framing for the Server-Sent Events (SSE) stream of the agent API.
Turns arbitrarily chunked bytes into delimited text blocks and each block into
an (event kind, parsed JSON payload) pair.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SEPARATOR = "\n\n"
EVENT_PREFIX = "event:"
DATA_PREFIX = "data:"


@dataclass(frozen=True, slots=True)
class SSEBlock:
    """
    One well-formed block of the stream.
    Stores the event kind and the already-parsed JSON payload.
    """

    event: str
    data: Any


class FrameBuffer:
    """
    Accumulates raw bytes and splits the decoded text into blocks.

    Bytes go through an incremental UTF-8 decoder, so a multi-byte character
    split across chunks is carried forward instead of being corrupted. The
    internal buffer only ever holds the text after the last complete block.
    """

    __slots__ = ("_decoder", "_buffer")

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)("replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Decoded text not yet consumed into a complete block."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """
        Decode a chunk and return every block it completes, in stream order.

        Args:
            chunk: Raw bytes as received from the transport.

        Returns:
            The complete blocks, without their trailing separator.
        """
        self._buffer += self._decoder.decode(chunk)
        return self._take_complete()

    def flush(self) -> list[str]:
        """
        Signal end of input.

        Any leftover text that is not just whitespace becomes a final block even
        without a trailing separator. The buffer is empty afterwards.
        """
        self._buffer += self._decoder.decode(b"", final=True)
        blocks = self._take_complete()
        if self._buffer.strip():
            blocks.append(self._buffer)
        self._buffer = ""
        return blocks

    def _take_complete(self) -> list[str]:
        if SEPARATOR not in self._buffer:
            return []
        *blocks, self._buffer = self._buffer.split(SEPARATOR)
        return blocks


def parse_block(block: str) -> SSEBlock | None:
    """
    Parse a single block of text into an SSEBlock.

    The last ``event:`` line names the kind; ``data:`` lines are trimmed and
    concatenated without a separator before JSON decoding.

    Args:
        block: The text of one block, separator excluded.

    Returns:
        The parsed block, or None when the kind or payload is missing or the
        payload is not valid JSON.
    """
    event = ""
    data_parts: list[str] = []

    for line in block.split("\n"):
        if line.startswith(EVENT_PREFIX):
            event = line[len(EVENT_PREFIX):].strip()
        elif line.startswith(DATA_PREFIX):
            data_parts.append(line[len(DATA_PREFIX):].strip())

    data = "".join(data_parts)
    if not event or not data:
        logger.debug("Dropping SSE block without event or data: %r", block[:200])
        return None

    try:
        payload = json.loads(data)
    except ValueError:
        logger.debug("Dropping SSE block %r with invalid JSON payload", event)
        return None

    return SSEBlock(event=event, data=payload)
