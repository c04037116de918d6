"""Frame readers: re-frame raw response bytes into JSON documents.

Two framings are supported behind one interface:

* :class:`JsonLinesFrameReader` for newline-delimited JSON bodies
  (Ollama).
* :class:`SseFrameReader` for Server-Sent-Event bodies whose events carry
  ``data:`` JSON payloads (Gemini).

:class:`JsonDocumentFrameReader` handles non-streamed replies, which may
be pretty-printed across many lines.

Readers never raise on malformed input.  A chunk that yields nothing
decodable simply produces no frame and the next chunk is pulled.
"""

from __future__ import annotations

import codecs
import json
import logging
import re
from collections import deque
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)

_SSE_EVENT_BREAK = re.compile(r"\r\n\r\n|\n\n|\r\r")
_DATA_MARKER = "data:"


class ChunkSource(Protocol):
    async def next_chunk(self) -> bytes | None: ...


@dataclass(frozen=True)
class Frame:
    """One decoded JSON document pulled off the wire.

    ``final`` is set when the frame was recovered from buffered bytes
    after the transport reported end of stream.
    """

    value: Any
    final: bool = False


def _decode_object(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


class FrameReader:
    """Pulls chunks from a response handle and yields :class:`Frame` objects.

    Subclasses implement :meth:`_extract`, which consumes the text buffer
    and returns decoded documents plus the unconsumed remainder.
    """

    def __init__(self, source: ChunkSource):
        self.source = source
        self.dropped = 0
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending: deque[Frame] = deque()
        self._exhausted = False

    def feed(self, chunk: bytes) -> list[Frame]:
        """Buffer a chunk and return the frames it completes."""
        self._buffer += self._decoder.decode(chunk)
        values, self._buffer = self._extract(self._buffer)
        return [Frame(value=v) for v in values]

    def flush(self) -> list[Frame]:
        """Decode whatever is left once the transport reports end of stream."""
        self._buffer += self._decoder.decode(b"", final=True)
        values, rest = self._extract(self._buffer)
        self._buffer = ""
        if rest.strip():
            self._drop(rest)
        return [Frame(value=v, final=True) for v in values]

    async def next_frame(self) -> Frame | None:
        """Return the next frame, or ``None`` at end of stream.

        Chunks that produce no frame are skipped transparently.
        """
        while not self._pending:
            if self._exhausted:
                return None
            chunk = await self.source.next_chunk()
            if chunk is None:
                self._exhausted = True
                self._pending.extend(self.flush())
            else:
                self._pending.extend(self.feed(chunk))
        return self._pending.popleft()

    async def __aiter__(self) -> AsyncIterator[Frame]:
        while (frame := await self.next_frame()) is not None:
            yield frame

    def _drop(self, text: str) -> None:
        self.dropped += 1
        logger.debug(f"Dropping undecodable frame: {text[:80]!r}")

    def _extract(self, buffer: str) -> tuple[list[dict], str]:
        raise NotImplementedError


class JsonLinesFrameReader(FrameReader):
    """Newline-delimited JSON, one object per line."""

    def _extract(self, buffer):
        *lines, tail = buffer.split("\n")
        values = []
        for line in lines:
            if not line.strip():
                continue
            value = _decode_object(line)
            if value is None:
                self._drop(line)
            else:
                values.append(value)

        # A body that is one document without a trailing newline is still
        # a complete frame; anything else waits for more bytes.
        if tail.strip():
            value = _decode_object(tail)
            if value is not None:
                values.append(value)
                tail = ""
        return values, tail


class JsonDocumentFrameReader(FrameReader):
    """A whole non-streamed body holding a single JSON document."""

    def _extract(self, buffer):
        if not buffer.strip():
            return [], buffer
        value = _decode_object(buffer)
        if value is None:
            return [], buffer
        return [value], ""


class SseFrameReader(FrameReader):
    """Server-Sent Events whose ``data:`` payload is a JSON document."""

    def _extract(self, buffer):
        *events, tail = _SSE_EVENT_BREAK.split(buffer)
        values = []
        for event in events:
            self._collect(event, values)

        if tail.strip():
            payload = self._payload(tail)
            if payload is not None:
                value = _decode_object(payload)
                if value is not None:
                    values.append(value)
                    tail = ""
        return values, tail

    def _collect(self, event: str, values: list[dict]) -> None:
        if not event.strip():
            return
        payload = self._payload(event)
        if payload is None:
            self._drop(event)
            return
        value = _decode_object(payload)
        if value is None:
            self._drop(payload)
        else:
            values.append(value)

    @staticmethod
    def _payload(event: str) -> str | None:
        """Join the ``data:`` lines of one event, or ``None`` if there are none."""
        if _DATA_MARKER not in event:
            return None
        data = []
        for line in event.splitlines():
            _, marker, rest = line.partition(_DATA_MARKER)
            if marker:
                data.append(rest.strip())
        return "\n".join(data).strip()
