import json

import httpx
import pytest

from ollie.provider import GeminiProvider, OllamaProvider
from ollie.tools import tool
from ollie.transport import HttpTransport


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------

def ndjson(*objects: dict) -> list[bytes]:
    """One newline-terminated JSON chunk per object (Ollama framing)."""
    return [(json.dumps(o) + "\n").encode() for o in objects]


def sse(*objects: dict) -> list[bytes]:
    """One ``data:`` event chunk per object (Gemini framing)."""
    return [f"data: {json.dumps(o)}\r\n\r\n".encode() for o in objects]


async def _body(chunks):
    for chunk in chunks:
        if isinstance(chunk, BaseException):
            raise chunk
        yield chunk


class FakeChunks:
    """Chunk source for frame readers. No network calls."""

    def __init__(self, chunks):
        self.chunks = list(chunks)

    async def next_chunk(self):
        if not self.chunks:
            return None
        return self.chunks.pop(0)


# ---------------------------------------------------------------------------
# Mock backend
# ---------------------------------------------------------------------------

class MockBackend:
    """Serves pre-queued chunked bodies through ``httpx.MockTransport``.

    Each queued item is a list of byte chunks (delivered exactly as
    given), an ``httpx.Response``, or an exception to raise on send.
    """

    def __init__(self):
        self.responses: list = []
        self.requests: list[httpx.Request] = []

    def queue(self, item) -> None:
        self.responses.append(item)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, content=_body(item))

    def transport(self) -> HttpTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return HttpTransport(client=client)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def ollama(backend):
    return OllamaProvider(host="localhost:11434", transport=backend.transport())


@pytest.fixture
def gemini(backend):
    return GeminiProvider(
        api_key="test-key",
        base_url="https://gemini.test/v1beta/models",
        transport=backend.transport(),
    )


@pytest.fixture
def weather_tool():
    @tool
    def get_weather(location: str, unit: str = "celsius"):
        """Get the current weather for a location."""
        return {"temp": "20C", "location": location, "unit": unit}
    return get_weather
