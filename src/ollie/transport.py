"""HTTP collaborator used by the providers.

The session only needs two things from the network: ``send(url, body)``
returning a live :class:`ResponseHandle`, and ``next_chunk()`` on that
handle.  Both are thin wrappers around :mod:`httpx`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

import httpx

from ollie.errors import BackendHTTPError, SerializationError, TransportError

logger = logging.getLogger(__name__)


def encode_body(body: dict) -> str:
    """Serialize a request body, raising :class:`SerializationError`."""
    try:
        return json.dumps(body)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"request body is not JSON serializable: {e}") from e


class ResponseHandle:
    """A live HTTP response whose body is read chunk by chunk."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self._chunks: AsyncIterator[bytes] | None = None
        self._closed = False

    async def next_chunk(self) -> bytes | None:
        """Return the next body chunk, or ``None`` once the body is exhausted.

        A response that was closed by the caller reads as exhausted.
        """
        if self._closed:
            return None
        if self._chunks is None:
            self._chunks = self.response.aiter_bytes()
        try:
            while True:
                chunk = await self._chunks.__anext__()
                if chunk:
                    return chunk
        except StopAsyncIteration:
            return None
        except httpx.StreamClosed:
            self._closed = True
            return None
        except httpx.TransportError as e:
            raise TransportError(f"error while reading response: {e}") from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.response.aclose()


class HttpTransport:
    """POSTs JSON bodies and hands back streaming response handles.

    Args:
        client: Optional pre-built ``httpx.AsyncClient``.  Tests pass one
            wired to ``httpx.MockTransport``.
        timeout: Request timeout in seconds when a client is created here.
        headers: Extra headers sent with every request.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 600.0,
        headers: dict[str, str] | None = None,
    ):
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.headers = {"Content-Type": "application/json", **(headers or {})}

    async def send(
        self, url: str, body: dict, headers: dict[str, str] | None = None,
    ) -> ResponseHandle:
        content = encode_body(body)
        request = self.client.build_request(
            "POST", url, content=content,
            headers={**self.headers, **(headers or {})},
        )
        logger.debug(f"POST {request.url}")
        try:
            response = await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            logger.error(f"Request to {request.url.host} failed: {e}")
            raise TransportError(str(e)) from e

        if not response.is_success:
            try:
                await response.aread()
                detail = _error_detail(response)
            finally:
                await response.aclose()
            logger.error(f"Backend returned HTTP {response.status_code}: {detail}")
            raise BackendHTTPError(response.status_code, detail)
        return ResponseHandle(response)

    async def aclose(self) -> None:
        await self.client.aclose()


def _error_detail(response: httpx.Response) -> str:
    """Pull a readable message out of an error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get("message", error))
    if error:
        return str(error)
    return response.text.strip()
