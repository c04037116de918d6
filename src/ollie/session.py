"""Session controller: one request/response cycle at a time.

A :class:`Session` binds a model, a provider, generation options and a
:class:`~ollie.transcript.Transcript`.  Each :meth:`Session.update`
sends the whole transcript, streams the reply through the provider's
frame reader and decoder, folds the partials into one
:class:`~ollie.streaming.AssembledMessage` and commits it as a new turn.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from enum import Enum
from typing import Any

from ollie.events import BackendErrorEvent, MessageComplete, StreamEvent, TextDelta
from ollie.errors import SessionBusyError
from ollie.frames import FrameReader
from ollie.instrumentation import completion_span, record_error, record_usage
from ollie.message import MessageRole, Turn
from ollie.options import DEFAULT_CONTEXT_WINDOW, GenerationOptions
from ollie.provider import ModelProvider, OllamaProvider
from ollie.stats import derive
from ollie.streaming import AssembledMessage, accumulate
from ollie.tools import Tool
from ollie.transcript import Transcript

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMMITTING = "committing"
    FAILED = "failed"


_IN_FLIGHT = (SessionState.SENDING, SessionState.STREAMING, SessionState.COMMITTING)


class Session:
    """A conversation with one model.

    Args:
        model: Model identifier understood by the provider.
        provider: Backend to talk to.  Defaults to a local Ollama server.
        options: Generation options sent with every request.
        tools: Tools declared to the model on every request.
        stream: Ask the backend for an incrementally delivered reply.

    Updates on one session must be awaited one after the other.
    """

    def __init__(
        self,
        model: str,
        provider: ModelProvider | None = None,
        options: GenerationOptions | None = None,
        tools: list[Tool] | None = None,
        stream: bool = True,
    ):
        self.model = model
        self.provider = provider or OllamaProvider()
        self.options = options or GenerationOptions()
        self.tools = list(tools or [])
        self.stream = stream
        self.transcript = Transcript()
        self.state = SessionState.IDLE

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.provider.aclose()

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def append_prompt(self, role: MessageRole | str, text: str) -> Turn:
        return self.transcript.append_prompt(role, text)

    def append_tool_result(self, tool_name: str, result_value: Any) -> Turn:
        return self.transcript.append_tool_result(tool_name, result_value)

    def system(self, text: str) -> Turn:
        return self.append_prompt(MessageRole.SYSTEM, text)

    def user(self, text: str) -> Turn:
        return self.append_prompt(MessageRole.USER, text)

    def assistant(self, text: str) -> Turn:
        return self.append_prompt(MessageRole.ASSISTANT, text)

    def tool(self, tool_name: str, result_value: Any) -> Turn:
        return self.append_tool_result(tool_name, result_value)

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def generation_options(self) -> GenerationOptions:
        """A copy of the options; mutate ``self.options`` to change them."""
        return self.options.model_copy(deep=True)

    def context_window_size(self) -> int:
        return self.options.num_ctx or DEFAULT_CONTEXT_WINDOW

    def set_context_window_size(self, num_ctx: int) -> None:
        self.options.num_ctx = num_ctx

    # ------------------------------------------------------------------
    # Request/response cycle
    # ------------------------------------------------------------------

    async def prompt(
        self,
        text: str,
        callback: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> AssembledMessage:
        """Append a user turn and run :meth:`update`."""
        self.user(text)
        return await self.update(callback, on_error)

    async def update(
        self,
        callback: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> AssembledMessage:
        """Send the transcript and return the committed reply.

        ``callback`` receives every text fragment as it arrives.  Errors
        reported by the backend go to ``on_error``, or to ``callback``
        when no ``on_error`` is given.  An exception raised by either
        aborts the update with the transcript unchanged.
        """
        result: AssembledMessage | None = None
        async with aclosing(self.iter()) as events:
            async for event in events:
                if isinstance(event, MessageComplete):
                    result = event.message
                    continue
                try:
                    _deliver(event, callback, on_error)
                except Exception as e:
                    # Thrown into the generator so the partial reply is discarded.
                    await events.athrow(e)
                    raise
        if result is None:
            raise RuntimeError("iter() ended without emitting MessageComplete")
        return result

    async def iter(self) -> AsyncIterator[StreamEvent]:
        """Run one cycle, yielding events as the reply streams in.

        A transport or serialization failure leaves the transcript as it
        was, and so does an exception thrown into the generator with
        ``athrow()``.  If the consumer stops early or the task is cancelled,
        the text received so far is committed before the exception
        propagates.
        """
        if self.state in _IN_FLIGHT:
            raise SessionBusyError(f"session is already {self.state.value}")

        self.state = SessionState.SENDING
        async with completion_span(self.provider.name, self.model) as span:
            try:
                body = self.provider.build_body(
                    self.model, self.transcript, self.options,
                    stream=self.stream, tools=self.tools,
                )
                handle = await self.provider.open(self.model, body, self.stream)
            except BaseException as e:
                self._fail(span, e)
                raise

            self.state = SessionState.STREAMING
            reader = self.provider.frame_reader(handle, self.stream)
            message = AssembledMessage()
            skipped = 0
            try:
                while (frame := await reader.next_frame()) is not None:
                    partial = self.provider.decode(frame, self.stream)
                    if partial is None:
                        skipped += 1
                        continue
                    message = accumulate(message, partial)
                    if partial.error:
                        logger.warning(f"{self.provider.name} reported an error: {partial.error}")
                        yield BackendErrorEvent(message=partial.error)
                    if partial.text:
                        yield TextDelta(content=partial.text)
                    if message.done:
                        break
            except (GeneratorExit, asyncio.CancelledError):
                self._commit(message, reader, skipped)
                raise
            except BaseException as e:
                self._fail(span, e)
                raise
            finally:
                await handle.aclose()

            message = self._commit(message, reader, skipped)
            record_usage(span, message)
        yield MessageComplete(message=message)

    def _commit(self, message: AssembledMessage, reader: FrameReader, skipped: int) -> AssembledMessage:
        self.state = SessionState.COMMITTING
        message = message.finalize()
        dropped = reader.dropped + skipped
        if dropped:
            logger.warning(f"Dropped {dropped} undecodable frame(s) from {self.provider.name}")
        self.transcript.append_assembled(message)
        self.state = SessionState.IDLE
        stats = derive(message)
        logger.info(
            f"{self.model}: {len(message.text)} chars, {stats.tokens_used} tokens, "
            f"{stats.tokens_per_second:.1f} tokens/s"
        )
        return message

    def _fail(self, span, exception: BaseException) -> None:
        self.state = SessionState.FAILED
        if isinstance(exception, Exception):
            logger.error(f"Update failed: {exception}")
            record_error(span, exception)


async def generate(
    provider: ModelProvider,
    model: str,
    prompt: str,
    callback: Callable[[str], None] | None = None,
    system: str | None = None,
    options: GenerationOptions | None = None,
    stream: bool = True,
) -> AssembledMessage:
    """One-shot completion that keeps no conversation state.

    Providers with a raw completion endpoint (Ollama ``/api/generate``)
    are sent the bare prompt; others run a throwaway :class:`Session`.
    Backend error fields are passed to ``callback`` like text.
    """
    options = options or GenerationOptions()
    if provider.generate_endpoint(model, stream) is None:
        session = Session(model, provider=provider, options=options, stream=stream)
        if system:
            session.system(system)
        return await session.prompt(prompt, callback)

    async with completion_span(provider.name, model) as span:
        try:
            body = provider.build_generate_body(
                model, prompt, options, stream=stream, system=system,
            )
            handle = await provider.open_generate(model, body, stream)
        except Exception as e:
            record_error(span, e)
            raise

        reader = provider.frame_reader(handle, stream)
        message = AssembledMessage()
        try:
            while (frame := await reader.next_frame()) is not None:
                partial = provider.decode(frame, stream)
                if partial is None:
                    continue
                message = accumulate(message, partial)
                if partial.error:
                    logger.warning(f"{provider.name} reported an error: {partial.error}")
                    if callback is not None:
                        callback(partial.error)
                if partial.text and callback is not None:
                    callback(partial.text)
                if message.done:
                    break
        except Exception as e:
            logger.error(f"Generate failed: {e}")
            record_error(span, e)
            raise
        finally:
            await handle.aclose()

        message = message.finalize()
        record_usage(span, message)
    return message


def _deliver(
    event: StreamEvent,
    callback: Callable[[str], None] | None,
    on_error: Callable[[str], None] | None,
) -> None:
    if isinstance(event, TextDelta):
        if callback is not None:
            callback(event.content)
    elif isinstance(event, BackendErrorEvent):
        handler = on_error or callback
        if handler is not None:
            handler(event.message)
