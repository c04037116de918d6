"""Optional OpenTelemetry instrumentation for ollie.

Call ``ollie.instrument()`` once at startup to enable tracing.
Requires ``opentelemetry-api`` to be installed; the library
works identically without it.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "ollie") -> None:
    """Enable OpenTelemetry tracing for every session update.

    Call once at startup, after configuring your TracerProvider.
    Requires ``opentelemetry-api``: ``pip install ollie[otel]``

    Example::

        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider

        trace.set_tracer_provider(TracerProvider())

        import ollie
        ollie.instrument()

    Args:
        tracer_name: Name passed to ``trace.get_tracer()``.

    Raises:
        ImportError: If ``opentelemetry-api`` is not installed.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "opentelemetry-api is required for instrumentation. "
            "Install it with: pip install ollie[otel]"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured, spans will be "
            "discarded. Set up a TracerProvider to export "
            "traces."
        )
    else:
        logger.info("ollie instrumentation enabled")


def uninstrument() -> None:
    """Disable OpenTelemetry tracing."""
    global _tracer
    _tracer = None


@asynccontextmanager
async def completion_span(provider: str, model: str):
    """Wrap one session update in a ``chat`` span."""
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    with _tracer.start_as_current_span(
        f"chat {model}",
        kind=SpanKind.CLIENT,
        attributes={
            "gen_ai.operation.name": "chat",
            "gen_ai.provider.name": provider,
            "gen_ai.request.model": model,
        },
    ) as span:
        yield span


def record_usage(span, message) -> None:
    """Set token counts, finish reason and response model on a span."""
    if span is None or message is None:
        return
    if message.prompt_eval_count is not None:
        span.set_attribute(
            "gen_ai.usage.input_tokens",
            message.prompt_eval_count,
        )
    if message.eval_count is not None:
        span.set_attribute(
            "gen_ai.usage.output_tokens",
            message.eval_count,
        )
    if message.done_reason:
        span.set_attribute(
            "gen_ai.response.finish_reasons",
            [message.done_reason],
        )
    if message.model:
        span.set_attribute(
            "gen_ai.response.model", message.model
        )


def record_error(span, exception: BaseException) -> None:
    """Record an exception and set ERROR status on a span.

    No-ops when *span* is ``None`` (tracing disabled).
    """
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, str(exception))
    span.record_exception(exception)
    span.set_attribute(
        "error.type", type(exception).__qualname__
    )
