from ollie.errors import (
    BackendHTTPError,
    OllieError,
    SerializationError,
    SessionBusyError,
    TransportError,
)
from ollie.events import BackendErrorEvent, MessageComplete, StreamEvent, TextDelta
from ollie.frames import Frame, JsonDocumentFrameReader, JsonLinesFrameReader, SseFrameReader
from ollie.instrumentation import instrument, uninstrument
from ollie.message import MessageRole, ToolCall, Turn
from ollie.options import GenerationOptions
from ollie.provider import GeminiProvider, ModelProvider, OllamaProvider
from ollie.session import Session, SessionState, generate
from ollie.stats import Stats, derive
from ollie.streaming import AssembledMessage, PartialMessage, accumulate
from ollie.tools import Tool, ToolCallResult, tool
from ollie.transcript import Transcript, WireFormat
from ollie.transport import HttpTransport, ResponseHandle

__all__ = [
    "AssembledMessage",
    "BackendErrorEvent",
    "BackendHTTPError",
    "Frame",
    "GeminiProvider",
    "GenerationOptions",
    "HttpTransport",
    "JsonDocumentFrameReader",
    "JsonLinesFrameReader",
    "MessageComplete",
    "MessageRole",
    "ModelProvider",
    "OllamaProvider",
    "OllieError",
    "PartialMessage",
    "ResponseHandle",
    "SerializationError",
    "Session",
    "SessionBusyError",
    "SessionState",
    "SseFrameReader",
    "Stats",
    "StreamEvent",
    "TextDelta",
    "Tool",
    "ToolCall",
    "ToolCallResult",
    "Transcript",
    "TransportError",
    "Turn",
    "WireFormat",
    "accumulate",
    "derive",
    "generate",
    "instrument",
    "tool",
    "uninstrument",
]
