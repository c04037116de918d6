import json
import logging
import os

from ollie.frames import (
    Frame,
    FrameReader,
    JsonDocumentFrameReader,
    JsonLinesFrameReader,
    SseFrameReader,
)
from ollie.message import MessageRole, ToolCall
from ollie.options import GenerationOptions
from ollie.streaming import PartialMessage
from ollie.tools import Tool
from ollie.transcript import Transcript, WireFormat
from ollie.transport import HttpTransport, ResponseHandle

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_HOST = "127.0.0.1:11434"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class ModelProvider:
    """One backend: where to send requests and how to read the replies.

    Subclasses fill in the endpoint, the request body, the streaming frame
    reader and the frame decoder.  Everything else in a request/response
    cycle is backend-neutral and lives in :class:`ollie.session.Session`.
    """

    name = "base"
    wire_format = WireFormat.OLLAMA
    stream_reader: type[FrameReader] = JsonLinesFrameReader

    def __init__(self, transport: HttpTransport | None = None):
        self.transport = transport or HttpTransport()

    def endpoint(self, model: str, stream: bool) -> str:
        raise NotImplementedError

    def headers(self) -> dict[str, str]:
        return {}

    def build_body(
            self,
            model: str,
            transcript: Transcript,
            options: GenerationOptions,
            stream: bool = True,
            tools: list[Tool] | None = None,
    ) -> dict:
        raise NotImplementedError

    def decode(self, frame: Frame, stream: bool = True) -> PartialMessage | None:
        raise NotImplementedError

    def frame_reader(self, handle: ResponseHandle, stream: bool = True) -> FrameReader:
        if stream:
            return self.stream_reader(handle)
        return JsonDocumentFrameReader(handle)

    def generate_endpoint(self, model: str, stream: bool = True) -> str | None:
        """URL of a raw prompt-completion endpoint, or ``None`` if there is none."""
        return None

    def build_generate_body(
            self,
            model: str,
            prompt: str,
            options: GenerationOptions,
            stream: bool = True,
            system: str | None = None,
    ) -> dict:
        raise NotImplementedError

    async def open(self, model: str, body: dict, stream: bool = True) -> ResponseHandle:
        return await self.transport.send(
            self.endpoint(model, stream), body, headers=self.headers(),
        )

    async def open_generate(self, model: str, body: dict, stream: bool = True) -> ResponseHandle:
        return await self.transport.send(
            self.generate_endpoint(model, stream), body, headers=self.headers(),
        )

    async def aclose(self) -> None:
        await self.transport.aclose()


def _int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _role(value) -> MessageRole | None:
    if value == "model":
        return MessageRole.ASSISTANT
    try:
        return MessageRole(value)
    except ValueError:
        return None


def _arguments(value) -> dict:
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else {}
    if not isinstance(value, dict):
        raise TypeError(f"tool arguments must be an object, got {type(value).__name__}")
    return value


def _error_text(error) -> str | None:
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class OllamaProvider(ModelProvider):
    """Ollama ``/api/chat`` and ``/api/generate`` over newline-delimited JSON.

    Args:
        host: ``host:port`` or full URL.  Falls back to the
            ``OLLAMA_SERVER`` environment variable, then the local default.
        keep_alive: How long the server keeps the model loaded.
        format: ``"json"`` or a JSON schema to constrain the reply.
    """

    name = "ollama"
    wire_format = WireFormat.OLLAMA
    stream_reader = JsonLinesFrameReader

    def __init__(
            self,
            host: str | None = None,
            transport: HttpTransport | None = None,
            keep_alive: str | None = None,
            format: str | dict | None = None,
    ):
        super().__init__(transport)
        if not host:
            host = os.getenv("OLLAMA_SERVER", DEFAULT_OLLAMA_HOST)
        if not host.startswith(("http://", "https://")):
            host = f"http://{host}"
        self.base_url = host.rstrip("/")
        self.keep_alive = keep_alive
        self.format = format

    def endpoint(self, model, stream=True):
        return f"{self.base_url}/api/chat"

    def generate_endpoint(self, model, stream=True):
        return f"{self.base_url}/api/generate"

    def build_body(self, model, transcript, options, stream=True, tools=None):
        body = {
            "model": model,
            "messages": transcript.to_wire_format(WireFormat.OLLAMA),
            "stream": stream,
        }
        if tools:
            body["tools"] = [t.ollama_schema() for t in tools]
        return self._with_settings(body, options)

    def build_generate_body(self, model, prompt, options, stream=True, system=None):
        body = {"model": model, "prompt": prompt, "stream": stream}
        if system:
            body["system"] = system
        return self._with_settings(body, options)

    def _with_settings(self, body: dict, options: GenerationOptions) -> dict:
        wire_options = options.to_ollama()
        if wire_options:
            body["options"] = wire_options
        if self.format is not None:
            body["format"] = self.format
        if self.keep_alive is not None:
            body["keep_alive"] = self.keep_alive
        return body

    def decode(self, frame, stream=True):
        data = frame.value
        try:
            message = data.get("message") or {}
            text = message.get("content")
            if text is None:
                text = data.get("response")
            tool_calls = tuple(
                ToolCall(
                    name=tc["function"]["name"],
                    arguments=_arguments(tc["function"].get("arguments", {})),
                    id=tc.get("id"),
                )
                for tc in message.get("tool_calls") or []
            )
            done = bool(data.get("done"))
            return PartialMessage(
                text=text,
                thinking=message.get("thinking") or data.get("thinking"),
                final_text=text if done and not stream else None,
                role=_role(message.get("role")),
                tool_calls=tool_calls,
                done=done,
                done_reason=data.get("done_reason"),
                eval_count=_int(data.get("eval_count")),
                prompt_eval_count=_int(data.get("prompt_eval_count")),
                eval_duration=_int(data.get("eval_duration")),
                prompt_eval_duration=_int(data.get("prompt_eval_duration")),
                load_duration=_int(data.get("load_duration")),
                total_duration=_int(data.get("total_duration")),
                model=data.get("model"),
                created_at=data.get("created_at"),
                error=_error_text(data.get("error")),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping frame that does not match the chat shape: {e}")
            return None


class GeminiProvider(ModelProvider):
    """Gemini ``generateContent`` / ``streamGenerateContent`` over SSE.

    Args:
        api_key: Falls back to the ``GEMINI_API_KEY`` environment variable.
        base_url: Models collection URL, overridable for proxies and tests.
    """

    name = "gemini"
    wire_format = WireFormat.GEMINI
    stream_reader = SseFrameReader

    def __init__(
            self,
            api_key: str | None = None,
            base_url: str = GEMINI_BASE_URL,
            transport: HttpTransport | None = None,
    ):
        super().__init__(transport)
        if not api_key:
            api_key = os.getenv("GEMINI_API_KEY")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def endpoint(self, model, stream=True):
        model = model.removeprefix("models/")
        if stream:
            return f"{self.base_url}/{model}:streamGenerateContent?alt=sse"
        return f"{self.base_url}/{model}:generateContent"

    def headers(self):
        return {"x-goog-api-key": self.api_key} if self.api_key else {}

    def build_body(self, model, transcript, options, stream=True, tools=None):
        body = {"contents": transcript.to_wire_format(WireFormat.GEMINI)}
        system = transcript.system_instruction()
        if system:
            body["systemInstruction"] = system
        config = options.to_gemini()
        if config:
            body["generationConfig"] = config
        if tools:
            body["tools"] = [
                {"functionDeclarations": [t.gemini_declaration() for t in tools]}
            ]
        return body

    def decode(self, frame, stream=True):
        data = frame.value
        try:
            if data.get("error"):
                return PartialMessage(error=_error_text(data["error"]))

            candidates = data.get("candidates") or [{}]
            candidate = candidates[0]
            content = candidate.get("content") or {}
            texts, thoughts, tool_calls = [], [], []
            for part in content.get("parts") or []:
                if "functionCall" in part:
                    call = part["functionCall"]
                    tool_calls.append(ToolCall(
                        name=call["name"],
                        arguments=_arguments(call.get("args", {})),
                        id=call.get("id"),
                    ))
                elif "text" in part:
                    (thoughts if part.get("thought") else texts).append(part["text"])

            text = "".join(texts) if texts else None
            done_reason = candidate.get("finishReason")
            done = done_reason is not None
            usage = data.get("usageMetadata") or {}
            blocked = (data.get("promptFeedback") or {}).get("blockReason")
            return PartialMessage(
                text=text,
                thinking="".join(thoughts) if thoughts else None,
                final_text=text if done and not stream else None,
                role=_role(content.get("role")),
                tool_calls=tuple(tool_calls),
                done=done,
                done_reason=done_reason,
                eval_count=_int(usage.get("candidatesTokenCount")),
                prompt_eval_count=_int(usage.get("promptTokenCount")),
                model=data.get("modelVersion"),
                error=f"prompt blocked: {blocked}" if blocked else None,
            )
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.debug(f"Skipping frame that does not match the candidate shape: {e}")
            return None
