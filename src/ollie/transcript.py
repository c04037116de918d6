"""Ordered, role-tagged conversation history owned by one session."""

from __future__ import annotations

import json
from collections.abc import Iterator
from enum import Enum
from typing import Any

from ollie.errors import SerializationError
from ollie.message import MessageRole, Turn
from ollie.streaming import AssembledMessage


class WireFormat(Enum):
    """Shape of the history field in an outbound request."""

    OLLAMA = "messages"
    GEMINI = "contents"


class Transcript:
    """Append-only list of :class:`Turn` objects in conversation order."""

    def __init__(self, turns: list[Turn] | None = None):
        self._turns: list[Turn] = list(turns or [])

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(list(self._turns))

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def append_prompt(self, role: MessageRole | str, text: str) -> Turn:
        turn = Turn(role=MessageRole(role), content=text)
        self._turns.append(turn)
        return turn

    def append_assembled(self, message: AssembledMessage) -> Turn:
        role = MessageRole.TOOL if message.role is MessageRole.TOOL else MessageRole.ASSISTANT
        turn = Turn(role=role, content=message.text, tool_calls=message.tool_calls)
        self._turns.append(turn)
        return turn

    def append_tool_result(self, tool_name: str, result_value: Any) -> Turn:
        content = result_value if isinstance(result_value, str) else _dumps(result_value)
        turn = Turn(
            role=MessageRole.TOOL,
            content=content,
            tool_name=tool_name,
            tool_result=result_value,
        )
        self._turns.append(turn)
        return turn

    def to_wire_format(self, wire: WireFormat = WireFormat.OLLAMA) -> list[dict]:
        """Serialize every turn, in order, for the next request.

        For :attr:`WireFormat.GEMINI` system turns are not part of
        ``contents``; see :meth:`system_instruction`.  Turns with nothing
        to send are left out, since Gemini rejects empty parts.
        """
        if wire is WireFormat.GEMINI:
            contents = [
                _to_gemini(turn) for turn in self._turns
                if turn.role is not MessageRole.SYSTEM
            ]
            return [c for c in contents if c["parts"]]
        return [_to_ollama(turn) for turn in self._turns]

    def system_instruction(self) -> dict | None:
        """Gemini ``systemInstruction`` built from the system turns, if any."""
        parts = [
            {"text": turn.content} for turn in self._turns
            if turn.role is MessageRole.SYSTEM
        ]
        return {"parts": parts} if parts else None


def _dumps(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"tool result is not JSON serializable: {e}") from e


def _to_ollama(turn: Turn) -> dict:
    message = {"role": turn.role.value, "content": turn.content}
    if turn.tool_calls:
        message["tool_calls"] = [
            {"function": {"name": tc.name, "arguments": tc.arguments}}
            for tc in turn.tool_calls
        ]
    if turn.tool_name is not None:
        message["name"] = turn.tool_name
    return message


_GEMINI_ROLES = {
    MessageRole.USER: "user",
    MessageRole.ASSISTANT: "model",
    MessageRole.TOOL: "user",
}


def _to_gemini(turn: Turn) -> dict:
    parts: list[dict] = []
    if turn.role is MessageRole.TOOL and turn.tool_name is not None:
        result = turn.tool_result
        response = result if isinstance(result, dict) else {"result": result}
        parts.append({"functionResponse": {"name": turn.tool_name, "response": response}})
    else:
        if turn.content:
            parts.append({"text": turn.content})
        for tc in turn.tool_calls:
            parts.append({"functionCall": {"name": tc.name, "args": tc.arguments}})
    return {"role": _GEMINI_ROLES[turn.role], "parts": parts}
