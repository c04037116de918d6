"""Streaming primitives shared by every provider.

Providers decode each wire frame into a :class:`PartialMessage`.
:func:`accumulate` folds those partials, in arrival order, into one
:class:`AssembledMessage` for the turn.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace

from ollie.message import MessageRole, ToolCall
from ollie.text import remove_thinking

# Metadata copied from a partial whenever the partial carries a value.
_METADATA = (
    "done_reason",
    "eval_count",
    "prompt_eval_count",
    "eval_duration",
    "prompt_eval_duration",
    "load_duration",
    "total_duration",
    "model",
    "created_at",
)


@dataclass(frozen=True)
class PartialMessage:
    """Backend-neutral view of one decoded frame.

    ``text`` is an incremental fragment.  ``final_text`` is only set when
    the backend delivered the whole reply in one frame and is authoritative
    once ``done`` is set.
    """

    text: str | None = None
    thinking: str | None = None
    final_text: str | None = None
    role: MessageRole | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    done: bool = False
    done_reason: str | None = None
    eval_count: int | None = None
    prompt_eval_count: int | None = None
    eval_duration: int | None = None
    prompt_eval_duration: int | None = None
    load_duration: int | None = None
    total_duration: int | None = None
    model: str | None = None
    created_at: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class AssembledMessage:
    """The merged reply for one turn, in progress or finished.

    Durations are nanoseconds as reported by the backend.
    """

    role: MessageRole = MessageRole.ASSISTANT
    text: str = ""
    thinking: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    done: bool = False
    done_reason: str | None = None
    eval_count: int | None = None
    prompt_eval_count: int | None = None
    eval_duration: int | None = None
    prompt_eval_duration: int | None = None
    load_duration: int | None = None
    total_duration: int | None = None
    model: str | None = None
    created_at: str | None = None
    errors: tuple[str, ...] = ()

    @property
    def tokens_used(self) -> int:
        return (self.eval_count or 0) + (self.prompt_eval_count or 0)

    def finalize(self) -> AssembledMessage:
        """Mark the message complete even if no terminal partial arrived."""
        if self.done:
            return self
        return replace(self, done=True)

    def without_thinking(self) -> AssembledMessage:
        """Copy of this message with ``<think>`` blocks removed from the text."""
        return replace(self, text=remove_thinking(self.text))

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["role"] = self.role.value
        data["tool_calls"] = [tc.model_dump() for tc in self.tool_calls]
        data["errors"] = list(self.errors)
        return data


def accumulate(prior: AssembledMessage, partial: PartialMessage) -> AssembledMessage:
    """Merge one partial into the message built so far.

    Fragments are appended, never replaced; tool calls are appended in
    arrival order; metadata is overwritten by later values.  A terminal
    partial carrying ``final_text`` replaces the accumulated text.
    """
    changes: dict = {}

    if partial.role is not None:
        changes["role"] = partial.role
    if partial.text:
        changes["text"] = prior.text + partial.text
    if partial.thinking:
        changes["thinking"] = prior.thinking + partial.thinking
    if partial.tool_calls:
        changes["tool_calls"] = prior.tool_calls + partial.tool_calls
    if partial.error:
        changes["errors"] = prior.errors + (partial.error,)

    for name in _METADATA:
        value = getattr(partial, name)
        if value is not None:
            changes[name] = value

    if partial.done:
        changes["done"] = True
        if partial.final_text:
            changes["text"] = partial.final_text

    if not changes:
        return prior
    return replace(prior, **changes)
