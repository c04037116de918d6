"""Events yielded by :meth:`ollie.session.Session.iter`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class StreamEvent:
    """Base for all streaming events."""


@dataclass
class TextDelta(StreamEvent):
    """A text fragment, in network-arrival order."""

    content: str = ""


@dataclass
class BackendErrorEvent(StreamEvent):
    """An ``error`` field reported inside an otherwise valid frame."""

    message: str = ""


@dataclass
class MessageComplete(StreamEvent):
    """Final event: the committed :class:`AssembledMessage`."""

    message: Any = None
