"""Provider data types shared by the completion client and the loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class ToolCallRequest:
    """Tool call request emitted by the model."""

    name: str
    arguments_json: str
    id: str = ""


@dataclass(frozen=True)
class FinalText:
    """The model answered directly, no tool was requested."""

    text: str


@dataclass(frozen=True)
class ToolCall:
    """The model asked for a tool to be run before it continues."""

    request: ToolCallRequest


CompletionOutcome = Union[FinalText, ToolCall]
