"""LLM providers module."""

from kube_assistant.providers.base import CompletionOutcome, FinalText, ToolCall, ToolCallRequest
from kube_assistant.providers.openai_provider import NON_CHAT_MODELS, CompletionClient, is_chat_model

__all__ = [
    "CompletionClient",
    "CompletionOutcome",
    "FinalText",
    "NON_CHAT_MODELS",
    "ToolCall",
    "ToolCallRequest",
    "is_chat_model",
]
