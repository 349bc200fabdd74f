"""Manifest generation agent."""

from kube_assistant.agent.loop import ConversationLoop
from kube_assistant.agent.retry import RetryPolicy, is_rate_limited

__all__ = ["ConversationLoop", "RetryPolicy", "is_rate_limited"]
