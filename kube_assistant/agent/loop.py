"""Conversation loop: completion calls interleaved with schema tool calls."""

from __future__ import annotations

from functools import partial

from loguru import logger

from kube_assistant.agent.context import build_transcript
from kube_assistant.agent.retry import RetryPolicy
from kube_assistant.agent.tools.registry import ToolRegistry
from kube_assistant.config.schema import Settings
from kube_assistant.errors import ToolIterationLimitError
from kube_assistant.providers.base import FinalText
from kube_assistant.providers.openai_provider import CompletionClient
from kube_assistant.utils.helpers import strip_code_fences


class ConversationLoop:
    """
    Turns prompt fragments into a manifest.

    Each run:
    1. Builds a fresh transcript from the instruction and the prompts
    2. Submits it through the retry policy
    3. Runs any requested tool and appends its output to the transcript
    4. Repeats until the model answers without a tool call

    Legacy non-chat models get exactly one plain completion and no tools.
    Any error that the retry policy does not absorb ends the run.
    """

    def __init__(
        self,
        client: CompletionClient,
        tools: ToolRegistry,
        settings: Settings,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.client = client
        self.tools = tools
        self.settings = settings
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_tool_iterations = settings.max_tool_iterations

    async def run(self, prompts: list[str]) -> str:
        """
        Generate a manifest for the given prompt fragments.

        Args:
            prompts: User prompt fragments, concatenated in order.

        Returns:
            The model's final answer with code fences removed.
        """
        tools_enabled = self.settings.tools_enabled
        temperature = self.settings.temperature
        transcript = build_transcript(prompts, tools_enabled)

        if not self.settings.is_chat_model:
            prompt = transcript.render()
            logger.debug(f"transcript: {transcript.describe()}")
            logger.debug(f"prompt: {prompt}")
            text = await self.retry_policy.call(partial(self.client.complete_text, prompt, temperature))
            logger.debug(f"result: {text}")
            return strip_code_fences(text)

        pending = ""
        tool_calls = 0
        while True:
            if pending:
                transcript.append("tool", pending)
            prompt = transcript.render()
            logger.debug(f"transcript: {transcript.describe()}")
            logger.debug(f"prompt: {prompt}")

            outcome = await self.retry_policy.call(
                partial(self.client.complete_chat, prompt, temperature, tools_enabled)
            )

            if isinstance(outcome, FinalText):
                logger.debug(f"result: {outcome.text}")
                return strip_code_fences(outcome.text)

            tool_calls += 1
            if tool_calls > self.max_tool_iterations:
                raise ToolIterationLimitError(self.max_tool_iterations)

            logger.debug(f"calling function: {outcome.request.name}")
            pending = await self.tools.dispatch(outcome.request)
            logger.debug(f"function result: {len(pending)} chars")
