"""OpenAI-compatible completion client with tool-call parsing."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from kube_assistant.errors import (
    CompletionProtocolError,
    ProviderConnectionError,
    ProviderError,
    ProviderRequestError,
)
from kube_assistant.providers.base import CompletionOutcome, FinalText, ToolCall, ToolCallRequest

if TYPE_CHECKING:
    from kube_assistant.config.schema import Settings

OPENAI_API_URL_V1 = "https://api.openai.com/v1"

# Function calling on Azure OpenAI needs this API version or later.
AZURE_API_VERSION = "2023-07-01-preview"

NON_CHAT_MODELS = ("code-davinci-002", "text-davinci-003")


def is_chat_model(model: str) -> bool:
    """Return True unless the model only supports the legacy completions API."""
    return model not in NON_CHAT_MODELS


class CompletionClient:
    """
    Client for OpenAI-style `/completions` and `/chat/completions` endpoints.

    Works against api.openai.com, Azure OpenAI (endpoint contains
    ``openai.azure.com``) and OpenAI-compatible local servers such as LocalAI.
    Every method performs exactly one HTTP exchange.
    """

    def __init__(
        self,
        endpoint: str,
        model: str,
        api_key: str | None = None,
        azure_model_map: dict[str, str] | None = None,
        tool_definitions: list[dict[str, Any]] | None = None,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.azure_model_map = dict(azure_model_map or {})
        self.tool_definitions = list(tool_definitions or [])
        self.timeout_s = timeout_s
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        tool_definitions: list[dict[str, Any]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> CompletionClient:
        return cls(
            endpoint=settings.openai_endpoint,
            model=settings.openai_deployment_name,
            api_key=settings.openai_api_key or None,
            azure_model_map=settings.azure_openai_map,
            tool_definitions=tool_definitions,
            timeout_s=settings.request_timeout,
            transport=transport,
        )

    @property
    def is_azure(self) -> bool:
        return "openai.azure.com" in self.endpoint

    async def complete_text(self, prompt: str, temperature: float) -> str:
        """Run a legacy completion and return the text of its only choice."""
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": [prompt],
            "echo": False,
            "n": 1,
            "temperature": temperature,
        }
        data = await self._post("completions", payload)
        choice = self._single_choice(data)
        return str(choice.get("text") or "")

    async def complete_chat(
        self,
        transcript: str,
        temperature: float,
        tools_enabled: bool,
    ) -> CompletionOutcome:
        """Send the transcript as one user message and parse the single choice."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": transcript}],
            "n": 1,
            "temperature": temperature,
        }
        # Without tools the provider can only answer directly (tool choice "none").
        if tools_enabled and self.tool_definitions:
            payload["tools"] = self.tool_definitions
            payload["tool_choice"] = "auto"

        data = await self._post("chat/completions", payload)
        return self._parse_chat_choice(self._single_choice(data))

    def _url(self, path: str) -> str:
        if self.is_azure:
            deployment = self.azure_model_map.get(self.model, self.model)
            return f"{self.endpoint}/openai/deployments/{deployment}/{path}"
        return f"{self.endpoint}/{path}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            if self.is_azure:
                headers["api-key"] = self.api_key
            else:
                headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = self._url(path)
        params = {"api-version": AZURE_API_VERSION} if self.is_azure else None
        logger.debug(f"LLM request: url={url}, model={self.model}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.post(url, headers=self._headers(), params=params, json=payload)
        except httpx.HTTPError as exc:
            raise ProviderConnectionError(f"error calling model endpoint {url}: {exc}") from exc

        if resp.is_error:
            raise ProviderRequestError(resp.status_code, _error_message(resp))

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(f"model endpoint returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ProviderError("model endpoint returned a non-object JSON payload")
        return data

    @staticmethod
    def _single_choice(data: dict[str, Any]) -> dict[str, Any]:
        choices = data.get("choices") or []
        if len(choices) != 1:
            raise CompletionProtocolError(len(choices))
        return choices[0]

    @staticmethod
    def _parse_chat_choice(choice: dict[str, Any]) -> CompletionOutcome:
        message = choice.get("message") or {}

        raw_calls = message.get("tool_calls") or []
        if raw_calls:
            if len(raw_calls) > 1:
                logger.debug(f"Model requested {len(raw_calls)} tool calls, only the first is honored")
            first = raw_calls[0]
            return ToolCall(_tool_call_request(first.get("function") or {}, str(first.get("id", ""))))

        # Older servers still answer with the deprecated function-calling field.
        function_call = message.get("function_call")
        if function_call:
            return ToolCall(_tool_call_request(function_call, ""))

        content = message.get("content")
        # Some providers can return segmented content payloads.
        if isinstance(content, list):
            text_parts: list[str] = []
            for part in content:
                if isinstance(part, dict) and part.get("type") == "text":
                    text_parts.append(str(part.get("text", "")))
            content = "\n".join([part for part in text_parts if part])

        return FinalText(content or "")


def _tool_call_request(function: dict[str, Any], call_id: str) -> ToolCallRequest:
    arguments = function.get("arguments", "")
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return ToolCallRequest(name=str(function.get("name", "")), arguments_json=arguments, id=call_id)


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return resp.text or resp.reason_phrase
