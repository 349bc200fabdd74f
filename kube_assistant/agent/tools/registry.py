"""Name-to-tool lookup table and dispatch."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from kube_assistant.agent.tools.base import Tool
from kube_assistant.errors import ToolArgumentError, UnknownToolError
from kube_assistant.providers.base import ToolCallRequest


class ToolRegistry:
    """In-memory tool registry."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        return [tool.to_schema() for tool in self._tools.values()]

    async def dispatch(self, call: ToolCallRequest) -> str:
        """
        Run the tool named by ``call`` with its JSON arguments.

        Raises:
            UnknownToolError: No tool is registered under that name.
            ToolArgumentError: The arguments are not a JSON object or do not
                match the tool's parameter schema.
        """
        tool = self._tools.get(call.name)
        if tool is None:
            raise UnknownToolError(call.name)

        params = _decode_arguments(call)
        errors = tool.validate_params(params)
        if errors:
            raise ToolArgumentError(call.name, "; ".join(errors))

        logger.debug(f"Executing tool: {call.name} {params}")
        return await tool.execute(**params)


def _decode_arguments(call: ToolCallRequest) -> dict[str, Any]:
    try:
        params = json.loads(call.arguments_json) if call.arguments_json else {}
    except json.JSONDecodeError as exc:
        raise ToolArgumentError(call.name, f"arguments are not valid JSON: {exc}") from exc
    if not isinstance(params, dict):
        raise ToolArgumentError(call.name, "arguments must be a JSON object")
    return params
