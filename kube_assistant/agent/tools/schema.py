"""Read-only Kubernetes schema lookup tools."""

from __future__ import annotations

import json
from typing import Any

from kube_assistant.agent.tools.base import Tool
from kube_assistant.agent.tools.registry import ToolRegistry
from kube_assistant.kube.openapi import OpenAPISchemaSource


class FindSchemaNamesTool(Tool):
    """List fully-qualified definition names matching a resource or field name."""

    def __init__(self, source: OpenAPISchemaSource) -> None:
        self._source = source

    @property
    def name(self) -> str:
        return "findSchemaNames"

    @property
    def description(self) -> str:
        return (
            "Get the list of possible fully-namespaced names for a specific Kubernetes resource. "
            "E.g. given `Container` return `io.k8s.api.core.v1.Container`. "
            "Given `EnvVarSource` return `io.k8s.api.core.v1.EnvVarSource`"
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "resourceName": {
                    "type": "string",
                    "description": "The name of a Kubernetes resource or field.",
                },
            },
            "required": ["resourceName"],
        }

    async def execute(self, *, resourceName: str, **kwargs: Any) -> str:
        names = await self._source.find_resource_names(resourceName)
        return "\n".join(names)


class GetSchemaTool(Tool):
    """Return the OpenAPI definition of one fully-qualified resource type."""

    def __init__(self, source: OpenAPISchemaSource) -> None:
        self._source = source

    @property
    def name(self) -> str:
        return "getSchema"

    @property
    def description(self) -> str:
        return "Get the OpenAPI schema for a Kubernetes resource"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "resourceType": {
                    "type": "string",
                    "description": (
                        "The type of the Kubernetes resource or object (e.g. subresource). "
                        "Must be fully namespaced, as returned by findSchemaNames"
                    ),
                },
            },
            "required": ["resourceType"],
        }

    async def execute(self, *, resourceType: str, **kwargs: Any) -> str:
        schema = await self._source.get_resource_schema(resourceType)
        return json.dumps(schema, separators=(",", ":"))


def build_schema_tools(source: OpenAPISchemaSource) -> ToolRegistry:
    """Build the registry holding the two schema lookup tools."""
    registry = ToolRegistry()
    registry.register(FindSchemaNamesTool(source))
    registry.register(GetSchemaTool(source))
    return registry
