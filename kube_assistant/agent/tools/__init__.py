"""Agent tools module."""

from kube_assistant.agent.tools.base import Tool
from kube_assistant.agent.tools.registry import ToolRegistry
from kube_assistant.agent.tools.schema import FindSchemaNamesTool, GetSchemaTool, build_schema_tools

__all__ = ["Tool", "ToolRegistry", "FindSchemaNamesTool", "GetSchemaTool", "build_schema_tools"]
