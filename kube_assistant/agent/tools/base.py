"""Tool contract for functions the model may call."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Tool(ABC):
    """
    A function offered to the model.

    ``parameters`` is a JSON-schema object whose properties are string
    arguments. It is sent to the provider as is and used to check the
    arguments of every call before ``execute`` runs.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        pass

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Problems with ``params``; empty when the call may run."""
        properties = self.parameters.get("properties", {})
        errors = [f"missing required {key}" for key in self.parameters.get("required", []) if key not in params]

        for key, value in params.items():
            declared = properties.get(key)
            if declared is None or declared.get("type") != "string":
                continue
            if not isinstance(value, str):
                errors.append(f"{key} should be string")
            elif len(value) < declared.get("minLength", 0):
                errors.append(f"{key} must be at least {declared['minLength']} chars")
        return errors

    def to_schema(self) -> dict[str, Any]:
        """OpenAI ``tools`` entry for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
