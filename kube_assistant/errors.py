"""Exceptions raised by kube-assistant."""

from __future__ import annotations


class KubeAssistantError(Exception):
    """Base exception for all kube-assistant errors."""


class ProviderError(KubeAssistantError):
    """Raised when the completion provider cannot serve a request."""


class ProviderRequestError(ProviderError):
    """Raised when the provider answers with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"status code: {status_code}, message: {message}")
        self.status_code = status_code
        self.message = message


class ProviderConnectionError(ProviderError):
    """Raised when the provider endpoint cannot be reached."""


class CompletionProtocolError(ProviderError):
    """Raised when a provider response does not carry exactly one choice."""

    def __init__(self, received: int) -> None:
        super().__init__(f"expected choices to be 1 but received: {received}")
        self.received = received


class ToolError(KubeAssistantError):
    """Base class for tool dispatch errors."""


class ToolArgumentError(ToolError):
    """Raised when tool-call arguments cannot be decoded or fail validation."""

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(f"invalid arguments for tool '{tool_name}': {reason}")
        self.tool_name = tool_name
        self.reason = reason


class UnknownToolError(ToolError):
    """Raised when the model asks for a tool that is not registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"unknown tool '{tool_name}'")
        self.tool_name = tool_name


class ToolIterationLimitError(KubeAssistantError):
    """Raised when the model keeps requesting tools past the configured limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"model requested tools more than {limit} times without a final answer")
        self.limit = limit


class SchemaError(KubeAssistantError):
    """Raised when the OpenAPI schema does not have the expected shape."""


class SchemaFetchError(SchemaError):
    """Raised when the OpenAPI schema cannot be fetched."""


class ManifestApplyError(KubeAssistantError):
    """Raised when a generated manifest cannot be applied to the cluster."""
