"""Configuration schema using Pydantic."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from kube_assistant.providers.openai_provider import OPENAI_API_URL_V1, is_chat_model

DEFAULT_KUBECONFIG = Path.home() / ".kube" / "config"


def _env(name: str) -> AliasChoices:
    # Accept the field name (config file, CLI overrides) and the environment variable.
    return AliasChoices(name, name.upper())


class Settings(BaseSettings):
    """
    Runtime configuration for kube-assistant.

    Values come from CLI flags, an optional JSON config file and the
    environment variables of the kubectl plugin (OPENAI_API_KEY,
    OPENAI_ENDPOINT, USE_K8S_API, ...). Instances are immutable.
    """

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    openai_deployment_name: str = Field(
        default="gpt-3.5-turbo-0301",
        validation_alias=_env("openai_deployment_name"),
        description="The deployment name used for the model in OpenAI service.",
    )
    openai_api_key: str = Field(
        default="",
        validation_alias=_env("openai_api_key"),
        description="The API key for the OpenAI service. This is required.",
    )
    openai_endpoint: str = Field(
        default=OPENAI_API_URL_V1,
        validation_alias=_env("openai_endpoint"),
        description="The endpoint for OpenAI service. Set this to your Local AI endpoint or Azure OpenAI Service.",
    )
    azure_openai_map: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=dict,
        validation_alias=_env("azure_openai_map"),
        description="Mapping from OpenAI model to Azure OpenAI deployment, e.g. gpt-3.5-turbo=my-deployment.",
    )
    require_confirmation: bool = Field(
        default=True,
        validation_alias=_env("require_confirmation"),
        description="Whether to require confirmation before applying the manifest.",
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        validation_alias=_env("temperature"),
        description="Closer to 0 is more deterministic, higher is more creative.",
    )
    use_k8s_api: bool = Field(
        default=False,
        validation_alias=_env("use_k8s_api"),
        description="Whether the model may look up Kubernetes OpenAPI schemas through function calling.",
    )
    k8s_openapi_url: str = Field(
        default="",
        validation_alias=_env("k8s_openapi_url"),
        description="URL of a Kubernetes OpenAPI spec. Only used if use_k8s_api is true.",
    )
    debug: bool = Field(default=False, validation_alias=_env("debug"))
    kubeconfig: str = Field(default="", validation_alias=_env("kubeconfig"))
    namespace: str = Field(default="", validation_alias=AliasChoices("namespace", "KUBE_NAMESPACE"))
    max_tool_iterations: int = Field(default=20, ge=1, validation_alias=_env("max_tool_iterations"))
    request_timeout: float = Field(default=60.0, gt=0, validation_alias=_env("request_timeout"))

    @field_validator("azure_openai_map", mode="before")
    @classmethod
    def parse_model_map(cls, value: object) -> object:
        if isinstance(value, str):
            mapping: dict[str, str] = {}
            for item in value.split(","):
                if not item.strip():
                    continue
                key, sep, target = item.partition("=")
                if not sep:
                    raise ValueError(f"expected model=deployment, got {item.strip()!r}")
                mapping[key.strip()] = target.strip()
            return mapping
        return value

    @field_validator("kubeconfig", mode="before")
    @classmethod
    def first_kubeconfig(cls, value: object) -> object:
        # KUBECONFIG may hold a list of paths; the first one wins.
        if isinstance(value, str) and os.pathsep in value:
            return value.split(os.pathsep, 1)[0]
        return value

    @property
    def kubeconfig_path(self) -> Path:
        return Path(self.kubeconfig).expanduser() if self.kubeconfig else DEFAULT_KUBECONFIG

    @property
    def is_chat_model(self) -> bool:
        return is_chat_model(self.openai_deployment_name)

    @property
    def tools_enabled(self) -> bool:
        """Tool calling is only offered to chat models."""
        return self.use_k8s_api and self.is_chat_model
