"""Kubeconfig helpers: current context and default namespace."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from kubernetes import config as kube_config
from kubernetes.config import ConfigException
from loguru import logger

DEFAULT_NAMESPACE = "default"


def _active_context(kubeconfig: Path) -> dict[str, Any]:
    _, active = kube_config.list_kube_config_contexts(config_file=str(kubeconfig))
    return active or {}


def current_context_name(kubeconfig: Path) -> str | None:
    """Name of the kubeconfig's current context, or None when it cannot be read."""
    try:
        return _active_context(kubeconfig).get("name")
    except (ConfigException, OSError) as e:
        logger.debug(f"Unable to read current context from {kubeconfig}: {e}")
        return None


def resolve_namespace(kubeconfig: Path, override: str = "") -> str:
    """
    Namespace for namespaced objects that do not set one.

    An explicit override wins, then the current context's namespace, then "default".
    """
    if override:
        return override
    try:
        context = _active_context(kubeconfig).get("context") or {}
    except (ConfigException, OSError) as e:
        logger.debug(f"Unable to read namespace from {kubeconfig}: {e}")
        return DEFAULT_NAMESPACE
    return context.get("namespace") or DEFAULT_NAMESPACE
