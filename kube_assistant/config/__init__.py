"""Configuration module."""

from kube_assistant.config.loader import load_config, save_default_config
from kube_assistant.config.schema import Settings

__all__ = ["Settings", "load_config", "save_default_config"]
