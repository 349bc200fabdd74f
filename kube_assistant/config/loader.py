"""Configuration loader for kube-assistant."""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import AliasChoices

from kube_assistant.config.schema import Settings

DEFAULT_CONFIG_DIR = Path.home() / ".kube-assistant"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

SECRET_FIELDS = {"openai_api_key"}


def _set_in_environment(key: str) -> bool:
    """Whether an environment variable already supplies the setting ``key``."""
    field = Settings.model_fields.get(key)
    if field is None:
        return False
    alias = field.validation_alias
    names = alias.choices if isinstance(alias, AliasChoices) else [key]
    env = {name.lower() for name in os.environ}
    return any(isinstance(name, str) and name.lower() in env for name in names)


def load_config(config_path: Path | None = None, **overrides: Any) -> Settings:
    """
    Load configuration from file, environment variables and explicit overrides.

    Priority: overrides (CLI flags) > environment variables > config file > defaults.
    Overrides whose value is None are ignored.

    Args:
        config_path: Optional path to config file. Defaults to ~/.kube-assistant/config.json.
        **overrides: Setting values that win over every other source.

    Returns:
        Loaded configuration.
    """
    path = config_path or DEFAULT_CONFIG_FILE
    data: dict[str, Any] = {}

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            logger.debug(f"Config loaded from {path}")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}, using defaults")
            data = {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config {path}: expected a JSON object")
            data = {}

    # Init values beat the environment in pydantic-settings, so file values
    # that the environment also sets are dropped here.
    data = {key: value for key, value in data.items() if not _set_in_environment(key)}
    data.update({key: value for key, value in overrides.items() if value is not None})
    return Settings(**data)


def save_default_config(config_path: Path | None = None) -> Path:
    """
    Save default configuration to file.

    Only defaults are written, and never the API key. Environment variables
    still take precedence over the written values.

    Args:
        config_path: Optional path to save config. Defaults to ~/.kube-assistant/config.json.

    Returns:
        Path where config was saved.
    """
    path = config_path or DEFAULT_CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    data = Settings.model_construct().model_dump(mode="json", exclude=SECRET_FIELDS)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info(f"Default config saved to {path}")
    return path
