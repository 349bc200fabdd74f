"""Utility functions module."""

from kube_assistant.utils.helpers import format_error, mask_secret, strip_code_fences
from kube_assistant.utils.logging import setup_logging

__all__ = ["format_error", "mask_secret", "setup_logging", "strip_code_fences"]
