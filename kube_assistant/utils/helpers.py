"""Common utility functions."""

CODE_FENCES = ("```yaml", "```")


def strip_code_fences(text: str) -> str:
    """
    Remove Markdown code fence markers wherever they occur.

    This is a plain global replace, not a Markdown parser: fence pairing and
    position are ignored.

    Args:
        text: Model output.

    Returns:
        Text without any "```yaml" or "```" markers.
    """
    for fence in CODE_FENCES:
        text = text.replace(fence, "")
    return text


def mask_secret(value: str | None, visible: int = 8) -> str:
    """Keep only the last ``visible`` characters of a secret for display."""
    if not value:
        return ""
    return f"...{value[-visible:]}"


def format_error(error: BaseException) -> str:
    """``Type: message`` for the CLI error line; just ``Type`` when there is no message."""
    message = str(error).strip()
    return f"{type(error).__name__}: {message}" if message else type(error).__name__
