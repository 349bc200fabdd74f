"""Entry point for `python -m kube_assistant`."""

from kube_assistant.cli.commands import app

if __name__ == "__main__":
    app()
