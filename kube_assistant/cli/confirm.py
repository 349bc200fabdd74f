"""Interactive confirmation before a manifest is applied."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from kube_assistant.config.schema import Settings
from kube_assistant.kube.kubeconfig import current_context_name

APPLY = "Apply"
DONT_APPLY = "Don't Apply"
REPROMPT = "Reprompt"


@dataclass(frozen=True)
class Decision:
    """What the user wants done with the generated manifest."""

    action: str
    reprompt: str = ""


def user_action_prompt(settings: Settings, console: Console) -> Decision:
    """
    Ask whether to apply the manifest.

    Without required confirmation the answer is always Apply. Choosing
    Reprompt asks for extra instructions that are sent with the next run.
    """
    if not settings.require_confirmation:
        return Decision(APPLY)

    # Prompt.ask lists the choices itself.
    label = "Would you like to apply this?"
    context = current_context_name(settings.kubeconfig_path)
    if context:
        label = f"(context: {escape(context)}) {label}"

    choice = Prompt.ask(label, choices=[APPLY, DONT_APPLY, REPROMPT], default=APPLY, console=console)
    if choice == REPROMPT:
        text = Prompt.ask(REPROMPT, console=console)
        return Decision(REPROMPT, text.strip())
    return Decision(choice)
