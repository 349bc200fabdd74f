"""CLI commands for kube-assistant."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kube_assistant import __version__
from kube_assistant.agent.loop import ConversationLoop
from kube_assistant.agent.tools.schema import build_schema_tools
from kube_assistant.cli.confirm import APPLY, DONT_APPLY, Decision, user_action_prompt
from kube_assistant.config import Settings, load_config, save_default_config
from kube_assistant.errors import KubeAssistantError
from kube_assistant.kube.apply import ManifestApplier
from kube_assistant.kube.openapi import OpenAPISchemaSource
from kube_assistant.providers.openai_provider import CompletionClient
from kube_assistant.utils.helpers import format_error, mask_secret
from kube_assistant.utils.logging import setup_logging

app = typer.Typer(
    name="kubectl-assistant",
    help="kubectl-assistant: generate Kubernetes manifests with an OpenAI-compatible model and apply them",
    no_args_is_help=True,
)
console = Console()


def build_loop(settings: Settings) -> ConversationLoop:
    """Wire the schema tools, completion client and loop for one set of settings."""
    source = OpenAPISchemaSource(
        openapi_url=settings.k8s_openapi_url,
        kubeconfig=settings.kubeconfig_path,
        timeout_s=settings.request_timeout,
    )
    tools = build_schema_tools(source)
    client = CompletionClient.from_settings(settings, tool_definitions=tools.get_definitions())
    return ConversationLoop(client=client, tools=tools, settings=settings)


def _is_local_api_base(url: str) -> bool:
    lowered = url.lower()
    return "localhost" in lowered or "127.0.0.1" in lowered


def _log_settings(settings: Settings) -> None:
    logger.debug(f"openai-endpoint: {settings.openai_endpoint}")
    logger.debug(f"openai-deployment-name: {settings.openai_deployment_name}")
    logger.debug(f"azure-openai-map: {settings.azure_openai_map}")
    logger.debug(f"temperature: {settings.temperature}")
    logger.debug(f"use-k8s-api: {settings.use_k8s_api}")
    logger.debug(f"k8s-openapi-url: {settings.k8s_openapi_url}")
    logger.debug(f"kubeconfig: {settings.kubeconfig_path}")


def _generate(loop: ConversationLoop, prompts: list[str], show_spinner: bool) -> str:
    if not show_spinner:
        return asyncio.run(loop.run(prompts))
    with console.status("Processing...", spinner="dots"):
        return asyncio.run(loop.run(prompts))


def _run(settings: Settings, prompts: list[str], raw: bool) -> None:
    loop = build_loop(settings)
    show_spinner = not (raw or settings.debug)

    decision = Decision(action="")
    completion = ""
    while decision.action != APPLY:
        if decision.reprompt:
            prompts.append(f" {decision.reprompt}")

        completion = _generate(loop, prompts, show_spinner)

        if raw:
            typer.echo(completion)
            return

        console.print("✨ Attempting to apply the following manifest:")
        console.print(completion, markup=False, highlight=False)

        decision = user_action_prompt(settings, console)
        if decision.action == DONT_APPLY:
            return

    applier = ManifestApplier(settings.kubeconfig_path, namespace=settings.namespace)
    for ref in asyncio.run(applier.apply(completion)):
        console.print(f"[green]✔[/green] {ref} applied")


@app.command()
def generate(
    prompt: list[str] = typer.Argument(..., help="What to create, e.g. 'an nginx deployment with 3 replicas'"),
    openai_api_key: Optional[str] = typer.Option(None, "--openai-api-key", help="The API key for the OpenAI service."),
    openai_endpoint: Optional[str] = typer.Option(
        None, "--openai-endpoint", help="OpenAI, Azure OpenAI or Local AI endpoint."
    ),
    openai_deployment_name: Optional[str] = typer.Option(
        None, "--openai-deployment-name", help="The deployment name used for the model in OpenAI service."
    ),
    azure_openai_map: Optional[str] = typer.Option(
        None, "--azure-openai-map", help="Model to Azure deployment mapping, e.g. gpt-3.5-turbo=my-deployment."
    ),
    temperature: Optional[float] = typer.Option(None, "--temperature", help="Sampling temperature (0 to 2)."),
    use_k8s_api: Optional[bool] = typer.Option(
        None, "--use-k8s-api/--no-use-k8s-api", help="Let the model look up Kubernetes OpenAPI schemas."
    ),
    k8s_openapi_url: Optional[str] = typer.Option(
        None, "--k8s-openapi-url", help="URL of a Kubernetes OpenAPI spec, used with --use-k8s-api."
    ),
    require_confirmation: Optional[bool] = typer.Option(
        None, "--require-confirmation/--no-require-confirmation", help="Ask before applying the manifest."
    ),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace for namespaced objects."),
    debug: Optional[bool] = typer.Option(None, "--debug/--no-debug", help="Print debug logs."),
    raw: bool = typer.Option(False, "--raw", help="Print the raw YAML output immediately and exit."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Generate a manifest from a natural-language request and apply it."""
    try:
        settings = load_config(
            config_path,
            openai_api_key=openai_api_key,
            openai_endpoint=openai_endpoint,
            openai_deployment_name=openai_deployment_name,
            azure_openai_map=azure_openai_map,
            temperature=temperature,
            use_k8s_api=use_k8s_api,
            k8s_openapi_url=k8s_openapi_url,
            require_confirmation=require_confirmation,
            kubeconfig=kubeconfig,
            namespace=namespace,
            debug=debug,
        )
    except ValidationError as e:
        console.print(f"[red]Error:[/red] invalid configuration\n{escape(str(e))}")
        raise typer.Exit(1)

    setup_logging(settings.debug)
    if settings.debug:
        _log_settings(settings)

    if not settings.openai_api_key and not _is_local_api_base(settings.openai_endpoint):
        console.print("[red]Please provide an OpenAI key.[/red]")
        console.print("Set OPENAI_API_KEY or pass --openai-api-key (or use a local endpoint).")
        raise typer.Exit(1)

    try:
        _run(settings, [" ".join(prompt)], raw)
    except KubeAssistantError as e:
        console.print(f"[red]Error:[/red] {escape(format_error(e))}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        raise typer.Exit(130)


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Show the effective configuration."""
    try:
        settings = load_config(config_path)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] invalid configuration\n{escape(str(e))}")
        raise typer.Exit(1)

    table = Table(title="kubectl-assistant Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Endpoint", settings.openai_endpoint)
    table.add_row("Deployment", settings.openai_deployment_name)
    table.add_row("Chat Model", "Yes" if settings.is_chat_model else "No (legacy completions)")
    table.add_row("Azure Model Map", ", ".join(f"{k}={v}" for k, v in settings.azure_openai_map.items()) or "-")
    table.add_row("Temperature", str(settings.temperature))
    table.add_row("Schema Lookups", "Enabled" if settings.tools_enabled else "Disabled")
    table.add_row("OpenAPI Source", settings.k8s_openapi_url or "kubectl get --raw /openapi/v2")
    table.add_row("Require Confirmation", str(settings.require_confirmation))
    table.add_row("Max Tool Iterations", str(settings.max_tool_iterations))
    table.add_row("Kubeconfig", str(settings.kubeconfig_path))
    table.add_row("Namespace", settings.namespace or "[dim]from context[/dim]")

    api_key = settings.openai_api_key
    table.add_row("API Key", mask_secret(api_key) if api_key else "[red]Not configured[/red]")

    console.print(table)


@app.command()
def onboard(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Write a default config file."""
    path = save_default_config(config_path)
    console.print(f"[green]Config created at:[/green] {path}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Export OPENAI_API_KEY (or add openai_api_key to the config)")
    console.print("2. Run: kubectl-assistant generate \"create an nginx deployment with 3 replicas\"")


@app.command()
def version() -> None:
    """Print the version."""
    console.print(f"kubectl-assistant {__version__}")


if __name__ == "__main__":
    app()
