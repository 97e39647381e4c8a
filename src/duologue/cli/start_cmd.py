"""Start command - run a conversation between two personas."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape

from duologue.cli.formatter import ConversationRenderer, configure_logging
from duologue.cli.prompts import (
    ConversationInput,
    ask_export,
    confirm_start,
    get_conversation_input,
    select_model,
    select_personas,
)
from duologue.config.loader import ConfigError, build_registry, load_config
from duologue.conversation.analytics import ConversationAnalytics
from duologue.conversation.ledger import ConversationLedger
from duologue.conversation.models import SummaryKind
from duologue.conversation.personas import PersonaRegistry
from duologue.conversation.scheduler import ConversationScheduler
from duologue.conversation.utils import export_filename
from duologue.errors import BackendError, BackendUnavailable
from duologue.llm.ollama import OllamaClient

if TYPE_CHECKING:
    from duologue.config.schema import DuologueConfig

console = Console()
logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "markdown")


def parse_personas(value: str, registry: PersonaRegistry) -> tuple[str, str]:
    """Parse a ``key1,key2`` persona selection.

    Raises:
        ValueError: If the selection is not two known, different keys
    """
    keys = [k.strip().lower() for k in value.split(",") if k.strip()]
    if len(keys) != 2:
        raise ValueError("Please specify exactly two personas separated by a comma")
    if keys[0] == keys[1]:
        raise ValueError("Please choose two different personas")

    unknown = [k for k in keys if k not in registry]
    if unknown:
        raise ValueError(
            f"Unknown persona(s): {', '.join(unknown)}. "
            f"Available: {', '.join(registry.keys())}"
        )
    return keys[0], keys[1]


def write_export(
    ledger: ConversationLedger,
    export_format: str,
    output: str | None = None,
) -> Path:
    """Write the ledger to disk in the given format.

    Args:
        ledger: Ledger to export
        export_format: "json" or "markdown"
        output: Destination path; a timestamped name is used when omitted

    Returns:
        Path of the written file
    """
    if export_format == "json":
        content = ledger.export_json()
        extension = "json"
    else:
        content = ledger.export_markdown()
        extension = "md"

    if output:
        path = Path(output)
        if not path.suffix:
            path = path.with_suffix(f".{extension}")
    else:
        path = Path(export_filename(export_format))  # type: ignore[arg-type]

    path.write_text(content, encoding="utf-8")
    logger.info("Conversation exported: path=%s format=%s", path, export_format)
    return path


def _format_from_path(path: str) -> str:
    return "json" if path.lower().endswith(".json") else "markdown"


def start_command(
    config_path: str | None = None,
    topic: str | None = None,
    max_turns: int | None = None,
    speed: str | None = None,
    model: str | None = None,
    prompt: str | None = None,
    personas: str | None = None,
    export_format: str | None = None,
    output: str | None = None,
    non_interactive: bool = False,
    summary: bool = False,
    verbose: bool = False,
) -> None:
    """Start a conversation between two AI personas.

    Args:
        config_path: Optional path to config file
        topic: Conversation topic
        max_turns: Turn budget (unlimited when omitted)
        speed: slow, medium or fast
        model: Ollama model name
        prompt: Opening prompt
        personas: Two persona keys separated by a comma
        export_format: Export the transcript as json or markdown when done
        output: Export destination path
        non_interactive: Run without any prompts
        summary: Print statistics and a final summary when done
        verbose: Enable debug logging
    """
    path = Path(config_path) if config_path else None
    try:
        config = load_config(path)
    except ConfigError as e:
        console.print(f"[red]Failed to load config: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None

    configure_logging("DEBUG" if verbose else config.logging.level)

    if speed is not None:
        if speed not in ("slow", "medium", "fast"):
            console.print(f"[red]Invalid speed: {speed}. Use slow, medium or fast.[/red]")
            raise typer.Exit(1)
        config.conversation.speed = speed  # type: ignore[assignment]
    if max_turns is not None:
        if not 1 <= max_turns <= 100:
            console.print("[red]Max turns must be between 1 and 100.[/red]")
            raise typer.Exit(1)
        config.conversation.max_turns = max_turns
    if export_format is not None and export_format not in EXPORT_FORMATS:
        console.print(f"[red]Invalid export format: {export_format}. Use json or markdown.[/red]")
        raise typer.Exit(1)

    if non_interactive and not prompt:
        console.print("[red]--prompt is required in non-interactive mode.[/red]")
        raise typer.Exit(1)

    registry = build_registry(config)
    try:
        keys = parse_personas(
            personas or f"{config.personas.primary},{config.personas.secondary}", registry
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None

    if non_interactive or prompt:
        conversation = ConversationInput(
            initial_prompt=prompt or "",
            topic=topic,
            max_turns=config.conversation.max_turns,
            speed=config.conversation.speed,
        )
    else:
        conversation = get_conversation_input()
        if topic:
            conversation.topic = topic
        config.conversation.speed = conversation.speed
        config.conversation.max_turns = conversation.max_turns
        if personas is None:
            keys = select_personas(registry)

    asyncio.run(
        _async_start(
            config=config,
            registry=registry,
            keys=keys,
            conversation=conversation,
            model=model,
            export_format=export_format,
            output=output,
            interactive=not non_interactive,
            summary=summary,
        )
    )


async def _resolve_model(config: DuologueConfig, model: str | None, interactive: bool) -> str:
    """Pick the model to talk to, checking Ollama along the way."""
    probe = OllamaClient(model=model or "", host=config.ollama.host, timeout=config.ollama.timeout)
    try:
        with console.status("[bold green]Checking Ollama connection...[/bold green]", spinner="dots"):
            available = await probe.list_models()
    except BackendError as e:
        console.print(f"[red]Failed to connect to Ollama at {config.ollama.host}: {e}[/red]")
        console.print("Please ensure Ollama is running: [bold]ollama serve[/bold]")
        raise typer.Exit(1) from None
    finally:
        await probe.close()

    if not available:
        console.print("[red]No models found. Please install a model first: ollama pull llama3.2[/red]")
        raise typer.Exit(1)

    wanted = model or config.model.name
    if wanted:
        if wanted not in available:
            console.print(
                f"[red]Model {wanted} not found. Available models: {', '.join(available)}[/red]"
            )
            raise typer.Exit(1)
        return wanted

    if not interactive:
        return available[0]
    return select_model(available)


async def _async_start(
    config: DuologueConfig,
    registry: PersonaRegistry,
    keys: tuple[str, str],
    conversation: ConversationInput,
    model: str | None,
    export_format: str | None,
    output: str | None,
    interactive: bool,
    summary: bool,
) -> None:
    """Async start logic."""
    model_name = await _resolve_model(config, model, interactive)

    primary = registry.get(keys[0])
    secondary = registry.get(keys[1])
    assert primary is not None and secondary is not None

    if interactive and not confirm_start(conversation, model_name, (primary.name, secondary.name)):
        console.print("[yellow]Conversation cancelled.[/yellow]")
        return

    client = OllamaClient(
        model=model_name,
        host=config.ollama.host,
        timeout=config.ollama.timeout,
        temperature=config.model.temperature,
        max_tokens=config.model.max_tokens,
        max_retries=config.ollama.max_retries,
    )
    analytics = ConversationAnalytics(client)
    scheduler = ConversationScheduler.from_config(
        config, client, primary, secondary, analytics=analytics
    )
    scheduler.subscribe(ConversationRenderer(console))

    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, scheduler.stop)

    try:
        await scheduler.start(
            conversation.initial_prompt,
            topic=conversation.topic,
            max_turns=conversation.max_turns,
        )
    except BackendUnavailable as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)

    try:
        ledger = scheduler.ledger
        if summary:
            renderer = ConversationRenderer(console)
            messages = ledger.all_messages()
            stats = analytics.statistics(messages, ledger.start_time, ledger.end_time)
            final = None
            if messages:
                with console.status("[bold green]Summarizing...[/bold green]", spinner="dots"):
                    final = await analytics.summarize(
                        messages, SummaryKind.FINAL, (primary, secondary)
                    )
            renderer.print_statistics(stats, final)

        if output or export_format:
            chosen = export_format or _format_from_path(output or "")
            written = write_export(ledger, chosen, output)
            console.print(f"[green]✓[/green] Conversation exported to {written}")
        elif interactive and sys.stdin.isatty():
            answer = ask_export()
            if answer is not None:
                written = write_export(ledger, *answer)
                console.print(f"[green]✓[/green] Conversation exported to {written}")
    finally:
        await client.close()
