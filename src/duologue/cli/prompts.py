"""Interactive prompts for the start command."""

from __future__ import annotations

import re
from dataclasses import dataclass

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from duologue.config.schema import Speed
from duologue.conversation.personas import PersonaRegistry

console = Console()

_FILENAME_RE = re.compile(r"^[a-zA-Z0-9_.-]+$")


@dataclass
class ConversationInput:
    """Answers collected before a conversation starts."""

    initial_prompt: str
    topic: str | None = None
    max_turns: int | None = None
    speed: Speed = "medium"


def get_conversation_input() -> ConversationInput:
    while True:
        initial_prompt = Prompt.ask("What should the AI personas discuss?").strip()
        if len(initial_prompt) >= 10:
            break
        console.print(
            "[red]Please provide a more detailed topic or question (at least 10 characters).[/red]"
        )

    while True:
        topic = Prompt.ask("Give this conversation a topic/title (optional)", default="").strip()
        if not topic or len(topic) >= 3:
            break
        console.print("[red]Topic should be at least 3 characters long or left empty.[/red]")

    while True:
        max_turns = IntPrompt.ask("Maximum number of turns (0 for unlimited)", default=0)
        if 0 <= max_turns <= 100:
            break
        console.print("[red]Please enter a number between 1 and 100, or 0 for unlimited.[/red]")

    speed = Prompt.ask(
        "Conversation speed (slow=3s, medium=2s, fast=1s between messages)",
        choices=["slow", "medium", "fast"],
        default="medium",
    )

    return ConversationInput(
        initial_prompt=initial_prompt,
        topic=topic or None,
        max_turns=max_turns or None,
        speed=speed,  # type: ignore[arg-type]
    )


def select_personas(registry: PersonaRegistry) -> tuple[str, str]:
    """Ask for two different persona keys."""
    for key, persona in registry.items():
        console.print(f"  [bold]{key}[/bold] - {persona.name}: [dim]{persona.personality}[/dim]")

    keys = registry.keys()
    first = Prompt.ask("Select the first AI persona", choices=keys, default=keys[0])
    remaining = [k for k in keys if k != first]
    second = Prompt.ask("Select the second AI persona", choices=remaining, default=remaining[0])
    return first, second


def select_model(models: list[str]) -> str:
    if not models:
        raise ValueError("No models available")
    if len(models) == 1:
        return models[0]

    for index, name in enumerate(models, 1):
        console.print(f"  {index}. [green]{name}[/green]")
    return Prompt.ask("Select the AI model to use", choices=models, default=models[0])


def confirm_start(
    conversation: ConversationInput,
    model: str,
    persona_names: tuple[str, str],
) -> bool:
    prompt = conversation.initial_prompt
    console.print("\n[bold]📋 Conversation Configuration:[/bold]")
    console.print(f"   Topic: {conversation.topic or 'Not specified'}")
    console.print(f"   Initial prompt: {prompt[:80]}{'...' if len(prompt) > 80 else ''}")
    console.print(f"   Max turns: {conversation.max_turns or 'Unlimited'}")
    console.print(f"   Model: {model}")
    console.print(f"   Personas: {persona_names[0]} & {persona_names[1]}")
    return Confirm.ask("Start the conversation with these settings?", default=True)


def ask_export() -> tuple[str, str | None] | None:
    """Offer to export the finished conversation.

    Returns:
        (format, filename) or None when the user declines
    """
    if not Confirm.ask("Export this conversation?", default=False):
        return None

    export_format = Prompt.ask("Export format", choices=["json", "markdown"], default="markdown")
    while True:
        filename = Prompt.ask("Export filename (leave empty for auto-generated)", default="").strip()
        if not filename or _FILENAME_RE.match(filename):
            break
        console.print(
            "[red]Filename should only contain letters, numbers, dots, underscores, and dashes.[/red]"
        )
    return export_format, filename or None
