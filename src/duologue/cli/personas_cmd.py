"""Persona listing command."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from duologue.config.loader import ConfigError, build_registry, load_config

console = Console()


def personas_command(config_path: str | None = None) -> None:
    """List built-in and configured personas.

    Args:
        config_path: Optional path to config file
    """
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        console.print(f"[red]Failed to load config: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None

    registry = build_registry(config)

    table = Table(title="Available Personas")
    table.add_column("Key", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Personality", style="dim")
    table.add_column("Interests")

    for key, persona in registry.items():
        marker = ""
        if key == config.personas.primary:
            marker = " [green](primary)[/green]"
        elif key == config.personas.secondary:
            marker = " [green](secondary)[/green]"
        table.add_row(
            f"{key}{marker}",
            persona.name,
            persona.personality,
            ", ".join(persona.interests),
        )

    console.print(table)
    console.print(f"\n{len(registry)} persona(s) available")
