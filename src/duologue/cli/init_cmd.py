"""Init command - write a starter configuration file."""

from pathlib import Path

import typer
from rich.console import Console

from duologue.config.loader import DEFAULT_CONFIG_PATH, save_config
from duologue.config.schema import DuologueConfig

console = Console()


def init_command(
    config_path: str | None = None,
    force: bool = False,
    model: str | None = None,
) -> None:
    """Write a default duologue.yaml.

    Args:
        config_path: Destination (default: ~/.duologue/duologue.yaml)
        force: Overwrite an existing file
        model: Model name to store in the config
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        console.print("Use [bold]--force[/bold] to overwrite.")
        raise typer.Exit(1)

    config = DuologueConfig()
    if model:
        config.model.name = model

    written = save_config(config, path)
    console.print(f"[green]✓[/green] Configuration written to {written}")
    console.print("Edit it to add custom personas, then run [bold]duologue start[/bold].")
