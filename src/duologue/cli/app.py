"""Main CLI application using Typer."""

import sys

import typer
from rich.console import Console

from duologue import __version__

# Create Typer app
app = typer.Typer(
    name="duologue",
    help="Duologue - Watch two AI personas hold a conversation on a local Ollama model",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version():
    """Show duologue version."""
    console.print(f"duologue version {__version__}")


@app.command()
def init(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.duologue/duologue.yaml)",
    ),
    model: str = typer.Option(None, "--model", help="Ollama model to store in the config"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
):
    """Write a starter configuration file."""
    from duologue.cli.init_cmd import init_command

    init_command(config_path=config_path, force=force, model=model)


@app.command()
def start(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.duologue/duologue.yaml)",
    ),
    topic: str = typer.Option(None, "--topic", "-t", help="Conversation topic"),
    max_turns: int = typer.Option(
        None, "--max-turns", "-m", help="Maximum number of turns (1-100)"
    ),
    speed: str = typer.Option(None, "--speed", "-s", help="Conversation speed (slow, medium, fast)"),
    model: str = typer.Option(None, "--model", help="Ollama model to use"),
    prompt: str = typer.Option(None, "--prompt", "-p", help="Initial prompt"),
    personas: str = typer.Option(
        None, "--personas", help="Two persona keys separated by a comma (e.g. alice,bob)"
    ),
    export_format: str = typer.Option(
        None, "--export", "-e", help="Export the conversation when done (json, markdown)"
    ),
    output: str = typer.Option(None, "--output", "-o", help="Export file path"),
    non_interactive: bool = typer.Option(
        False, "--non-interactive", help="Run without prompts (requires --prompt)"
    ),
    summary: bool = typer.Option(
        False, "--summary", help="Show statistics and a final summary when done"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Start a conversation between two AI personas."""
    from duologue.cli.start_cmd import start_command

    start_command(
        config_path=config_path,
        topic=topic,
        max_turns=max_turns,
        speed=speed,
        model=model,
        prompt=prompt,
        personas=personas,
        export_format=export_format,
        output=output,
        non_interactive=non_interactive,
        summary=summary,
        verbose=verbose,
    )


@app.command()
def personas(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
):
    """List available personas."""
    from duologue.cli.personas_cmd import personas_command

    personas_command(config_path=config_path)


@app.command()
def models(
    host: str = typer.Option(
        "http://localhost:11434",
        "--host",
        help="Ollama server URL",
    ),
):
    """List models installed in Ollama."""
    from duologue.cli.models_cmd import models_command

    models_command(host=host)


@app.command()
def export(
    file: str = typer.Argument(..., help="JSON conversation export"),
    export_format: str = typer.Option(
        "markdown",
        "--format",
        "-f",
        help="Export format (json, markdown)",
    ),
    output: str = typer.Option(None, "--output", "-o", help="Output file path"),
):
    """Convert a saved JSON conversation to another format."""
    from duologue.cli.export_cmd import export_command

    export_command(file=file, export_format=export_format, output=output)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
