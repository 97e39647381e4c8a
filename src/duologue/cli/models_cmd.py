"""Model listing command."""

import asyncio

import typer
from rich.console import Console

from duologue.errors import BackendError
from duologue.llm.ollama import OllamaClient

console = Console()


def models_command(host: str = "http://localhost:11434") -> None:
    """List models installed in Ollama.

    Args:
        host: Ollama server URL
    """
    asyncio.run(_async_models(host))


async def _async_models(host: str) -> None:
    client = OllamaClient(model="", host=host)
    try:
        with console.status("[bold green]Fetching models...[/bold green]", spinner="dots"):
            models = await client.list_models()
    except BackendError as e:
        console.print(f"[red]Failed to connect to Ollama at {host}: {e}[/red]")
        console.print("Please ensure Ollama is running: [bold]ollama serve[/bold]")
        raise typer.Exit(1) from None
    finally:
        await client.close()

    if not models:
        console.print("[yellow]No models installed. Run: ollama pull llama3.2[/yellow]")
        return

    console.print(f"[bold]Available models ({len(models)}):[/bold]")
    for index, name in enumerate(models, 1):
        console.print(f"  {index}. [green]{name}[/green]")
