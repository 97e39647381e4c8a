"""Export command - convert a saved JSON transcript."""

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from duologue.cli.start_cmd import write_export
from duologue.conversation.ledger import ConversationLedger

console = Console()


def export_command(
    file: str,
    export_format: str = "markdown",
    output: str | None = None,
) -> None:
    """Re-export a JSON transcript.

    Args:
        file: Path to a JSON export
        export_format: Target format, "json" or "markdown"
        output: Destination path (defaults to the input name with a new extension)
    """
    if export_format not in ("json", "markdown"):
        console.print(f"[red]Invalid export format: {export_format}. Use json or markdown.[/red]")
        raise typer.Exit(1)

    source = Path(file)
    try:
        data = source.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Failed to read {source}: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None

    try:
        ledger = ConversationLedger.from_json(data)
    except ValidationError as e:
        console.print(f"[red]Not a valid conversation export: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None

    if output is None:
        extension = ".json" if export_format == "json" else ".md"
        target = source.with_suffix(extension)
        if target == source:
            target = source.with_name(f"{source.stem}-export{extension}")
        output = str(target)

    written = write_export(ledger, export_format, output)
    console.print(f"[green]✓[/green] Exported {len(ledger.all_messages())} messages to {written}")
