"""Rich terminal rendering for conversations."""

from __future__ import annotations

import logging
import zlib

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.padding import Padding
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.text import Text

from duologue.conversation.events import (
    ConversationEnded,
    ConversationEvent,
    ConversationStarted,
    MessageAppended,
    PersonaThinking,
    TurnFailed,
)
from duologue.conversation.models import ConversationMessage, ConversationStatistics, ConversationSummary
from duologue.conversation.utils import format_duration

PERSONA_STYLES = ["bold cyan", "bold magenta", "bold green", "bold yellow"]


def configure_logging(level: str = "WARNING") -> None:
    """Route library logging through a rich console handler."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def persona_style(name: str) -> str:
    """Pick a stable colour for a speaker name."""
    return PERSONA_STYLES[zlib.crc32(name.encode("utf-8")) % len(PERSONA_STYLES)]


def format_message(message: ConversationMessage) -> Text:
    header = Text(f"💬 {message.speaker_name}", style=persona_style(message.speaker_name))
    header.append(f" ({message.timestamp.astimezone():%H:%M:%S})", style="dim")
    return header


class ConversationRenderer:
    """Event listener that prints a live conversation to the terminal."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._status: Status | None = None

    def __call__(self, event: ConversationEvent) -> None:
        if isinstance(event, ConversationStarted):
            self._stop_status()
            self.print_start(event)
        elif isinstance(event, PersonaThinking):
            self._stop_status()
            self._status = self.console.status(
                Text.assemble(
                    (f"💬 {event.persona_name}", persona_style(event.persona_name)),
                    (" is typing ●●●", "dim"),
                ),
                spinner="dots",
            )
            self._status.start()
        elif isinstance(event, MessageAppended):
            self._stop_status()
            self.print_message(event.message)
        elif isinstance(event, TurnFailed):
            self._stop_status()
            cause = event.error.cause or event.error
            self.console.print(
                f"[bold red]❌ Error: {escape(str(event.error))} ({escape(str(cause))})[/bold red]"
            )
        elif isinstance(event, ConversationEnded):
            self._stop_status()
            self.print_end(event)

    def _stop_status(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def print_start(self, event: ConversationStarted) -> None:
        lines = ["[bold green]🤖 AI Conversation Started[/bold green]"]
        lines.append(f"[dim]Personas:[/dim] {event.primary} & {event.secondary}")
        if event.topic:
            lines.append(f"[dim]Topic:[/dim] {escape(event.topic)}")
        lines.append("[dim]Press Ctrl+C to stop the conversation[/dim]")
        self.console.print(Panel.fit("\n".join(lines), border_style="green"))

    def print_message(self, message: ConversationMessage) -> None:
        self.console.print(format_message(message))
        self.console.rule(style="dim")
        self.console.print(Padding(Text(message.content), (0, 0, 1, 2)))

    def print_end(self, event: ConversationEnded) -> None:
        self.console.print(
            Panel.fit(
                "[bold red]🛑 Conversation Ended[/bold red]\n"
                f"[dim]Total messages:[/dim] {event.total_messages} | "
                f"[dim]Duration:[/dim] {format_duration(event.duration_ms)}",
                border_style="red",
            )
        )

    def print_statistics(
        self,
        stats: ConversationStatistics,
        summary: ConversationSummary | None = None,
    ) -> None:
        table = Table(title="Conversation Statistics", show_header=True, header_style="bold cyan")
        table.add_column("Metric", style="white")
        table.add_column("Value")

        table.add_row("Messages", str(stats.total_messages))
        for name, count in stats.messages_by_persona.items():
            table.add_row(f"  {name}", str(count))
        table.add_row("Average length", f"{stats.average_message_length:.0f} chars")
        table.add_row("Duration", format_duration(stats.duration_ms))
        table.add_row("Average response time", format_duration(stats.response_times.average))
        table.add_row("Topic changes", str(stats.flow.topic_changes))
        table.add_row("Topics", ", ".join(stats.topic_progression) or "-")
        self.console.print(table)

        for insight in stats.key_insights:
            self.console.print(f"  • {insight}")

        if summary is not None:
            self.console.print(Panel(Text(summary.content), title="Summary", border_style="blue"))
