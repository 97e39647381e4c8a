"""Utility functions for conversation transcripts."""

from datetime import datetime, timezone
from typing import Literal

from duologue.conversation.models import ConversationMessage


def render_line(message: ConversationMessage) -> str:
    """Render a message as a single ``speaker: content`` line."""
    return f"{message.speaker_name}: {message.content}"


def format_duration(ms: float) -> str:
    """Format a millisecond duration as ``1h 2m 3s``.

    Leading zero-valued units are omitted, so 90 seconds is ``1m 30s``.
    """
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def estimate_tokens(text: str) -> int:
    """Estimate token count for a piece of text.

    Uses a simple heuristic: ~4 characters per token.

    Args:
        text: Text to estimate tokens for

    Returns:
        Estimated token count
    """
    return len(text) // 4


def estimate_total_tokens(lines: list[str]) -> int:
    """Estimate total token count for a list of rendered lines."""
    return sum(estimate_tokens(line) for line in lines)


def export_filename(
    export_format: Literal["json", "markdown"], now: datetime | None = None
) -> str:
    """Build an auto-generated export filename.

    Args:
        export_format: "json" or "markdown"
        now: Timestamp to embed (defaults to current UTC time)

    Returns:
        Filename like ``ai-conversation-2025-01-31T12-00-00-000Z.md``
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    stamp = stamp.replace("+00:00", "Z").replace(":", "-").replace(".", "-")
    extension = "json" if export_format == "json" else "md"
    return f"ai-conversation-{stamp}.{extension}"
