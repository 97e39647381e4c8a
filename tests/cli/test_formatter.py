"""Tests for terminal rendering."""

import io

from rich.console import Console

from duologue.cli.formatter import PERSONA_STYLES, ConversationRenderer, persona_style
from duologue.conversation.analytics import ConversationAnalytics
from duologue.conversation.events import (
    ConversationEnded,
    ConversationStarted,
    MessageAppended,
    PersonaThinking,
    TurnFailed,
)
from duologue.conversation.models import ConversationMessage
from duologue.errors import BackendError, GenerationFailed


def _renderer() -> tuple[ConversationRenderer, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=100, force_terminal=False, color_system=None)
    return ConversationRenderer(console), buffer


def test_persona_style_is_stable():
    assert persona_style("Alice") == persona_style("Alice")
    assert persona_style("Alice") in PERSONA_STYLES


def test_renders_conversation_events():
    """Test banners, messages and errors."""
    renderer, buffer = _renderer()

    renderer(ConversationStarted(primary="Alice", secondary="Bob", topic="[Minds]"))
    renderer(PersonaThinking("Alice"))
    renderer(MessageAppended(ConversationMessage(speaker_name="Alice", content="Is [this] real?")))
    renderer(TurnFailed(GenerationFailed("Bob", cause=BackendError("timed out"))))
    renderer(ConversationEnded(total_messages=2, duration_ms=90_000))

    output = buffer.getvalue()
    assert "AI Conversation Started" in output
    assert "Alice & Bob" in output
    assert "[Minds]" in output
    assert "💬 Alice" in output
    assert "Is [this] real?" in output
    assert "Failed to generate response for Bob (timed out)" in output
    assert "Conversation Ended" in output
    assert "1m 30s" in output


def test_thinking_status_stopped_by_next_event():
    renderer, _ = _renderer()

    renderer(PersonaThinking("Bob"))
    assert renderer._status is not None

    renderer(MessageAppended(ConversationMessage(speaker_name="Bob", content="Hi")))
    assert renderer._status is None


def test_print_statistics():
    renderer, buffer = _renderer()
    messages = [
        ConversationMessage(speaker_name="Alice", content="Philosophy of mind"),
        ConversationMessage(speaker_name="Bob", content="Engineering minds"),
    ]
    stats = ConversationAnalytics(backend=None).statistics(messages, messages[0].timestamp)

    renderer.print_statistics(stats)

    output = buffer.getvalue()
    assert "Conversation Statistics" in output
    assert "Both participants contributed equally" in output
