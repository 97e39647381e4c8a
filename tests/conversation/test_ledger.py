"""Tests for the conversation ledger."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from duologue.conversation.ledger import ConversationLedger


@pytest.fixture
def ledger():
    return ConversationLedger(topic="Consciousness", max_messages=100, context_window=3)


def test_append_returns_message(ledger):
    """Test that append records speaker, content and metadata."""
    message = ledger.append("Alice", "Hello Bob", {"turn_index": 0})

    assert message.speaker_name == "Alice"
    assert message.content == "Hello Bob"
    assert message.metadata == {"turn_index": 0}
    assert message.id
    assert ledger.total_messages == 1
    assert ledger.last_message() == message


def test_append_copies_metadata(ledger):
    """Test that later changes to the caller's metadata dict are not seen."""
    metadata = {"model": "a"}
    message = ledger.append("Alice", "Hi", metadata)
    metadata["model"] = "b"

    assert message.metadata == {"model": "a"}


def test_message_ids_are_unique(ledger):
    ids = {ledger.append("Alice", str(i)).id for i in range(20)}
    assert len(ids) == 20


def test_empty_content_allowed(ledger):
    message = ledger.append("Bob", "")
    assert message.content == ""


def test_timestamps_non_decreasing(ledger):
    """Test that timestamps never move backwards."""
    for i in range(10):
        ledger.append("Alice", str(i))

    stamps = [m.timestamp for m in ledger.all_messages()]
    assert stamps == sorted(stamps)


def test_timestamp_clamped_when_clock_steps_back(ledger):
    first = ledger.append("Alice", "one")
    earlier = first.timestamp - timedelta(seconds=5)

    with patch("duologue.conversation.ledger.datetime") as mock_datetime:
        mock_datetime.now.return_value = earlier
        second = ledger.append("Bob", "two")

    assert second.timestamp == first.timestamp


def test_trims_oldest_beyond_max_messages():
    """Test that retention drops from the front but the counter keeps counting."""
    ledger = ConversationLedger(max_messages=2)
    ledger.append("A", "x")
    ledger.append("B", "y")
    ledger.append("A", "z")

    assert [m.content for m in ledger.all_messages()] == ["y", "z"]
    assert ledger.total_messages == 3
    assert ledger.statistics().total_messages == 3


def test_invalid_bounds_rejected():
    with pytest.raises(ValueError):
        ConversationLedger(max_messages=0)
    with pytest.raises(ValueError):
        ConversationLedger(context_window=-1)


def test_all_messages_is_a_copy(ledger):
    ledger.append("Alice", "Hi")
    messages = ledger.all_messages()
    messages.clear()

    assert len(ledger.all_messages()) == 1


def test_last_n(ledger):
    """Test last_n bounds and ordering."""
    for i in range(5):
        ledger.append("Alice", str(i))

    assert [m.content for m in ledger.last_n(2)] == ["3", "4"]
    assert [m.content for m in ledger.last_n(50)] == ["0", "1", "2", "3", "4"]
    assert ledger.last_n(0) == []
    assert ledger.last_n(-3) == []


def test_last_message_empty(ledger):
    assert ledger.last_message() is None


def test_by_persona_name_exact_match(ledger):
    ledger.append("Alice", "one")
    ledger.append("Bob", "two")
    ledger.append("Alice", "three")

    assert [m.content for m in ledger.by_persona_name("Alice")] == ["one", "three"]
    assert ledger.by_persona_name("alice") == []


def test_context_window_renders_recent_lines(ledger):
    """Test that the context window renders the last N messages."""
    ledger.append("User", "Let's talk")
    ledger.append("Alice", "Sure")
    ledger.append("Bob", "Great")
    ledger.append("Alice", "What is mind?")

    assert ledger.context_window() == [
        "Alice: Sure",
        "Bob: Great",
        "Alice: What is mind?",
    ]


def test_search_case_insensitive(ledger):
    ledger.append("Alice", "Consciousness is puzzling")
    ledger.append("Bob", "Let's build something")

    assert len(ledger.search("CONSCIOUS")) == 1
    assert len(ledger.search("conscious", case_sensitive=True)) == 1
    assert ledger.search("CONSCIOUS", case_sensitive=True) == []


def test_search_matches_speaker(ledger):
    ledger.append("Alice", "Hello")
    ledger.append("Bob", "Hi")

    results = ledger.search("bob")
    assert [m.speaker_name for m in results] == ["Bob"]


def test_statistics(ledger):
    """Test per-persona counts and average length."""
    ledger.append("Alice", "abcd")
    ledger.append("Bob", "ab")
    ledger.append("Alice", "abcdef")

    stats = ledger.statistics()

    assert stats.total_messages == 3
    assert stats.messages_by_persona == {"Alice": 2, "Bob": 1}
    assert stats.average_message_length == pytest.approx(4.0)
    assert stats.duration_ms >= 0


def test_statistics_empty(ledger):
    stats = ledger.statistics()

    assert stats.total_messages == 0
    assert stats.messages_by_persona == {}
    assert stats.average_message_length == 0.0


def test_duration_fixed_after_end(ledger):
    ledger.append("Alice", "Hi")
    ledger.end()
    first = ledger.duration_ms()

    assert ledger.end_time is not None
    assert ledger.duration_ms() == first


def test_export_json_round_trip(ledger):
    """Test that a JSON export restores into an equivalent ledger."""
    ledger.append("User", "Start")
    ledger.append("Alice", "Hello", {"turn_index": 0, "model": "m"})
    ledger.end()

    data = json.loads(ledger.export_json())
    assert data["topic"] == "Consciousness"
    assert data["total_messages"] == 2
    assert data["stats"]["messages_by_persona"] == {"User": 1, "Alice": 1}
    assert [m["speaker_name"] for m in data["messages"]] == ["User", "Alice"]

    restored = ConversationLedger.from_json(ledger.export_json())
    assert restored.all_messages() == ledger.all_messages()
    assert restored.topic == ledger.topic
    assert restored.total_messages == 2
    assert restored.start_time == ledger.start_time
    assert restored.end_time == ledger.end_time


def test_export_does_not_mutate(ledger):
    ledger.append("Alice", "Hello")
    before = ledger.all_messages()

    ledger.export_json()
    ledger.export_markdown()

    assert ledger.all_messages() == before
    assert ledger.end_time is None


def test_export_markdown(ledger):
    """Test the Markdown document layout."""
    ledger.append("Alice", "Hello there")
    ledger.append("Bob", "Hi Alice")

    markdown = ledger.export_markdown()

    assert markdown.startswith("# AI Conversation")
    assert "**Topic:** Consciousness" in markdown
    assert "**Total Messages:** 2" in markdown
    assert "## Participants" in markdown
    assert "- **Alice:** 1 messages" in markdown
    assert "## Conversation" in markdown
    assert "### Bob (" in markdown
    assert markdown.index("Hello there") < markdown.index("Hi Alice")


def test_export_markdown_without_topic():
    ledger = ConversationLedger()
    assert "**Topic:**" not in ledger.export_markdown()


def test_clear(ledger):
    ledger.append("Alice", "Hello")
    ledger.end()
    ledger.clear()

    assert ledger.all_messages() == []
    assert ledger.total_messages == 0
    assert ledger.end_time is None


def test_set_topic(ledger):
    ledger.set_topic("Ethics")
    assert ledger.topic == "Ethics"


def test_from_json_respects_max_messages():
    source = ConversationLedger()
    for i in range(5):
        source.append("Alice", str(i))

    restored = ConversationLedger.from_json(source.export_json(), max_messages=2)

    assert [m.content for m in restored.all_messages()] == ["3", "4"]
    assert restored.total_messages == 5


def test_start_time_is_utc():
    ledger = ConversationLedger()
    assert ledger.start_time.tzinfo is not None
    assert ledger.start_time <= datetime.now(timezone.utc)


def test_retention_keeps_latest_three():
    ledger = ConversationLedger(max_messages=3)
    for i in range(1, 6):
        ledger.append("Alice", f"Message {i}")

    assert [m.content for m in ledger.all_messages()] == ["Message 3", "Message 4", "Message 5"]
    assert ledger.total_messages == 5


def test_search_default_ignores_case():
    ledger = ConversationLedger()
    ledger.append("Alice", "Hello world")
    ledger.append("Bob", "Goodbye")
    ledger.append("Alice", "Hello everyone")

    assert [m.content for m in ledger.search("hello")] == ["Hello world", "Hello everyone"]
