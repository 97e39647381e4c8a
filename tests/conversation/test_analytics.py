"""Tests for conversation analytics."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from duologue.conversation.analytics import (
    ConversationAnalytics,
    _parse_json_object,
    extract_keywords,
)
from duologue.conversation.models import ConversationMessage, SummaryKind
from duologue.errors import BackendError, EmptySlice

START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _messages(*pairs, gap_seconds=10) -> list[ConversationMessage]:
    return [
        ConversationMessage(
            speaker_name=speaker,
            content=content,
            timestamp=START + timedelta(seconds=i * gap_seconds),
        )
        for i, (speaker, content) in enumerate(pairs)
    ]


def test_extract_keywords_filters_stop_words():
    """Test that short words and stop words are ignored."""
    keywords = extract_keywords("The mind is a mind, and the brain makes the mind. Brain!")

    assert keywords == ["mind", "brain", "makes"]


def test_extract_keywords_ties_keep_first_occurrence():
    assert extract_keywords("zebra apple zebra apple mango") == ["zebra", "apple", "mango"]


def test_extract_keywords_limit():
    text = " ".join(f"word{i}" for i in range(20))
    assert len(extract_keywords(text, limit=5)) == 5


def test_parse_json_object_with_fences():
    text = '```json\n{"summary": "ok"}\n```'
    assert _parse_json_object(text) == {"summary": "ok"}


def test_parse_json_object_with_chatter():
    text = 'Sure! Here it is: {"summary": "ok"} Hope that helps.'
    assert _parse_json_object(text) == {"summary": "ok"}


def test_parse_json_object_rejects_non_object():
    with pytest.raises(ValueError):
        _parse_json_object("[1, 2, 3]")


@pytest.mark.asyncio
async def test_summarize_parses_backend_json(alice, bob, make_backend):
    """Test that a well-formed backend reply becomes the summary."""
    reply = json.dumps(
        {
            "summary": "They discussed minds.",
            "keyTopics": ["mind", "machines"],
            "contributions": {"Alice": "Asked questions", "Bob": "Gave examples"},
        }
    )
    backend = make_backend([reply])
    analytics = ConversationAnalytics(backend)
    messages = _messages(("Alice", "What is a mind?"), ("Bob", "A machine that thinks."))

    summary = await analytics.summarize(messages, SummaryKind.FINAL, (alice, bob))

    assert summary.kind == SummaryKind.FINAL
    assert summary.content == "They discussed minds."
    assert summary.key_topics == ["mind", "machines"]
    assert summary.participant_contributions["Bob"] == "Gave examples"
    assert summary.covered_range == (0, 1)
    assert "Alice: What is a mind?" in backend.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_summarize_falls_back_on_bad_json(alice, bob, make_backend):
    analytics = ConversationAnalytics(make_backend(["not json at all"]))
    messages = _messages(("Alice", "Consciousness matters"), ("Bob", "Consciousness engineering"))

    summary = await analytics.summarize(messages, SummaryKind.PERIODIC, (alice, bob))

    assert summary.content.startswith("Conversation summary: 2 messages exchanged between Alice and Bob")
    assert "consciousness" in summary.key_topics


@pytest.mark.asyncio
async def test_summarize_falls_back_on_backend_error(alice, bob, make_backend):
    analytics = ConversationAnalytics(make_backend([BackendError("down")]))
    messages = _messages(("Alice", "Hello"))

    summary = await analytics.summarize(messages, SummaryKind.FINAL, (alice, bob))

    assert summary.participant_contributions == {"Alice": "Contributed 1 messages"}


@pytest.mark.asyncio
async def test_summarize_empty_slice(alice, bob, make_backend):
    analytics = ConversationAnalytics(make_backend())

    with pytest.raises(EmptySlice):
        await analytics.summarize([], SummaryKind.FINAL, (alice, bob))


def test_statistics_empty(make_backend):
    stats = ConversationAnalytics(make_backend()).statistics([], START)

    assert stats.total_messages == 0
    assert stats.key_insights == ["No messages to analyze"]


def test_statistics_counts_and_response_times(make_backend):
    """Test counts, averages and gaps between messages."""
    messages = _messages(
        ("Alice", "a" * 100),
        ("Bob", "b" * 300),
        ("Alice", "c" * 200),
        gap_seconds=2,
    )

    stats = ConversationAnalytics(make_backend()).statistics(
        messages, START, START + timedelta(seconds=10)
    )

    assert stats.total_messages == 3
    assert stats.messages_by_persona == {"Alice": 2, "Bob": 1}
    assert stats.average_message_length == pytest.approx(200.0)
    assert stats.duration_ms == 10_000
    assert stats.response_times.average == pytest.approx(2000.0)
    assert stats.response_times.min == pytest.approx(2000.0)
    assert stats.response_times.max == pytest.approx(2000.0)
    assert stats.flow.turns_taken == 3


def test_statistics_balanced_insight(make_backend):
    messages = _messages(("Alice", "short one"), ("Bob", "short two"))

    stats = ConversationAnalytics(make_backend()).statistics(messages, START)

    assert "Both participants contributed equally to the conversation" in stats.key_insights
    assert "Conversation featured brief, concise exchanges" in stats.key_insights


def test_statistics_dominant_speaker_insight(make_backend):
    messages = _messages(("Alice", "x" * 250), ("Alice", "y" * 250), ("Alice", "z" * 250), ("Bob", "w" * 250))

    stats = ConversationAnalytics(make_backend()).statistics(messages, START)

    assert stats.key_insights[0].startswith("Alice was more active")
    assert "Conversation featured detailed, in-depth responses" in stats.key_insights


def test_topic_changes_detected(make_backend):
    messages = _messages(
        ("Alice", "quantum physics particles"),
        ("Bob", "quantum particles physics"),
        ("Alice", "baking bread recipes"),
        ("Bob", "bread baking flour"),
        ("Alice", "football matches league"),
        ("Bob", "league football players"),
    )

    stats = ConversationAnalytics(make_backend()).statistics(messages, START)

    assert stats.flow.topic_changes == 1


@pytest.mark.parametrize(
    "current,maximum,expected",
    [(79, 100, False), (80, 100, True), (120, 100, True), (1, 0, True)],
)
def test_should_compact(current, maximum, expected):
    assert ConversationAnalytics.should_compact(current, maximum) is expected


@pytest.mark.asyncio
async def test_compact_keeps_recent_messages(alice, bob, make_backend):
    """Test that older messages are replaced by a summary line."""
    reply = json.dumps({"summary": "Earlier they agreed on ethics."})
    analytics = ConversationAnalytics(make_backend([reply]))
    messages = _messages(*[("Alice" if i % 2 == 0 else "Bob", f"message {i}") for i in range(6)])

    result = await analytics.compact(messages, 2, (alice, bob))

    lines = result.context.splitlines()
    assert lines[0] == "[Previous conversation summary: Earlier they agreed on ethics.]"
    assert lines[1:] == ["Alice: message 4", "Bob: message 5"]
    assert result.summary.kind == SummaryKind.CONTEXT_COMPACT
    assert result.summary.covered_range == (0, 3)
    assert result.covered == 4
    assert result.header == lines[0]


@pytest.mark.asyncio
async def test_compact_short_slice_unchanged(alice, bob, make_backend):
    backend = make_backend()
    analytics = ConversationAnalytics(backend)
    messages = _messages(("Alice", "one"), ("Bob", "two"))

    result = await analytics.compact(messages, 6, (alice, bob))

    assert result.context == "Alice: one\nBob: two"
    assert result.covered == 0
    assert result.header is None
    assert backend.calls == []
