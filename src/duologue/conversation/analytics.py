"""Conversation summaries, statistics and context compaction.

Summaries are written by the generation backend when possible. The backend
is asked for a JSON object, but free-text models do not reliably comply, so
every path that talks to the backend falls back to a deterministic local
summary built from keyword frequencies.
"""

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from duologue.conversation.models import (
    ConversationFlow,
    ConversationMessage,
    ConversationStatistics,
    ConversationSummary,
    ResponseTimeStats,
    SummaryKind,
)
from duologue.conversation.personas import PersonaConfig
from duologue.conversation.utils import render_line
from duologue.errors import EmptySlice
from duologue.llm.client import GenerationBackend

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
        "with", "by", "is", "are", "was", "were", "be", "been", "have", "has", "had",
        "do", "does", "did", "will", "would", "could", "should", "may", "might", "can",
        "this", "that", "these", "those", "i", "you", "he", "she", "it", "we", "they",
        "me", "him", "her", "us", "them", "my", "your", "his", "its", "our", "their",
        "what", "when", "where", "why", "how", "think", "really", "just", "like",
        "know", "well", "also", "very",
    }
)  # fmt: skip

TOPIC_WINDOW = 2
TOPIC_CHANGE_OVERLAP = 0.3

_SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates concise, insightful summaries of "
    "conversations between AI personas."
)

_SUMMARY_PROMPT = """\
Please analyze and summarize the following conversation between {first} and {second}:

{transcript}

{instruction}

Please format your response as JSON with the following structure:
{{
  "summary": "Main summary text",
  "keyTopics": ["topic1", "topic2", "topic3"],
  "contributions": {{
    "{first}": "Brief description of their main contributions",
    "{second}": "Brief description of their main contributions"
  }}
}}"""

_KIND_INSTRUCTIONS = {
    SummaryKind.PERIODIC: (
        "Create a concise summary of the key points discussed, major insights, and the "
        "direction of the conversation."
    ),
    SummaryKind.CONTEXT_COMPACT: (
        "Create a condensed summary that preserves the essential context and key "
        "insights for continuing the conversation."
    ),
    SummaryKind.FINAL: (
        "Create a comprehensive summary of the entire conversation, including main "
        "themes, conclusions, and significant insights."
    ),
}


@dataclass
class CompactionResult:
    """Compacted context plus the summary that replaced older messages.

    ``lines`` holds the bracketed summary line (``header``, when the backend
    summary succeeded) followed by the recent messages kept verbatim.
    ``covered`` is the number of leading messages no longer in ``lines``.
    """

    lines: list[str]
    summary: ConversationSummary
    header: str | None = None
    covered: int = 0

    @property
    def context(self) -> str:
        return "\n".join(self.lines)


def extract_keywords(text: str, limit: int = 10) -> list[str]:
    """Extract the most frequent meaningful words from text.

    Words are lower-cased with punctuation stripped; words of three
    characters or fewer and stop words are ignored. Ties keep the order in
    which words first appear.

    Args:
        text: Text to analyze
        limit: Maximum number of keywords

    Returns:
        Keywords, most frequent first
    """
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    counts = Counter(w for w in words if len(w) > 3 and w not in STOP_WORDS)
    return [word for word, _ in counts.most_common(limit)]


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = [ln for ln in text.splitlines() if not ln.strip().startswith("```")]
        return "\n".join(lines).strip()
    return text


def _parse_json_object(text: str) -> dict[str, Any]:
    """Parse a JSON object from model output, tolerating fences and chatter."""
    text = _strip_fences(text)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise
        parsed = json.loads(text[start : end + 1])

    if not isinstance(parsed, dict):
        raise ValueError("Summary response is not a JSON object")
    return parsed


class ConversationAnalytics:
    """Derives summaries and statistics from slices of a conversation."""

    def __init__(self, backend: GenerationBackend):
        """Initialize analytics.

        Args:
            backend: Generation backend used for AI-written summaries
        """
        self.backend = backend

    async def summarize(
        self,
        messages: list[ConversationMessage],
        kind: SummaryKind,
        personas: tuple[PersonaConfig, PersonaConfig],
    ) -> ConversationSummary:
        """Summarize a slice of the conversation.

        Args:
            messages: Messages to summarize, oldest first
            kind: Why the summary is being produced
            personas: The two conversing personas

        Returns:
            Backend-written summary, or a local summary on any failure

        Raises:
            EmptySlice: If ``messages`` is empty
        """
        if not messages:
            raise EmptySlice("Cannot generate summary for empty message list")

        first, second = personas
        prompt = _SUMMARY_PROMPT.format(
            first=first.name,
            second=second.name,
            transcript="\n".join(render_line(m) for m in messages),
            instruction=_KIND_INSTRUCTIONS[kind],
        )

        try:
            result = await self.backend.generate(prompt, _SUMMARY_SYSTEM_PROMPT)
        except Exception as e:
            logger.error("Failed to generate %s summary: %s", kind.value, e)
            return self.local_summary(messages, kind)

        try:
            parsed = _parse_json_object(result.text)
        except ValueError as e:
            logger.warning("Failed to parse summary response, using fallback: %s", e)
            return self.local_summary(messages, kind)

        key_topics = parsed.get("keyTopics")
        contributions = parsed.get("contributions")
        summary = ConversationSummary(
            kind=kind,
            content=str(parsed.get("summary") or "Summary not available"),
            covered_range=(0, len(messages) - 1),
            key_topics=[str(t) for t in key_topics] if isinstance(key_topics, list) else [],
            participant_contributions=(
                {str(k): str(v) for k, v in contributions.items()}
                if isinstance(contributions, dict)
                else {}
            ),
        )

        logger.debug(
            "Generated %s summary: messages=%d length=%d",
            kind.value,
            len(messages),
            len(summary.content),
        )
        return summary

    def local_summary(
        self, messages: list[ConversationMessage], kind: SummaryKind
    ) -> ConversationSummary:
        """Build a deterministic summary without calling the backend. Never fails."""
        counts: Counter[str] = Counter(m.speaker_name for m in messages)
        speakers = list(counts)
        topics = extract_keywords(" ".join(m.content for m in messages))

        content = (
            f"Conversation summary: {len(messages)} messages exchanged between "
            f"{' and '.join(speakers)}. Key topics discussed: {', '.join(topics[:3])}."
        )

        return ConversationSummary(
            kind=kind,
            content=content,
            covered_range=(0, max(len(messages) - 1, 0)),
            key_topics=topics[:5],
            participant_contributions={
                name: f"Contributed {count} messages" for name, count in counts.items()
            },
        )

    def statistics(
        self,
        messages: list[ConversationMessage],
        start_time: datetime,
        end_time: datetime | None = None,
    ) -> ConversationStatistics:
        """Compute aggregate statistics for a slice of the conversation.

        Args:
            messages: Messages to analyze, oldest first
            start_time: Conversation start
            end_time: Conversation end (defaults to now)

        Returns:
            Statistics; an all-zero structure for an empty slice
        """
        if not messages:
            return ConversationStatistics(key_insights=["No messages to analyze"])

        by_persona: dict[str, int] = {}
        gaps: list[float] = []
        topics: list[str] = []
        total_length = 0
        previous: datetime | None = None

        for message in messages:
            by_persona[message.speaker_name] = by_persona.get(message.speaker_name, 0) + 1
            total_length += len(message.content)

            if previous is not None:
                gap = (message.timestamp - previous).total_seconds() * 1000
                if gap > 0:
                    gaps.append(gap)
            previous = message.timestamp

            topics.extend(extract_keywords(message.content))

        end = end_time or datetime.now(timezone.utc)
        average_length = total_length / len(messages)

        return ConversationStatistics(
            total_messages=len(messages),
            messages_by_persona=by_persona,
            average_message_length=average_length,
            duration_ms=int((end - start_time).total_seconds() * 1000),
            response_times=(
                ResponseTimeStats(average=sum(gaps) / len(gaps), min=min(gaps), max=max(gaps))
                if gaps
                else ResponseTimeStats()
            ),
            topic_progression=[t for t, _ in Counter(topics).most_common(5)],
            key_insights=self._insights(messages, by_persona),
            flow=ConversationFlow(
                turns_taken=len(messages),
                average_turn_length=average_length,
                topic_changes=self._count_topic_changes(messages),
            ),
        )

    @staticmethod
    def should_compact(current_size: int, max_size: int, threshold: float = 0.8) -> bool:
        """Check whether context usage has reached ``threshold`` of the budget."""
        if max_size <= 0:
            return True
        return current_size / max_size >= threshold

    async def compact(
        self,
        messages: list[ConversationMessage],
        keep_recent: int,
        personas: tuple[PersonaConfig, PersonaConfig],
    ) -> CompactionResult:
        """Replace older messages with a summary, keeping the recent tail verbatim.

        Args:
            messages: Messages to compact, oldest first
            keep_recent: Number of trailing messages to keep as-is
            personas: The two conversing personas

        Returns:
            CompactionResult with the compacted context text and its summary
        """
        keep_recent = max(keep_recent, 0)
        if len(messages) <= keep_recent:
            return CompactionResult(
                lines=[render_line(m) for m in messages],
                summary=self.local_summary(messages, SummaryKind.CONTEXT_COMPACT),
            )

        split = len(messages) - keep_recent
        older, recent = messages[:split], messages[split:]
        recent_lines = [render_line(m) for m in recent]

        try:
            summary = await self.summarize(older, SummaryKind.CONTEXT_COMPACT, personas)
        except Exception as e:
            logger.error("Failed to compact context, keeping recent messages only: %s", e)
            return CompactionResult(
                lines=recent_lines,
                summary=self.local_summary(older, SummaryKind.CONTEXT_COMPACT),
                covered=len(older),
            )

        logger.info(
            "Context compacted: original=%d summarized=%d kept=%d",
            len(messages),
            len(older),
            len(recent),
        )
        header = f"[Previous conversation summary: {summary.content}]"
        return CompactionResult(
            lines=[header, *recent_lines],
            summary=summary,
            header=header,
            covered=len(older),
        )

    @staticmethod
    def _insights(
        messages: list[ConversationMessage], by_persona: dict[str, int]
    ) -> list[str]:
        insights = []

        if len(by_persona) > 1:
            (first, first_count), (second, second_count) = list(by_persona.items())[:2]
            ratio = first_count / second_count
            if ratio > 1.5:
                insights.append(
                    f"{first} was more active in the conversation "
                    f"({round(ratio * 100)}% more messages)"
                )
            elif ratio < 0.67:
                insights.append(
                    f"{second} was more active in the conversation "
                    f"({round(100 / ratio)}% more messages)"
                )
            else:
                insights.append("Both participants contributed equally to the conversation")

        average_length = sum(len(m.content) for m in messages) / len(messages)
        if average_length > 200:
            insights.append("Conversation featured detailed, in-depth responses")
        elif average_length < 50:
            insights.append("Conversation featured brief, concise exchanges")

        return insights

    @staticmethod
    def _count_topic_changes(messages: list[ConversationMessage]) -> int:
        """Count windows whose keywords barely overlap with the previous window."""
        if len(messages) < 4:
            return 0

        changes = 0
        for i in range(TOPIC_WINDOW, len(messages) - TOPIC_WINDOW, TOPIC_WINDOW):
            previous = set(
                extract_keywords(" ".join(m.content for m in messages[i - TOPIC_WINDOW : i]))
            )
            current = set(
                extract_keywords(" ".join(m.content for m in messages[i : i + TOPIC_WINDOW]))
            )
            overlap = len(previous & current) / max(len(previous), len(current), 1)
            if overlap < TOPIC_CHANGE_OVERLAP:
                changes += 1

        return changes
