"""Append-only conversation ledger with bounded retention."""

import logging
from datetime import datetime, timezone
from typing import Any

from duologue.conversation.models import (
    ConversationMessage,
    LedgerStatistics,
    TranscriptExport,
)
from duologue.conversation.utils import format_duration, render_line

logger = logging.getLogger(__name__)


class ConversationLedger:
    """In-memory transcript of a conversation.

    Messages are only ever appended. Once more than ``max_messages`` are
    retained, the oldest ones are dropped from the front. ``total_messages``
    counts every append ever made and is not reduced by trimming, so it
    diverges from ``len(all_messages())`` on long conversations.
    """

    def __init__(
        self,
        topic: str | None = None,
        max_messages: int = 1000,
        context_window: int = 20,
    ):
        """Initialize the ledger.

        Args:
            topic: Optional conversation topic
            max_messages: Maximum number of messages retained in memory
            context_window: Number of recent messages in the context window
        """
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        if context_window < 0:
            raise ValueError("context_window must not be negative")

        self.max_messages = max_messages
        self.context_window_size = context_window

        self._messages: list[ConversationMessage] = []
        self._total_messages = 0
        self._start_time = datetime.now(timezone.utc)
        self._end_time: datetime | None = None
        self._last_timestamp = self._start_time
        self.topic = topic

        logger.debug(
            "ConversationLedger initialized: topic=%s max_messages=%d context_window=%d",
            topic,
            max_messages,
            context_window,
        )

    @property
    def start_time(self) -> datetime:
        return self._start_time

    @property
    def end_time(self) -> datetime | None:
        return self._end_time

    @property
    def total_messages(self) -> int:
        return self._total_messages

    def _now(self) -> datetime:
        # Keep timestamps non-decreasing even if the wall clock steps back
        now = datetime.now(timezone.utc)
        if now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    def append(
        self,
        speaker_name: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> ConversationMessage:
        """Append a message to the end of the transcript.

        Args:
            speaker_name: Display name of the speaker
            content: Message text (may be empty)
            metadata: Optional annotations such as turn index or model

        Returns:
            The newly created message
        """
        message = ConversationMessage(
            speaker_name=speaker_name,
            content=content,
            timestamp=self._now(),
            metadata=dict(metadata) if metadata is not None else None,
        )

        self._messages.append(message)
        self._total_messages += 1

        overflow = len(self._messages) - self.max_messages
        if overflow > 0:
            del self._messages[:overflow]
            logger.debug("Trimmed %d old messages from ledger", overflow)

        logger.debug(
            "Message appended: id=%s speaker=%s length=%d total=%d",
            message.id,
            speaker_name,
            len(content),
            self._total_messages,
        )
        return message

    def all_messages(self) -> list[ConversationMessage]:
        """Return a copy of the retained messages, oldest first."""
        return list(self._messages)

    def last_message(self) -> ConversationMessage | None:
        return self._messages[-1] if self._messages else None

    def last_n(self, count: int) -> list[ConversationMessage]:
        """Return the last ``count`` retained messages, oldest first.

        Negative counts are treated as zero.
        """
        if count <= 0:
            return []
        return self._messages[-count:]

    def by_persona_name(self, name: str) -> list[ConversationMessage]:
        """Return retained messages whose speaker exactly matches ``name``."""
        return [m for m in self._messages if m.speaker_name == name]

    def context_window(self) -> list[str]:
        """Render the most recent messages as ``speaker: content`` lines."""
        return [render_line(m) for m in self.last_n(self.context_window_size)]

    def duration_ms(self) -> int:
        """Milliseconds from start until end (or now, while still running)."""
        end = self._end_time or datetime.now(timezone.utc)
        return max(0, int((end - self._start_time).total_seconds() * 1000))

    def statistics(self) -> LedgerStatistics:
        """Compute statistics over the retained messages."""
        by_persona: dict[str, int] = {}
        total_length = 0

        for message in self._messages:
            by_persona[message.speaker_name] = by_persona.get(message.speaker_name, 0) + 1
            total_length += len(message.content)

        return LedgerStatistics(
            total_messages=self._total_messages,
            messages_by_persona=by_persona,
            average_message_length=(
                total_length / len(self._messages) if self._messages else 0.0
            ),
            duration_ms=self.duration_ms(),
        )

    def search(self, query: str, case_sensitive: bool = False) -> list[ConversationMessage]:
        """Find messages whose content or speaker name contains ``query``.

        Args:
            query: Substring to look for
            case_sensitive: Match case exactly when True

        Returns:
            Matching messages in ledger order
        """
        if not case_sensitive:
            query = query.casefold()

        results = []
        for message in self._messages:
            content = message.content if case_sensitive else message.content.casefold()
            speaker = message.speaker_name if case_sensitive else message.speaker_name.casefold()
            if query in content or query in speaker:
                results.append(message)
        return results

    def snapshot(self) -> TranscriptExport:
        """Build an export snapshot without mutating ledger state."""
        return TranscriptExport(
            messages=list(self._messages),
            start_time=self._start_time,
            end_time=self._end_time or datetime.now(timezone.utc),
            topic=self.topic,
            total_messages=self._total_messages,
            stats=self.statistics(),
        )

    def export_json(self) -> str:
        """Serialize the ledger to a JSON document."""
        return self.snapshot().model_dump_json(indent=2)

    def export_markdown(self) -> str:
        """Render the ledger as a human-readable Markdown document."""
        stats = self.statistics()
        lines = ["# AI Conversation", ""]

        if self.topic:
            lines.append(f"**Topic:** {self.topic}")
        lines.append(f"**Started:** {self._start_time.astimezone():%Y-%m-%d %H:%M:%S}")
        lines.append(f"**Duration:** {format_duration(stats.duration_ms)}")
        lines.append(f"**Total Messages:** {stats.total_messages}")
        lines.append("")

        lines.extend(["## Participants", ""])
        for persona, count in stats.messages_by_persona.items():
            lines.append(f"- **{persona}:** {count} messages")
        lines.append("")

        lines.extend(["## Conversation", ""])
        for message in self._messages:
            lines.append(f"### {message.speaker_name} ({message.timestamp.astimezone():%H:%M:%S})")
            lines.append("")
            lines.append(message.content)
            lines.append("")

        return "\n".join(lines)

    def end(self) -> None:
        """Mark the conversation as ended. Repeated calls move the end time forward."""
        self._end_time = self._now()
        logger.info(
            "Conversation ended: duration_ms=%d total_messages=%d",
            self.duration_ms(),
            self._total_messages,
        )

    def clear(self) -> None:
        """Drop all messages and restart the clock."""
        removed = len(self._messages)
        self._messages = []
        self._total_messages = 0
        self._start_time = datetime.now(timezone.utc)
        self._last_timestamp = self._start_time
        self._end_time = None
        logger.debug("Cleared ledger (%d messages removed)", removed)

    def set_topic(self, topic: str) -> None:
        self.topic = topic
        logger.debug("Conversation topic updated: %s", topic)

    @classmethod
    def from_json(
        cls,
        data: str,
        max_messages: int = 1000,
        context_window: int = 20,
    ) -> "ConversationLedger":
        """Restore a ledger from a document produced by :meth:`export_json`.

        Args:
            data: JSON export text
            max_messages: Retention bound for the restored ledger
            context_window: Context window size for the restored ledger

        Returns:
            Ledger holding the exported messages, times, topic and counter

        Raises:
            pydantic.ValidationError: If the document is not a valid export
        """
        export = TranscriptExport.model_validate_json(data)
        ledger = cls(
            topic=export.topic,
            max_messages=max_messages,
            context_window=context_window,
        )
        ledger._messages = export.messages[-max_messages:]
        ledger._total_messages = max(export.total_messages, len(export.messages))
        ledger._start_time = export.start_time
        ledger._end_time = export.end_time
        if export.messages:
            ledger._last_timestamp = max(export.end_time, export.messages[-1].timestamp)
        else:
            ledger._last_timestamp = export.end_time
        return ledger
