"""Pydantic models for conversation transcripts and analytics."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConversationMessage(BaseModel):
    """A single utterance in a conversation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    speaker_name: str
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] | None = None  # turn index, model used, custom fields


class LedgerStatistics(BaseModel):
    """Derived statistics over the retained transcript."""

    total_messages: int = 0
    messages_by_persona: dict[str, int] = Field(default_factory=dict)
    average_message_length: float = 0.0
    duration_ms: int = 0


class TranscriptExport(BaseModel):
    """Serialized snapshot of a conversation ledger."""

    messages: list[ConversationMessage] = Field(default_factory=list)
    start_time: datetime
    end_time: datetime
    topic: str | None = None
    total_messages: int = 0
    stats: LedgerStatistics = Field(default_factory=LedgerStatistics)


class SummaryKind(str, Enum):
    """Why a summary was produced."""

    PERIODIC = "periodic"
    CONTEXT_COMPACT = "context_compact"
    FINAL = "final"


class ConversationSummary(BaseModel):
    """Prose summary of a slice of the conversation."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: SummaryKind
    content: str
    covered_range: tuple[int, int]
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    key_topics: list[str] = Field(default_factory=list)
    participant_contributions: dict[str, str] = Field(default_factory=dict)


class ResponseTimeStats(BaseModel):
    """Gap between consecutive messages, in milliseconds."""

    average: float = 0.0
    min: float = 0.0
    max: float = 0.0


class ConversationFlow(BaseModel):
    turns_taken: int = 0
    average_turn_length: float = 0.0
    topic_changes: int = 0


class ConversationStatistics(BaseModel):
    """Aggregate statistics computed by the analytics component."""

    total_messages: int = 0
    messages_by_persona: dict[str, int] = Field(default_factory=dict)
    average_message_length: float = 0.0
    duration_ms: int = 0
    response_times: ResponseTimeStats = Field(default_factory=ResponseTimeStats)
    topic_progression: list[str] = Field(default_factory=list)
    key_insights: list[str] = Field(default_factory=list)
    flow: ConversationFlow = Field(default_factory=ConversationFlow)
