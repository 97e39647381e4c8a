"""Lifecycle events emitted by the conversation scheduler."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from duologue.conversation.models import ConversationMessage
from duologue.errors import GenerationFailed


@dataclass(frozen=True)
class ConversationStarted:
    primary: str
    secondary: str
    topic: str | None = None
    max_turns: int | None = None


@dataclass(frozen=True)
class PersonaThinking:
    """A persona is about to generate its next utterance."""

    persona_name: str


@dataclass(frozen=True)
class MessageAppended:
    message: ConversationMessage


@dataclass(frozen=True)
class TurnFailed:
    """A turn could not be generated; nothing was appended for it."""

    error: GenerationFailed


@dataclass(frozen=True)
class ConversationEnded:
    total_messages: int
    duration_ms: int


ConversationEvent = Union[
    ConversationStarted,
    PersonaThinking,
    MessageAppended,
    TurnFailed,
    ConversationEnded,
]

EventListener = Callable[[ConversationEvent], None]
