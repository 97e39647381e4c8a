"""Two-party turn-taking conversation loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Literal

from duologue.conversation.events import (
    ConversationEnded,
    ConversationEvent,
    ConversationStarted,
    EventListener,
    MessageAppended,
    PersonaThinking,
    TurnFailed,
)
from duologue.conversation.ledger import ConversationLedger
from duologue.conversation.models import ConversationMessage
from duologue.conversation.personas import PersonaConfig
from duologue.conversation.utils import estimate_total_tokens, render_line
from duologue.errors import BackendUnavailable, GenerationFailed
from duologue.llm.client import GenerationBackend

if TYPE_CHECKING:
    from duologue.config.schema import DuologueConfig
    from duologue.conversation.analytics import ConversationAnalytics

logger = logging.getLogger(__name__)

USER_SPEAKER = "User"
PROMPT_CONTEXT_LINES = 10

SpeakerRole = Literal["primary", "secondary"]


class SchedulerPhase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class ConversationState:
    """Snapshot of the scheduler's turn-taking state."""

    phase: SchedulerPhase = SchedulerPhase.IDLE
    is_active: bool = False
    current_turn_index: int = 0  # completed turns
    attempted_turns: int = 0  # completed plus failed turns
    max_turns: int | None = None
    current_speaker: SpeakerRole = "primary"
    context: list[str] = field(default_factory=list)


@dataclass
class CompactionPolicy:
    """When and how to compact the prompt context."""

    max_context_tokens: int = 4096
    keep_recent: int = 6
    threshold: float = 0.8


class ConversationScheduler:
    """Drives an alternating conversation between a primary and a secondary persona.

    The loop is sequential: one generation call at a time, with the ledger
    written only by the scheduler while the conversation is active. Stopping
    is cooperative; a turn already waiting on the backend finishes before
    the stop request is seen.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        primary: PersonaConfig,
        secondary: PersonaConfig,
        *,
        turn_delay_ms: int = 2000,
        context_window: int = 20,
        max_messages: int = 1000,
        max_turns: int | None = None,
        ledger: ConversationLedger | None = None,
        analytics: ConversationAnalytics | None = None,
        compaction: CompactionPolicy | None = None,
    ):
        """Initialize the scheduler.

        Args:
            backend: Generation backend used for every turn
            primary: Persona that speaks first
            secondary: Persona that answers
            turn_delay_ms: Pause between turns in milliseconds
            context_window: Number of recent messages passed as context
            max_messages: Retention bound for a ledger created here
            max_turns: Optional turn budget (can be overridden in ``start``)
            ledger: Existing ledger to write to (created if omitted)
            analytics: Analytics used for context compaction
            compaction: Compaction policy; compaction is off when omitted
        """
        self.backend = backend
        self.primary = primary
        self.secondary = secondary
        self.turn_delay_ms = turn_delay_ms
        self.analytics = analytics
        self.compaction = compaction

        self._ledger = ledger or ConversationLedger(
            max_messages=max_messages, context_window=context_window
        )
        self._state = ConversationState(max_turns=max_turns)
        self._listeners: list[EventListener] = []
        self._stop_requested = False
        # (id of the last summarized message, summary line) from the latest compaction
        self._compacted: tuple[str, str | None] | None = None

    @classmethod
    def from_config(
        cls,
        config: DuologueConfig,
        backend: GenerationBackend,
        primary: PersonaConfig,
        secondary: PersonaConfig,
        analytics: ConversationAnalytics | None = None,
    ) -> ConversationScheduler:
        """Build a scheduler from configuration."""
        compaction = None
        if config.compaction.enabled:
            compaction = CompactionPolicy(
                max_context_tokens=config.compaction.max_context_tokens,
                keep_recent=config.compaction.keep_recent,
                threshold=config.compaction.threshold,
            )

        return cls(
            backend,
            primary,
            secondary,
            turn_delay_ms=config.conversation.turn_delay_ms,
            context_window=config.conversation.context_window,
            max_messages=config.conversation.max_messages,
            max_turns=config.conversation.max_turns,
            analytics=analytics,
            compaction=compaction,
        )

    @property
    def ledger(self) -> ConversationLedger:
        return self._ledger

    # -- observation --

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a listener for lifecycle events.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: ConversationEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed on %s", type(event).__name__)

    # -- control --

    async def start(
        self,
        initial_prompt: str,
        topic: str | None = None,
        max_turns: int | None = None,
    ) -> ConversationEnded:
        """Run a conversation until a stop condition holds.

        Args:
            initial_prompt: Opening message, recorded as spoken by the user
            topic: Optional conversation topic
            max_turns: Optional turn budget overriding the constructor value

        Returns:
            The end-of-conversation event

        Raises:
            BackendUnavailable: If the backend connectivity check fails
            RuntimeError: If a conversation is already running
        """
        if self._state.phase == SchedulerPhase.ACTIVE:
            raise RuntimeError("Conversation already running")

        if not await self.backend.check_connection():
            logger.error("Backend unavailable, conversation not started")
            raise BackendUnavailable(
                "Failed to connect to the generation backend. Please ensure Ollama is "
                f"running and the model {self.backend.model!r} is available."
            )

        self._stop_requested = False
        self._compacted = None
        if topic:
            self._ledger.set_topic(topic)
        if max_turns:
            self._state.max_turns = max_turns
        self._state.phase = SchedulerPhase.ACTIVE
        self._state.is_active = True
        self._state.current_turn_index = 0
        self._state.attempted_turns = 0
        self._state.current_speaker = "primary"

        logger.info(
            "Starting conversation: primary=%s secondary=%s topic=%s max_turns=%s",
            self.primary.name,
            self.secondary.name,
            topic,
            self._state.max_turns,
        )

        self._emit(
            ConversationStarted(
                primary=self.primary.name,
                secondary=self.secondary.name,
                topic=self._ledger.topic,
                max_turns=self._state.max_turns,
            )
        )
        opening = self._ledger.append(USER_SPEAKER, initial_prompt)
        self._state.context = self._ledger.context_window()
        self._emit(MessageAppended(opening))

        return await self._run_loop()

    def stop(self) -> None:
        """Request a cooperative stop before the next turn begins."""
        logger.info("Conversation stop requested")
        self._stop_requested = True

    def pause(self) -> None:
        # Accepted for interface compatibility; the loop keeps running.
        logger.info("Conversation pause requested (no effect)")

    def resume(self) -> None:
        logger.info("Conversation resume requested (no effect)")

    def get_state(self) -> ConversationState:
        """Return an independent copy of the current state."""
        return replace(self._state, context=list(self._state.context))

    def export(self, export_format: Literal["json", "markdown"] = "json") -> str:
        if export_format == "json":
            return self._ledger.export_json()
        return self._ledger.export_markdown()

    # -- loop --

    def _current_persona(self) -> PersonaConfig:
        return self.primary if self._state.current_speaker == "primary" else self.secondary

    def _budget_spent(self) -> bool:
        max_turns = self._state.max_turns
        return max_turns is not None and self._state.attempted_turns >= max_turns

    def _should_stop(self) -> bool:
        if self._stop_requested:
            logger.info("Conversation stopped on request")
            return True

        if self._budget_spent():
            logger.info(
                "Conversation stopped: max turns reached (%d/%d)",
                self._state.attempted_turns,
                self._state.max_turns,
            )
            return True

        return False

    async def _run_loop(self) -> ConversationEnded:
        while not self._should_stop():
            persona = self._current_persona()
            self._emit(PersonaThinking(persona.name))
            self._state.attempted_turns += 1

            try:
                message = await self._take_turn(persona)
            except GenerationFailed as e:
                logger.error(
                    "Turn %d failed for %s: %s",
                    self._state.current_turn_index,
                    persona.name,
                    e.cause,
                )
                self._emit(TurnFailed(e))
                if e.critical:
                    logger.error("Critical generation error, ending conversation")
                    break
                await self._pause_between_turns()
                continue

            self._emit(MessageAppended(message))

            self._state.current_turn_index += 1
            self._state.current_speaker = (
                "secondary" if self._state.current_speaker == "primary" else "primary"
            )
            self._state.context = self._ledger.context_window()

            await self._pause_between_turns()

        return self._end()

    async def _pause_between_turns(self) -> None:
        if self.turn_delay_ms > 0 and not (self._stop_requested or self._budget_spent()):
            await asyncio.sleep(self.turn_delay_ms / 1000)

    async def _take_turn(self, persona: PersonaConfig) -> ConversationMessage:
        """Generate and record one utterance for ``persona``.

        Raises:
            GenerationFailed: If the backend call fails for any reason
        """
        context = self._ledger.context_window()

        try:
            compacted = await self._compacted_context()
            if compacted is not None:
                context = compacted
                recent = "\n".join(compacted)
            else:
                recent = "\n".join(context[-PROMPT_CONTEXT_LINES:])
            result = await self.backend.generate(
                self._build_prompt(recent, persona),
                persona.build_system_prompt(),
                context,
            )
        except Exception as e:
            raise GenerationFailed(
                persona.name, cause=e, critical=getattr(e, "critical", False)
            ) from e

        return self._ledger.append(
            persona.name,
            result.text.strip(),
            {"turn_index": self._state.current_turn_index, "model": result.model},
        )

    def _over_budget(self, lines: list[str]) -> bool:
        policy = self.compaction
        assert self.analytics is not None and policy is not None
        return self.analytics.should_compact(
            estimate_total_tokens(lines), policy.max_context_tokens, policy.threshold
        )

    async def _compacted_context(self) -> list[str] | None:
        """Return the context compacted to fit the token budget.

        The last summary is reused for as long as it plus the messages after
        it stay under budget; only then is a new summary requested.

        Returns:
            Context lines to send instead of the context window, or None
            when compaction is off or the window already fits
        """
        if self.analytics is None or self.compaction is None:
            return None

        messages = self._ledger.last_n(self._ledger.context_window_size)
        if not self._over_budget([render_line(m) for m in messages]):
            return None

        if self._compacted is not None:
            cut_id, header = self._compacted
            ids = [m.id for m in messages]
            tail = messages[ids.index(cut_id) + 1 :] if cut_id in ids else messages
            lines = [render_line(m) for m in tail]
            if header is not None:
                lines.insert(0, header)
            if not self._over_budget(lines):
                logger.debug("Reusing context summary: kept=%d", len(tail))
                return lines

        result = await self.analytics.compact(
            messages, self.compaction.keep_recent, (self.primary, self.secondary)
        )
        if result.covered:
            self._compacted = (messages[result.covered - 1].id, result.header)
        return result.lines

    def _build_prompt(self, recent: str, persona: PersonaConfig) -> str:
        parts = []
        if self._ledger.topic:
            parts.append(f"The conversation topic is: {self._ledger.topic}\n\n")
        parts.append(f"Recent conversation:\n{recent}\n\n")
        parts.append(
            f"Please respond as {persona.name}, continuing this conversation naturally. "
            "Stay true to your character and speaking style."
        )
        return "".join(parts)

    def _end(self) -> ConversationEnded:
        self._state.phase = SchedulerPhase.ENDED
        self._state.is_active = False
        self._ledger.end()

        stats = self._ledger.statistics()
        logger.info(
            "Conversation ended: total_messages=%d duration_ms=%d turns=%d",
            stats.total_messages,
            stats.duration_ms,
            self._state.current_turn_index,
        )

        event = ConversationEnded(
            total_messages=stats.total_messages, duration_ms=stats.duration_ms
        )
        self._emit(event)
        return event
