"""Conversation core for duologue.

Components:

- :class:`ConversationLedger` - Append-only transcript with bounded retention
- :class:`PersonaRegistry` - Named persona configurations
- :class:`ConversationAnalytics` - Summaries, statistics and context compaction
- :class:`ConversationScheduler` - Alternating two-persona turn loop
"""

from duologue.conversation.analytics import ConversationAnalytics
from duologue.conversation.ledger import ConversationLedger
from duologue.conversation.personas import DEFAULT_PERSONAS, PersonaConfig, PersonaRegistry
from duologue.conversation.scheduler import ConversationScheduler

__all__ = [
    "DEFAULT_PERSONAS",
    "ConversationAnalytics",
    "ConversationLedger",
    "ConversationScheduler",
    "PersonaConfig",
    "PersonaRegistry",
]
