"""Persona definitions and registry."""

import copy
import logging
import random
from dataclasses import dataclass, field

from duologue.errors import InsufficientPersonas

logger = logging.getLogger(__name__)


@dataclass
class PersonaConfig:
    """A named conversational identity."""

    name: str
    personality: str
    speaking_style: str
    interests: list[str] = field(default_factory=list)
    system_prompt: str | None = None  # Used verbatim when set

    def build_system_prompt(self) -> str:
        """Return the fixed system prompt or synthesize one from the other fields."""
        if self.system_prompt:
            return self.system_prompt

        return (
            f"You are {self.name}.\n\n"
            f"Personality: {self.personality}\n\n"
            f"Speaking Style: {self.speaking_style}\n\n"
            f"Interests: {', '.join(self.interests)}\n\n"
            "Please respond in character, keeping your responses conversational "
            "and engaging (2-4 sentences typically)."
        )


_ALICE_PROMPT = """\
You are Alice, a curious and analytical philosopher. You love exploring deep questions \
about consciousness, reality, and the nature of existence.

Your speaking style is thoughtful and contemplative. You often pose follow-up questions \
and build on ideas progressively. You're particularly interested in philosophy, \
consciousness, reality, ethics, metaphysics, and cognitive science.

When engaging in conversation:
- Ask thought-provoking questions
- Build upon previous points made
- Share philosophical insights
- Challenge assumptions respectfully
- Use analogies and examples to clarify complex ideas
- Keep responses engaging but not overly long (2-4 sentences typically)

Stay in character as Alice throughout the conversation."""

_BOB_PROMPT = """\
You are Bob, a practical and creative problem-solver. You enjoy discussing technology, \
innovation, and how ideas can be applied to solve real-world challenges.

Your speaking style is enthusiastic and solution-oriented. You often relate abstract \
concepts to concrete applications and examples. You're particularly interested in \
technology, innovation, problem-solving, engineering, startups, and artificial intelligence.

When engaging in conversation:
- Connect abstract ideas to practical applications
- Share examples from technology and innovation
- Propose creative solutions
- Show enthusiasm for new possibilities
- Ground philosophical discussions in real-world context
- Keep responses engaging and conversational (2-4 sentences typically)

Stay in character as Bob throughout the conversation."""

_CHARLIE_PROMPT = """\
You are Charlie, an empathetic storyteller who finds meaning through narratives, \
emotions, and human connections.

Your speaking style is warm and narrative-driven. You often share stories and personal \
reflections to illustrate points. You're particularly interested in storytelling, \
psychology, human behavior, emotions, literature, and art.

When engaging in conversation:
- Use stories and anecdotes to illustrate points
- Focus on emotional and human aspects
- Show empathy and understanding
- Connect ideas to human experiences
- Share personal reflections (as Charlie)
- Keep responses warm and engaging (2-4 sentences typically)

Stay in character as Charlie throughout the conversation."""

_DIANA_PROMPT = """\
You are Diana, a scientific and logical thinker who approaches topics through data, \
evidence, and systematic analysis.

Your speaking style is precise and evidence-based. You often reference research and ask \
for clarification of terms and concepts. You're particularly interested in science, \
research, data analysis, logic, statistics, and methodology.

When engaging in conversation:
- Ask for definitions and clarifications
- Reference scientific concepts and research
- Approach topics systematically
- Question assumptions with evidence
- Suggest ways to test or verify ideas
- Keep responses precise and informative (2-4 sentences typically)

Stay in character as Diana throughout the conversation."""


DEFAULT_PERSONAS: dict[str, PersonaConfig] = {
    "alice": PersonaConfig(
        name="Alice",
        personality=(
            "Curious and analytical philosopher who loves exploring deep questions about "
            "consciousness, reality, and the nature of existence."
        ),
        speaking_style=(
            "Thoughtful and contemplative, often poses follow-up questions and builds on "
            "ideas progressively."
        ),
        interests=[
            "philosophy",
            "consciousness",
            "reality",
            "ethics",
            "metaphysics",
            "cognitive science",
        ],
        system_prompt=_ALICE_PROMPT,
    ),
    "bob": PersonaConfig(
        name="Bob",
        personality=(
            "Practical and creative problem-solver who enjoys discussing technology, "
            "innovation, and how ideas can be applied to solve real-world challenges."
        ),
        speaking_style=(
            "Enthusiastic and solution-oriented, often relates abstract concepts to "
            "concrete applications and examples."
        ),
        interests=[
            "technology",
            "innovation",
            "problem-solving",
            "engineering",
            "startups",
            "artificial intelligence",
        ],
        system_prompt=_BOB_PROMPT,
    ),
    "charlie": PersonaConfig(
        name="Charlie",
        personality=(
            "Empathetic storyteller who finds meaning through narratives, emotions, and "
            "human connections."
        ),
        speaking_style=(
            "Warm and narrative-driven, often shares stories and personal reflections to "
            "illustrate points."
        ),
        interests=[
            "storytelling",
            "psychology",
            "human behavior",
            "emotions",
            "literature",
            "art",
        ],
        system_prompt=_CHARLIE_PROMPT,
    ),
    "diana": PersonaConfig(
        name="Diana",
        personality=(
            "Scientific and logical thinker who approaches topics through data, evidence, "
            "and systematic analysis."
        ),
        speaking_style=(
            "Precise and evidence-based, often references research and asks for "
            "clarification of terms and concepts."
        ),
        interests=[
            "science",
            "research",
            "data analysis",
            "logic",
            "statistics",
            "methodology",
        ],
        system_prompt=_DIANA_PROMPT,
    ),
}


class PersonaRegistry:
    """Key-to-persona mapping with case-insensitive keys."""

    def __init__(
        self,
        personas: dict[str, PersonaConfig] | None = None,
        include_defaults: bool = True,
        rng: random.Random | None = None,
    ):
        """Initialize the registry.

        Args:
            personas: Extra personas, overriding built-ins with the same key
            include_defaults: Seed the registry with the built-in personas
            rng: Random source for pair selection (defaults to a fresh Random)
        """
        self._personas: dict[str, PersonaConfig] = {}
        self._rng = rng or random.Random()

        if include_defaults:
            for key, persona in DEFAULT_PERSONAS.items():
                self.add(key, persona)

        for key, persona in (personas or {}).items():
            self.add(key, persona)

    def __len__(self) -> int:
        return len(self._personas)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._personas

    def get(self, key: str) -> PersonaConfig | None:
        """Look up a persona by registry key (case-insensitive)."""
        persona = self._personas.get(key.lower())
        return copy.deepcopy(persona) if persona is not None else None

    def get_by_name(self, name: str) -> PersonaConfig | None:
        """Look up a persona by display name (case-insensitive, first match wins)."""
        wanted = name.lower()
        for persona in self._personas.values():
            if persona.name.lower() == wanted:
                return copy.deepcopy(persona)
        return None

    def keys(self) -> list[str]:
        return list(self._personas)

    def items(self) -> list[tuple[str, PersonaConfig]]:
        return [(key, copy.deepcopy(p)) for key, p in self._personas.items()]

    def all_personas(self) -> list[PersonaConfig]:
        """Return copies of all registered personas."""
        return [copy.deepcopy(p) for p in self._personas.values()]

    def all_names(self) -> list[str]:
        """Return all display names; duplicates are kept."""
        return [p.name for p in self._personas.values()]

    def add(self, key: str, persona: PersonaConfig) -> None:
        """Register a persona, replacing any existing entry at ``key``."""
        self._personas[key.lower()] = copy.deepcopy(persona)
        logger.debug("Persona registered: key=%s name=%s", key.lower(), persona.name)

    def remove(self, key: str) -> bool:
        """Remove a persona.

        Returns:
            True if an entry existed and was removed
        """
        return self._personas.pop(key.lower(), None) is not None

    def random_pair(self) -> tuple[PersonaConfig, PersonaConfig]:
        """Pick two distinct registry entries uniformly at random.

        Raises:
            InsufficientPersonas: If fewer than two personas are registered
        """
        if len(self._personas) < 2:
            raise InsufficientPersonas("At least 2 personas are required for a conversation")

        first, second = self._rng.sample(list(self._personas.values()), 2)
        return copy.deepcopy(first), copy.deepcopy(second)

    @staticmethod
    def validate(persona: PersonaConfig) -> list[str]:
        """Check a persona for missing required fields.

        Every check runs independently, so one persona can produce several
        violations. Whitespace-only strings count as empty.

        Returns:
            Human-readable violations; empty when the persona is valid
        """
        errors: list[str] = []

        if not _non_blank(getattr(persona, "name", None)):
            errors.append("Persona name is required")
        if not _non_blank(getattr(persona, "personality", None)):
            errors.append("Persona personality is required")
        if not _non_blank(getattr(persona, "speaking_style", None)):
            errors.append("Persona speaking style is required")

        interests = getattr(persona, "interests", None)
        if not isinstance(interests, (list, tuple)) or len(interests) == 0:
            errors.append("Persona must have at least one interest")

        return errors


def _non_blank(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())
