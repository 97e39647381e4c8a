"""Pydantic models for duologue.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field

SPEED_DELAYS_MS = {
    "slow": 3000,
    "medium": 2000,
    "fast": 1000,
}

Speed = Literal["slow", "medium", "fast"]


class OllamaConfig(BaseModel):
    """Ollama server configuration."""

    host: str = Field(default="http://localhost:11434", description="Ollama server URL")
    timeout: int = Field(default=120, description="Request timeout in seconds", ge=1)
    max_retries: int = Field(default=2, description="Retries for transient failures", ge=0)


class ModelConfig(BaseModel):
    """Generation model configuration."""

    name: str | None = Field(
        default=None,
        description="Model name; the first installed model is used when unset",
    )
    temperature: float = Field(default=0.7, description="Sampling temperature", ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, description="Maximum tokens per response", ge=1)


class ConversationConfig(BaseModel):
    """Turn-taking configuration."""

    max_turns: int | None = Field(
        default=None, description="Turn budget; unlimited when unset", ge=1, le=100
    )
    speed: Speed = Field(default="medium", description="Pace between turns")
    context_window: int = Field(
        default=20, description="Recent messages passed to the model as context", ge=1
    )
    max_messages: int = Field(
        default=1000, description="Maximum messages retained in memory", ge=1
    )

    @property
    def turn_delay_ms(self) -> int:
        return SPEED_DELAYS_MS[self.speed]


class CompactionConfig(BaseModel):
    """Context compaction configuration."""

    enabled: bool = Field(default=False, description="Summarize older context near the budget")
    threshold: float = Field(
        default=0.8, description="Fraction of the budget that triggers compaction", gt=0.0, le=1.0
    )
    max_context_tokens: int = Field(default=4096, description="Context budget in tokens", ge=1)
    keep_recent: int = Field(
        default=6, description="Messages kept verbatim after compaction", ge=0
    )


class PersonaSettings(BaseModel):
    """A custom persona definition."""

    name: str
    personality: str
    speaking_style: str
    interests: list[str] = Field(default_factory=list)
    system_prompt: str | None = None


class PersonasConfig(BaseModel):
    """Persona selection and custom persona definitions."""

    primary: str = Field(default="alice", description="Key of the persona that speaks first")
    secondary: str = Field(default="bob", description="Key of the answering persona")
    custom: dict[str, PersonaSettings] = Field(
        default_factory=dict,
        description="Extra personas keyed by registry key, overriding built-ins",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING", description="Log level for the console handler"
    )


class DuologueConfig(BaseModel):
    """Root configuration model."""

    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    personas: PersonasConfig = Field(default_factory=PersonasConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
