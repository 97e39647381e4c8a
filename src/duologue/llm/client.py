"""Generation backend protocol and data types."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol


@dataclass
class GenerationResult:
    """Text produced by a generation backend."""

    text: str
    model: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tokens_used: int | None = None


class GenerationBackend(Protocol):
    """Protocol for text generation backends."""

    model: str

    async def check_connection(self) -> bool:
        """Check that the backend is reachable and the model is installed.

        Returns:
            True if generation requests can be served
        """
        ...

    async def list_models(self) -> list[str]:
        """List the models the backend can serve.

        Returns:
            Model names

        Raises:
            BackendError: If the backend cannot be queried
        """
        ...

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        context: list[str] | None = None,
    ) -> GenerationResult:
        """Generate text for a prompt.

        Args:
            prompt: Final user-facing instruction
            system_prompt: Optional system instruction
            context: Optional prior turns, oldest first

        Returns:
            GenerationResult with the generated text

        Raises:
            BackendError: On transport or protocol failure
        """
        ...
