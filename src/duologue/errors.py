"""Exception hierarchy shared across duologue."""

from typing import Any


class DuologueError(Exception):
    """Base class for all duologue errors."""


class BackendError(DuologueError):
    """A generation backend call failed at the transport or protocol level."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        critical: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.critical = critical


class BackendUnavailable(BackendError):
    """The backend connectivity check failed before a conversation started."""


class GenerationFailed(DuologueError):
    """A single turn could not be generated for a persona."""

    def __init__(
        self,
        persona_name: str,
        cause: BaseException | None = None,
        critical: bool = False,
    ) -> None:
        super().__init__(f"Failed to generate response for {persona_name}")
        self.persona_name = persona_name
        self.cause = cause
        self.critical = critical


class InsufficientPersonas(DuologueError):
    """Fewer than two personas are registered."""


class EmptySlice(DuologueError):
    """A summary was requested for an empty list of messages."""
