"""Pytest configuration and shared fixtures."""

import pytest

from duologue.config.schema import DuologueConfig
from duologue.conversation.personas import DEFAULT_PERSONAS, PersonaConfig
from duologue.llm.client import GenerationResult


class FakeBackend:
    """Scripted generation backend.

    Each call to ``generate`` takes the next item from ``replies``; an
    exception instance is raised instead of returned. Once the script runs
    out, ``default`` is returned.
    """

    def __init__(
        self,
        replies: list[str | Exception] | None = None,
        default: str = "reply",
        connected: bool = True,
        model: str = "test-model",
    ):
        self.model = model
        self.replies = list(replies or [])
        self.default = default
        self.connected = connected
        self.calls: list[dict] = []

    async def check_connection(self) -> bool:
        return self.connected

    async def list_models(self) -> list[str]:
        return [self.model]

    async def close(self) -> None:
        self.closed = True

    async def generate(self, prompt, system_prompt=None, context=None) -> GenerationResult:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "context": context})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return GenerationResult(text=reply, model=self.model)


@pytest.fixture
def default_config() -> DuologueConfig:
    """Provide a default configuration for tests."""
    return DuologueConfig()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def alice() -> PersonaConfig:
    return DEFAULT_PERSONAS["alice"]


@pytest.fixture
def bob() -> PersonaConfig:
    return DEFAULT_PERSONAS["bob"]


@pytest.fixture
def make_backend() -> type[FakeBackend]:
    """Factory for scripted backends: ``make_backend(["hi", BackendError("x")])``."""
    return FakeBackend
