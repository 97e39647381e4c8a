"""Shared fixtures for CLI tests."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from duologue.errors import BackendError


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Provide a temporary config file path (not created)."""
    return tmp_path / "duologue.yaml"


@pytest.fixture
def fake_ollama(make_backend):
    """Replace OllamaClient in the start command with a scripted backend."""
    backend = make_backend(["Hello Bob, shall we?", "Absolutely, Alice!"], model="llama3.2")
    with patch("duologue.cli.start_cmd.OllamaClient", return_value=backend):
        yield backend


@pytest.fixture
def ollama_down():
    """Make every Ollama model listing fail."""
    client = AsyncMock()
    client.list_models = AsyncMock(side_effect=BackendError("Failed to retrieve available models"))
    with (
        patch("duologue.cli.start_cmd.OllamaClient", return_value=client),
        patch("duologue.cli.models_cmd.OllamaClient", return_value=client),
    ):
        yield client


@pytest.fixture
def no_sleep():
    """Skip the pause between turns."""
    with patch("duologue.conversation.scheduler.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep
