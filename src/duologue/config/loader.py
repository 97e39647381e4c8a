"""Load, save and apply duologue.yaml configuration."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from duologue.config.schema import DuologueConfig
from duologue.conversation.personas import PersonaConfig, PersonaRegistry
from duologue.errors import DuologueError

DEFAULT_CONFIG_PATH = Path.home() / ".duologue" / "duologue.yaml"


class ConfigError(DuologueError):
    """Configuration loading or validation error."""


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read config from {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config in {path} must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Path | str | None = None) -> DuologueConfig:
    """Load configuration, falling back to defaults.

    A missing or empty file yields the default configuration, so duologue
    runs without any setup.

    Args:
        path: Config file (defaults to ~/.duologue/duologue.yaml)

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file exists but cannot be read or validated
    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        return DuologueConfig()

    try:
        return DuologueConfig.model_validate(_read_yaml(path))
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e


def save_config(config: DuologueConfig, path: Path | str | None = None) -> Path:
    """Write configuration as YAML, creating parent directories.

    Returns:
        Path the configuration was written to
    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(
            config.model_dump(mode="json"), default_flow_style=False, sort_keys=False
        ),
        encoding="utf-8",
    )
    return path


def build_registry(config: DuologueConfig) -> PersonaRegistry:
    """Create a persona registry with built-ins plus the configured custom personas."""
    custom = {
        key: PersonaConfig(**settings.model_dump())
        for key, settings in config.personas.custom.items()
    }
    return PersonaRegistry(custom)
