"""Generation backend abstraction."""

from duologue.llm.client import GenerationBackend, GenerationResult
from duologue.llm.ollama import OllamaClient

__all__ = ["GenerationBackend", "GenerationResult", "OllamaClient"]
