"""Ollama generation backend using the OpenAI SDK."""

import logging
import time
from typing import Any

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from duologue.errors import BackendError
from duologue.llm.client import GenerationResult

logger = logging.getLogger(__name__)


class OllamaClient:
    """Generation backend that wraps Ollama's OpenAI-compatible API."""

    def __init__(
        self,
        model: str,
        host: str = "http://localhost:11434",
        timeout: int = 120,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        max_retries: int = 2,
    ):
        """Initialize Ollama client.

        Args:
            model: Model name (e.g., "qwen2.5:7b")
            host: Ollama server URL (native API, without /v1)
            timeout: Request timeout in seconds
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate per response
            max_retries: SDK-level retries for transient failures
        """
        self.model = model
        self.host = host.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens

        # OpenAI SDK pointed at Ollama
        self.client = AsyncOpenAI(
            base_url=f"{self.host}/v1",
            api_key="ollama",  # Ollama doesn't use API keys but SDK requires one
            timeout=timeout,
            max_retries=max_retries,
        )

    def _build_messages(
        self,
        prompt: str,
        system_prompt: str | None = None,
        context: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Build the chat message list for a generation request.

        Context lines alternate between user and assistant roles, starting
        with user, and the prompt always comes last.

        Args:
            prompt: Final user prompt
            system_prompt: Optional system instruction
            context: Optional prior turns rendered as text

        Returns:
            List of message dicts in OpenAI format
        """
        messages: list[dict[str, Any]] = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        for index, line in enumerate(context or []):
            messages.append(
                {
                    "role": "user" if index % 2 == 0 else "assistant",
                    "content": line,
                }
            )

        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        context: list[str] | None = None,
    ) -> GenerationResult:
        """Generate a response from Ollama.

        Args:
            prompt: Final user prompt
            system_prompt: Optional system instruction
            context: Optional prior turns, oldest first

        Returns:
            GenerationResult with stripped text and token usage

        Raises:
            BackendError: If the request fails
        """
        start = time.perf_counter()
        logger.debug(
            "Generating response: prompt_length=%d system=%s context=%d",
            len(prompt),
            bool(system_prompt),
            len(context or []),
        )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(prompt, system_prompt, context),  # type: ignore[arg-type]
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except APIStatusError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error("Ollama returned HTTP %d after %.0fms", e.status_code, duration_ms)
            raise BackendError(
                f"Failed to generate response: {e.message}",
                status_code=e.status_code,
                details={"model": self.model, "duration_ms": duration_ms},
                critical=e.status_code == 404,
            ) from e
        except (APIConnectionError, APIError) as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error("Ollama request failed after %.0fms: %s", duration_ms, e)
            raise BackendError(
                f"Failed to generate response: {e}",
                details={"model": self.model, "duration_ms": duration_ms},
            ) from e

        if not response.choices:
            raise BackendError(
                "Failed to generate response: empty choices",
                details={"model": self.model},
            )

        content = response.choices[0].message.content or ""
        tokens_used = response.usage.completion_tokens if response.usage else None

        logger.debug(
            "Response generated in %.0fms: length=%d tokens=%s",
            (time.perf_counter() - start) * 1000,
            len(content),
            tokens_used,
        )

        return GenerationResult(
            text=content.strip(),
            model=self.model,
            tokens_used=tokens_used,
        )

    async def list_models(self) -> list[str]:
        """Get list of models currently available in Ollama.

        Returns:
            List of model names (e.g., ["qwen2.5:7b", "llama3:8b"])

        Raises:
            BackendError: If Ollama cannot be queried
        """
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(f"{self.host}/api/tags")
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                "Failed to retrieve available models",
                status_code=e.response.status_code,
                details={"host": self.host},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise BackendError(
                "Failed to retrieve available models",
                details={"host": self.host, "error": str(e)},
            ) from e

        return [model["name"] for model in data.get("models", [])]

    async def check_connection(self) -> bool:
        """Check if Ollama is running and the configured model is installed.

        Returns:
            True if Ollama is accessible and serves the model, False otherwise
        """
        try:
            models = await self.list_models()
        except BackendError as e:
            logger.error("Failed to connect to Ollama at %s: %s", self.host, e)
            return False

        if self.model not in models:
            logger.warning(
                "Model %s not found in available models: %s", self.model, ", ".join(models)
            )
            return False

        logger.debug("Ollama connection verified: model=%s total=%d", self.model, len(models))
        return True

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
