"""Base classes and interfaces for AI providers.

Defines the abstract interface that every LLM provider used for task
analysis must implement. The base class owns the parts every provider
shares: lazy client creation behind an API key check, and turning SDK
failures into AIProviderError. Subclasses only shape the request for
their API and read the answer back.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class AIProviderError(Exception):
    """Base exception for AI provider errors."""

    def __init__(self, message: str, provider: str = "unknown", retryable: bool = False):
        super().__init__(message)
        self.provider = provider
        self.retryable = retryable


@dataclass
class AIResponse:
    """Response from an AI provider."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    raw_response: Any = None

    @property
    def prompt_tokens(self) -> int:
        """Number of tokens in the prompt."""
        return self.usage.get("prompt_tokens", 0)

    @property
    def completion_tokens(self) -> int:
        """Number of tokens in the completion."""
        return self.usage.get("completion_tokens", 0)

    @property
    def total_tokens(self) -> int:
        """Total tokens used."""
        return self.usage.get("total_tokens", self.prompt_tokens + self.completion_tokens)


class AIProvider(ABC):
    """Abstract base class for AI providers.

    Providers turn a prompt into a text completion. Missing credentials
    are reported through AIProviderError so callers can treat AI as an
    optional signal.
    """

    ENV_API_KEY = ""
    DISPLAY_NAME = "AI"
    # Substrings of SDK error messages worth retrying later
    RETRYABLE_MARKERS: tuple[str, ...] = ("rate", "timeout")

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        **kwargs
    ):
        """Initialize the AI provider.

        Args:
            api_key: API key for the provider (defaults to the ENV_API_KEY env var)
            model: Model name to use
            temperature: Sampling temperature (0.0-1.0); low for stable estimates
            max_tokens: Maximum tokens in response; estimates are short JSON answers
            **kwargs: Additional provider-specific configuration
        """
        self.api_key = api_key or (os.environ.get(self.ENV_API_KEY) if self.ENV_API_KEY else None)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.config = kwargs
        self._client: Any = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'openai', 'anthropic')."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Return the default model for this provider."""
        pass

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the SDK client; only called once a key is known to be set."""
        pass

    @abstractmethod
    def _complete(
        self, client: Any, prompt: str, system_prompt: str | None, json_output: bool
    ) -> AIResponse:
        """Send one request through the SDK client and read the answer."""
        pass

    def generate(
        self, prompt: str, system_prompt: str | None = None, json_output: bool = False
    ) -> AIResponse:
        """Generate a completion from the given prompt.

        Args:
            prompt: The user prompt to send to the model
            system_prompt: Optional system prompt for context
            json_output: Ask the model for a single JSON object

        Returns:
            AIResponse with the generated content

        Raises:
            AIProviderError: If no API key is set or the API call fails
        """
        client = self._get_client()
        try:
            return self._complete(client, prompt, system_prompt, json_output)
        except AIProviderError:
            raise
        except Exception as e:
            error_message = str(e)
            raise AIProviderError(
                f"{self.DISPLAY_NAME} API error: {error_message}",
                provider=self.provider_name,
                retryable=self.is_retryable(error_message),
            ) from e

    def is_retryable(self, error_message: str) -> bool:
        """Whether an SDK error message looks transient."""
        lowered = error_message.lower()
        return any(marker in lowered for marker in self.RETRYABLE_MARKERS)

    def _get_client(self) -> Any:
        if self._client is None:
            self.validate_api_key()
            self._client = self._create_client()
        return self._client

    def get_model(self) -> str:
        """Get the model to use, falling back to default if not set."""
        return self.model or self.default_model

    def has_credentials(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.api_key)

    def validate_api_key(self) -> None:
        """Validate that an API key is configured.

        Raises:
            AIProviderError: If no API key is set
        """
        if not self.has_credentials():
            raise AIProviderError(
                f"No API key configured for {self.provider_name}. "
                f"Set {self.ENV_API_KEY or 'an API key'} or pass api_key.",
                provider=self.provider_name
            )
