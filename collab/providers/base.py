"""Abstract base for all AI model providers."""

from abc import ABC, abstractmethod

from collab.errors import ExecutionError
from collab.models import ProviderReply


class ProviderError(ExecutionError):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str, model: str = "") -> None:
        self.provider_name = provider_name
        super().__init__(provider_name, model, f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g. 'Google', 'Anthropic')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        timeout_sec: float | None = None,
        json_mode: bool = False,
    ) -> ProviderReply:
        """Generate a response for the given prompt.

        Args:
            prompt: The user prompt text to send.
            system: Optional system instruction.
            timeout_sec: Bound on the request; falls back to the provider default.
            json_mode: Ask the backend for a JSON object where it supports it.

        Returns:
            ProviderReply dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...
