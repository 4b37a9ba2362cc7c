"""Map configured provider names to SDK-backed AIProvider classes."""

from collab.providers.anthropic import AnthropicProvider
from collab.providers.base import AIProvider, ProviderError
from collab.providers.gemini import GeminiProvider
from collab.providers.openai_provider import OpenAICompatibleProvider
from config.config_loader import AppConfig

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "gemini": GeminiProvider,
    "anthropic": AnthropicProvider,
    "openai": OpenAICompatibleProvider,
}


def build_provider(
    config: AppConfig,
    provider_name: str,
    model: str,
    *,
    timeout_sec: float | None = None,
    scope: str = "participant",
) -> AIProvider:
    """Instantiate the provider for ``provider_name``/``model``.

    Raises:
        CredentialMissingError: The provider's API key env var is empty.
        ProviderError: Unknown provider name or SDK.
    """
    provider_cfg = config.providers.get(provider_name)
    if provider_cfg is None:
        raise ProviderError(provider_name, "Unsupported provider", model)
    provider_cls = PROVIDER_CLASSES.get(provider_cfg.sdk)
    if provider_cls is None:
        raise ProviderError(provider_name, f"Unknown sdk '{provider_cfg.sdk}'", model)
    return provider_cls(
        provider_cfg,
        model,
        timeout_sec=timeout_sec or config.defaults.default_timeout_sec,
        scope=scope,
    )


def build_coordinator_provider(config: AppConfig) -> AIProvider:
    """Build the designated Coordinator; missing credentials are fatal."""
    return build_provider(
        config,
        config.coordinator.provider,
        config.coordinator.model,
        timeout_sec=config.coordinator.timeout_sec,
        scope="coordinator",
    )


class ProviderFactory:
    """Callable handed to the execution engine; caches one client per agent."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._cache: dict[tuple[str, str], AIProvider] = {}

    def __call__(self, provider_name: str, model: str) -> AIProvider:
        key = (provider_name, model)
        if key not in self._cache:
            self._cache[key] = build_provider(self._config, provider_name, model)
        return self._cache[key]
