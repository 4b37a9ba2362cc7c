"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

from collab.errors import CredentialMissingError
from collab.models import ProviderReply
from collab.providers.base import AIProvider, ProviderError
from config.config_loader import ProviderConfig

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(
        self,
        config: ProviderConfig,
        model: str,
        timeout_sec: float = 120,
        scope: str = "participant",
    ) -> None:
        self._config = config
        self._model = model
        self._timeout_sec = timeout_sec
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise CredentialMissingError(scope, config.name, config.api_key_env)
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        timeout_sec: float | None = None,
        json_mode: bool = False,
    ) -> ProviderReply:
        # Messages API has no JSON mode; the prompt asks for JSON instead.
        timeout = timeout_sec or self._timeout_sec
        kwargs = {
            "model": self._model,
            "max_tokens": self._config.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**kwargs),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {timeout}s", self._model) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}", self._model) from exc

        latency = time.monotonic() - start

        if not response.content:
            raise ProviderError(self._config.name, "Empty response content", self._model)

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, "No text blocks in response", self._model)

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic %s: %.2fs, %s tokens", self._model, latency, token_count)

        return ProviderReply(
            provider=self._config.name,
            model=self._model,
            content="\n".join(text_blocks),
            latency_sec=latency,
            token_count=token_count,
        )
