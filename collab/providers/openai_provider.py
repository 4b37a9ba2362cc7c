"""OpenAI-compatible provider (OpenAI, Groq, Mistral, DeepSeek, ...) via openai SDK."""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from collab.errors import CredentialMissingError
from collab.models import ProviderReply
from collab.providers.base import AIProvider, ProviderError
from config.config_loader import ProviderConfig

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(AIProvider):
    """Any chat-completions endpoint; ``base_url`` selects the vendor."""

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
        if config.base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

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
        timeout = timeout_sec or self._timeout_sec
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        kwargs = {"model": self._model, "messages": messages, "max_tokens": self._config.max_tokens}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(**kwargs),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {timeout}s", self._model) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}", self._model) from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content", self._model)

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("%s %s: %.2fs, %s tokens", self._config.name, self._model, latency, token_count)

        return ProviderReply(
            provider=self._config.name,
            model=self._model,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )
