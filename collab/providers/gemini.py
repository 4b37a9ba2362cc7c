"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from collab.errors import CredentialMissingError
from collab.models import ProviderReply
from collab.providers.base import AIProvider, ProviderError
from config.config_loader import ProviderConfig

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

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
        self._client = genai.Client(api_key=api_key)

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
        gen_config = genai_types.GenerateContentConfig(
            max_output_tokens=self._config.max_tokens,
            system_instruction=system,
            response_mime_type="application/json" if json_mode else None,
        )
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._model,
                    contents=prompt,
                    config=gen_config,
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {timeout}s", self._model) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}", self._model) from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text", self._model)

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %.2fs, %s tokens", self._model, latency, token_count)

        return ProviderReply(
            provider=self._config.name,
            model=self._model,
            content=response.text,
            latency_sec=latency,
            token_count=token_count,
        )
