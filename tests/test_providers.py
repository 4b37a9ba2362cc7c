"""Tests for collab/providers: registry, credentials and error mapping. No network."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from collab.errors import CredentialMissingError
from collab.providers.anthropic import AnthropicProvider
from collab.providers.base import ProviderError
from collab.providers.gemini import GeminiProvider
from collab.providers.openai_provider import OpenAICompatibleProvider
from collab.providers.registry import ProviderFactory, build_coordinator_provider, build_provider


@pytest.fixture
def keys(monkeypatch):
    for env in ("TEST_GEMINI_KEY", "TEST_OPENAI_KEY", "TEST_ANTHROPIC_KEY", "TEST_GROQ_KEY"):
        monkeypatch.setenv(env, "fake-key")


def _completion(content: str | None, tokens: int = 12):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def test_build_provider_selects_sdk(sample_app_config, keys):
    assert isinstance(build_provider(sample_app_config, "Google", "gemini-2.5-pro"), GeminiProvider)
    assert isinstance(build_provider(sample_app_config, "Anthropic", "claude-3-haiku"), AnthropicProvider)
    groq = build_provider(sample_app_config, "Groq", "llama3-8b-8192")
    assert isinstance(groq, OpenAICompatibleProvider)
    assert groq.name() == "Groq"
    assert groq.model_string() == "llama3-8b-8192"


def test_build_provider_unknown(sample_app_config):
    with pytest.raises(ProviderError, match="Unsupported provider"):
        build_provider(sample_app_config, "xAI", "grok")


def test_build_provider_missing_key(sample_app_config, monkeypatch):
    monkeypatch.delenv("TEST_OPENAI_KEY", raising=False)
    with pytest.raises(CredentialMissingError) as exc_info:
        build_provider(sample_app_config, "OpenAI", "gpt-4o")
    assert exc_info.value.scope == "participant"
    assert exc_info.value.env_var == "TEST_OPENAI_KEY"


def test_coordinator_missing_key_has_coordinator_scope(sample_app_config, monkeypatch):
    monkeypatch.delenv("TEST_GEMINI_KEY", raising=False)
    with pytest.raises(CredentialMissingError) as exc_info:
        build_coordinator_provider(sample_app_config)
    assert exc_info.value.scope == "coordinator"


def test_provider_factory_caches(sample_app_config, keys):
    factory = ProviderFactory(sample_app_config)
    assert factory("OpenAI", "gpt-4o") is factory("OpenAI", "gpt-4o")
    assert factory("OpenAI", "gpt-4o") is not factory("Groq", "llama3-8b-8192")


async def test_openai_generate_json_mode(sample_app_config, keys):
    provider = build_provider(sample_app_config, "OpenAI", "gpt-4o")
    create = AsyncMock(return_value=_completion('{"ok": true}'))
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    reply = await provider.generate("Plan.", system="Be brief.", json_mode=True)

    assert reply.content == '{"ok": true}'
    assert reply.token_count == 12
    kwargs = create.call_args.kwargs
    assert kwargs["messages"][0] == {"role": "system", "content": "Be brief."}
    assert kwargs["response_format"] == {"type": "json_object"}


async def test_openai_generate_empty_content(sample_app_config, keys):
    provider = build_provider(sample_app_config, "OpenAI", "gpt-4o")
    create = AsyncMock(return_value=_completion(None))
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    with pytest.raises(ProviderError, match="Empty response"):
        await provider.generate("Hi")


async def test_openai_generate_timeout(sample_app_config, keys):
    provider = build_provider(sample_app_config, "OpenAI", "gpt-4o")

    async def hang(**kwargs):
        await asyncio.sleep(9999)

    create = AsyncMock(side_effect=hang)
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    with pytest.raises(ProviderError, match="timed out after 0.05s"):
        await provider.generate("Hi", timeout_sec=0.05)


async def test_openai_generate_api_failure(sample_app_config, keys):
    provider = build_provider(sample_app_config, "OpenAI", "gpt-4o")
    create = AsyncMock(side_effect=RuntimeError("503 Service Unavailable"))
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    with pytest.raises(ProviderError) as exc_info:
        await provider.generate("Hi")
    assert str(exc_info.value) == "[OpenAI] API call failed: 503 Service Unavailable"
    assert exc_info.value.model == "gpt-4o"
