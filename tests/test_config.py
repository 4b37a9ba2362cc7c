"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import AppConfig, load_config


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    settings = {
        "defaults": {
            "language": "en",
            "max_rounds": 4,
            "default_timeout_sec": 90,
            "output_dir": "./output",
            "sessions_dir": "./sessions",
        },
        "coordinator": {
            "provider": "Google",
            "model": "gemini-2.5-flash",
            "timeout_sec": 120,
            "max_tokens": 8192,
        },
        "providers": {
            "Google": {
                "sdk": "gemini",
                "api_key_env": "TEST_GEMINI_KEY",
                "models": ["gemini-2.5-flash"],
            },
            "Groq": {
                "sdk": "openai",
                "api_key_env": "TEST_GROQ_KEY",
                "models": ["llama3-8b-8192"],
                "base_url": "https://api.groq.com/openai/v1",
                "max_tokens": 2048,
            },
        },
        "languages": {"en": "English", "zh": "Traditional Chinese"},
        "prompts": {
            "coordinator": "Plan in {language_name}.",
            "forced_stop": "Stop in {language_name}.",
            "clarifier": "Clarify {subject} for {focus} in {language_name}.",
            "participant": "Role {role}, {language_name}.",
        },
        "styles": {"en": {"Professional": "formal and precise"}},
        "templates": {
            "en": {
                "Code Review": {
                    "topic": "Review this code",
                    "roles": {"Google": "Reviewer"},
                    "code_mode": True,
                },
                "Brainstorm": {
                    "topic": "New product ideas",
                    "roles": {"Google": "Ideator", "Groq": "Critic"},
                },
            }
        },
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings, monkeypatch):
    monkeypatch.delenv("TEST_GEMINI_KEY", raising=False)
    monkeypatch.delenv("TEST_GROQ_KEY", raising=False)
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)
    assert config.defaults.max_rounds == 4
    assert config.defaults.default_timeout_sec == 90
    assert config.defaults.max_saved == 20
    assert config.coordinator.model == "gemini-2.5-flash"


def test_load_config_provider_fields(minimal_settings):
    config = load_config(minimal_settings)
    groq = config.providers["Groq"]
    assert groq.sdk == "openai"
    assert groq.base_url == "https://api.groq.com/openai/v1"
    assert groq.max_tokens == 2048
    assert config.providers["Google"].base_url is None
    assert config.providers["Google"].max_tokens == 4096


def test_load_config_available_providers_follow_env(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "key")
    monkeypatch.setenv("TEST_GROQ_KEY", "   ")
    config = load_config(minimal_settings)
    assert config.available_providers == {"Google"}


def test_load_config_templates_and_styles(minimal_settings):
    config = load_config(minimal_settings)
    review = config.templates["en"]["Code Review"]
    assert review.code_mode is True
    assert review.roles == {"Google": "Reviewer"}
    assert config.templates["en"]["Brainstorm"].code_mode is False
    assert config.styles["en"]["Professional"] == "formal and precise"


def test_language_name(minimal_settings):
    config = load_config(minimal_settings)
    assert config.prompts.language_name("zh") == "Traditional Chinese"
    assert config.prompts.language_name("fr") == "English"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_load_config_unknown_coordinator(minimal_settings):
    raw = yaml.safe_load(minimal_settings.read_text(encoding="utf-8"))
    raw["coordinator"]["provider"] = "Nobody"
    minimal_settings.write_text(yaml.dump(raw), encoding="utf-8")
    with pytest.raises(ValueError, match="Nobody"):
        load_config(minimal_settings)


def test_bundled_settings_load():
    config = load_config()
    assert config.coordinator.provider in config.providers
    assert "{language_name}" in config.prompts.coordinator
    assert set(config.prompts.languages) >= {"en", "zh"}
    # Prompt templates must format without KeyError on literal JSON braces.
    config.prompts.coordinator.format(language_name="English")
    config.prompts.forced_stop.format(language_name="English")
    config.prompts.clarifier.format(subject="topic", focus="discussion", language_name="English")
    config.prompts.participant.format(role="Analyst", language_name="English")
