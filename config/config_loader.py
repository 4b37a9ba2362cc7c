"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ProviderConfig:
    name: str
    sdk: str                      # "gemini", "anthropic" or "openai"
    api_key_env: str
    models: list[str] = field(default_factory=list)
    base_url: str | None = None
    max_tokens: int = 4096


@dataclass
class CoordinatorConfig:
    provider: str
    model: str
    timeout_sec: int
    max_tokens: int


@dataclass
class PromptsConfig:
    coordinator: str
    forced_stop: str
    clarifier: str
    participant: str
    languages: dict[str, str] = field(default_factory=dict)

    def language_name(self, language: str) -> str:
        """Display name used in prompts; unknown codes fall back to English."""
        return self.languages.get(language, "English")


@dataclass
class DefaultsConfig:
    language: str
    max_rounds: int
    default_timeout_sec: int
    output_dir: Path
    sessions_dir: Path
    max_saved: int = 20
    style: str = "Professional"


@dataclass
class Template:
    name: str
    topic: str
    roles: dict[str, str]
    code_mode: bool = False


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    coordinator: CoordinatorConfig
    providers: dict[str, ProviderConfig]
    prompts: PromptsConfig
    templates: dict[str, dict[str, Template]] = field(default_factory=dict)
    styles: dict[str, dict[str, str]] = field(default_factory=dict)
    available_providers: set[str] = field(default_factory=set)


def _load_templates(raw: dict) -> dict[str, dict[str, Template]]:
    templates: dict[str, dict[str, Template]] = {}
    for language, entries in (raw or {}).items():
        templates[language] = {
            name: Template(
                name=name,
                topic=str(entry["topic"]),
                roles={str(k): str(v) for k, v in entry["roles"].items()},
                code_mode=bool(entry.get("code_mode", False)),
            )
            for name, entry in entries.items()
        }
    return templates


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        language=str(defaults_raw.get("language", "en")),
        max_rounds=int(defaults_raw["max_rounds"]),
        default_timeout_sec=int(defaults_raw["default_timeout_sec"]),
        output_dir=Path(defaults_raw["output_dir"]),
        sessions_dir=Path(defaults_raw["sessions_dir"]),
        max_saved=int(defaults_raw.get("max_saved", 20)),
        style=str(defaults_raw.get("style", "Professional")),
    )

    coordinator_raw = raw["coordinator"]
    coordinator = CoordinatorConfig(
        provider=str(coordinator_raw["provider"]),
        model=str(coordinator_raw["model"]),
        timeout_sec=int(coordinator_raw["timeout_sec"]),
        max_tokens=int(coordinator_raw["max_tokens"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        coordinator=prompts_raw["coordinator"],
        forced_stop=prompts_raw["forced_stop"],
        clarifier=prompts_raw["clarifier"],
        participant=prompts_raw["participant"],
        languages={k: str(v) for k, v in raw.get("languages", {}).items()},
    )

    providers: dict[str, ProviderConfig] = {}
    available_providers: set[str] = set()

    for provider_name, provider_raw in raw["providers"].items():
        providers[provider_name] = ProviderConfig(
            name=provider_name,
            sdk=provider_raw["sdk"],
            api_key_env=provider_raw["api_key_env"],
            models=[str(m) for m in provider_raw.get("models", [])],
            base_url=provider_raw.get("base_url"),
            max_tokens=int(provider_raw.get("max_tokens", 4096)),
        )

        api_key = os.environ.get(provider_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                provider_raw["api_key_env"],
            )

    if coordinator.provider not in providers:
        raise ValueError(f"Coordinator provider '{coordinator.provider}' is not configured")

    return AppConfig(
        defaults=defaults,
        coordinator=coordinator,
        providers=providers,
        prompts=prompts,
        templates=_load_templates(raw.get("templates", {})),
        styles={lang: {str(k): str(v) for k, v in entries.items()}
                for lang, entries in raw.get("styles", {}).items()},
        available_providers=available_providers,
    )
