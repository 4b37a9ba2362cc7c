"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from collab.models import (
    Agent,
    BodyBlock,
    Call,
    ExecutionResult,
    FinalReport,
    ProviderReply,
    Round,
    StopCondition,
)
from collab.planner import Coordinator
from collab.providers.base import AIProvider
from collab.session import DiscussionSession
from config.config_loader import (
    AppConfig,
    CoordinatorConfig,
    DefaultsConfig,
    PromptsConfig,
    ProviderConfig,
)


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str = "Mock response",
        model: str = "mock-model",
    ) -> None:
        self._name = provider_name
        self._model = model
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=ProviderReply(
                provider=provider_name,
                model=model,
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return self._model

    async def generate(self, prompt, *, system=None, timeout_sec=None, json_mode=False):  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ProviderReply(self._name, self._model, self._response_content, 0.1, 10)


def coordinator_json(
    calls: list[dict] | None = None,
    stop_condition: str | None = "continue",
    summary: str = "Round summary.",
    final: dict | None = None,
) -> str:
    """Serialize a Coordinator answer in the wire format."""
    round_plan: dict = {
        "calls": calls if calls is not None else [
            {"provider": "ProviderA", "model": "modelX", "role": "Analyst",
             "prompt": "Assess the market.", "timeout_sec": 30},
            {"provider": "ProviderB", "model": "modelY", "role": "Skeptic",
             "prompt": "List the risks.", "timeout_sec": 30},
        ],
    }
    if stop_condition is not None:
        round_plan["stop_condition"] = stop_condition
    return json.dumps({"round_plan": round_plan, "debate_summary": summary, "final_if_stopped": final})


FINAL_REPORT_JSON = {
    "consensus": "Ship the MVP in Q3.",
    "bullet_summary": ["Market is ready", "Costs are acceptable"],
    "doc_outline": ["Context", "Decision"],
    "doc_body_blocks": [
        {"heading": "Decision", "content": "Ship in Q3."},
        {"heading": "Code Solution", "content": "def f():\n    return 1"},
    ],
}


def coordinator_returning(*raw: str) -> Coordinator:
    """Coordinator whose provider replies with ``raw`` answers in order."""
    provider = MockProvider("Google", model="gemini-2.5-flash")
    provider.generate = AsyncMock(
        side_effect=[ProviderReply("Google", "gemini-2.5-flash", text, 0.1, 10) for text in raw]
    )
    return Coordinator(provider, sample_prompts())


def sample_prompts() -> PromptsConfig:
    return PromptsConfig(
        coordinator="Coordinate in {language_name}.",
        forced_stop="Stop now, answer in {language_name}.",
        clarifier="Clarify the {subject} for the {focus} in {language_name}.",
        participant="Your role is: {role}. Language: {language_name}.",
        languages={"en": "English", "zh": "Traditional Chinese"},
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return sample_prompts()


@pytest.fixture
def sample_app_config(tmp_path: Path, sample_prompts_config: PromptsConfig) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(
            language="en",
            max_rounds=3,
            default_timeout_sec=60,
            output_dir=tmp_path / "output",
            sessions_dir=tmp_path / "sessions",
            max_saved=20,
        ),
        coordinator=CoordinatorConfig(
            provider="Google", model="gemini-2.5-flash", timeout_sec=60, max_tokens=4096
        ),
        providers={
            "Google": ProviderConfig(
                name="Google", sdk="gemini", api_key_env="TEST_GEMINI_KEY",
                models=["gemini-2.5-pro", "gemini-2.5-flash"],
            ),
            "OpenAI": ProviderConfig(
                name="OpenAI", sdk="openai", api_key_env="TEST_OPENAI_KEY", models=["gpt-4o"],
            ),
            "Anthropic": ProviderConfig(
                name="Anthropic", sdk="anthropic", api_key_env="TEST_ANTHROPIC_KEY",
                models=["claude-3-haiku"],
            ),
            "Groq": ProviderConfig(
                name="Groq", sdk="openai", api_key_env="TEST_GROQ_KEY",
                models=["llama3-8b-8192"], base_url="https://api.groq.com/openai/v1",
            ),
        },
        prompts=sample_prompts_config,
    )


@pytest.fixture
def two_agents() -> list[Agent]:
    return [
        Agent("ProviderA", "modelX", "Analyst", "- Size the market", "Data-driven"),
        Agent("ProviderB", "modelY", "Skeptic", "- Find risks", "Contrarian"),
    ]


@pytest.fixture
def session(two_agents: list[Agent]) -> DiscussionSession:
    return DiscussionSession.create(
        "Should we launch the product?", two_agents, discussion_id="disc-1"
    )


def make_calls() -> list[Call]:
    return [
        Call("ProviderA", "modelX", "Analyst", "Assess the market.", 30),
        Call("ProviderB", "modelY", "Skeptic", "List the risks.", 30),
    ]


def make_results(a: str = "Market is big.", b: str = "Risk is high.") -> list[ExecutionResult]:
    return [
        ExecutionResult("ProviderA", "modelX", response=a),
        ExecutionResult("ProviderB", "modelY", response=b),
    ]


def make_report() -> FinalReport:
    return FinalReport(
        consensus="Ship the MVP in Q3.",
        bullet_summary=["Market is ready"],
        doc_outline=["Decision"],
        doc_body_blocks=[BodyBlock("Decision", "Ship in Q3.")],
    )


def make_round(
    number: int,
    condition: StopCondition = StopCondition.CONTINUE,
    executed: bool = True,
) -> Round:
    return Round(
        number=number,
        calls=make_calls(),
        summary=f"Summary of round {number}.",
        stop_condition=condition,
        execution_results=make_results() if executed else None,
        final_report=make_report() if condition.is_terminal else None,
    )
