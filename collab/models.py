"""Dataclasses for the round-based collaboration pipeline. No I/O."""

from dataclasses import dataclass, field
from enum import Enum


class StopCondition(str, Enum):
    CONTINUE = "continue"
    CONSENSUS_FORMED = "consensus_formed"
    ROUND_LIMIT_REACHED = "round_limit_reached"
    INSUFFICIENT_INFORMATION = "insufficient_information"

    @property
    def is_terminal(self) -> bool:
        return self is not StopCondition.CONTINUE


@dataclass
class Agent:
    provider: str          # "Google", "OpenAI", "Anthropic", ...
    model: str             # e.g. "gemini-2.5-pro"
    role: str              # coarse role label assigned by the user
    clarified_tasks: str = ""
    thinking_style: str = ""

    @property
    def key(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass
class Clarification:
    provider: str
    model: str
    original_role: str
    clarified_tasks: str
    thinking_style: str


@dataclass
class Call:
    provider: str
    model: str
    role: str
    directive: str
    timeout_sec: int

    @property
    def key(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass
class ExecutionResult:
    provider: str
    model: str
    response: str | None = None
    error: str | None = None
    latency_sec: float | None = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError(
                f"ExecutionResult for {self.provider}/{self.model} needs exactly one of response or error"
            )

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def key(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass
class BodyBlock:
    heading: str
    content: str


@dataclass
class FinalReport:
    consensus: str
    bullet_summary: list[str] = field(default_factory=list)
    doc_outline: list[str] = field(default_factory=list)
    doc_body_blocks: list[BodyBlock] = field(default_factory=list)


@dataclass
class Round:
    number: int            # 1-indexed, no gaps
    calls: list[Call]
    summary: str
    stop_condition: StopCondition
    execution_results: list[ExecutionResult] | None = None
    final_report: FinalReport | None = None


@dataclass
class RoundProposal:
    """A validated Coordinator answer that has not been appended yet."""

    calls: list[Call]
    stop_condition: StopCondition
    summary: str
    final_report: FinalReport | None = None


@dataclass
class Discussion:
    id: str
    task: str                              # topic text or code-review payload
    agents: list[Agent]
    rounds: list[Round] = field(default_factory=list)
    finished: bool = False
    language: str = "en"                   # "en" or "zh"
    code_mode: bool = False
    ingested: str = ""                     # plain-text file/URL bodies
    sources: list[str] = field(default_factory=list)  # uploaded file names and URLs
    style: str = ""                        # discussion style descriptor
    created_at: float = 0.0

    @property
    def latest_round(self) -> Round | None:
        return self.rounds[-1] if self.rounds else None

    def find_agent(self, provider: str, model: str) -> Agent | None:
        for agent in self.agents:
            if agent.provider == provider and agent.model == model:
                return agent
        return None


@dataclass
class ProviderReply:
    provider: str
    model: str
    content: str
    latency_sec: float
    token_count: int | None = None
