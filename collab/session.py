"""Discussion aggregate: round history, roster, finished flag, single-writer guard."""

import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from collab import stop
from collab.errors import StateError
from collab.models import (
    Agent,
    BodyBlock,
    Call,
    Discussion,
    ExecutionResult,
    FinalReport,
    Round,
    RoundProposal,
    StopCondition,
)

if TYPE_CHECKING:
    from collab.engine import ExecutionEngine
    from collab.planner import Coordinator

logger = logging.getLogger(__name__)


def _check_alignment(rnd: Round, results: list[ExecutionResult]) -> None:
    if len(results) != len(rnd.calls):
        raise StateError(
            f"Round {rnd.number} has {len(rnd.calls)} calls but {len(results)} results"
        )
    for index, (call, result) in enumerate(zip(rnd.calls, results)):
        if (call.provider, call.model) != (result.provider, result.model):
            raise StateError(
                f"Round {rnd.number} result {index} is for {result.key}, expected {call.key}"
            )


class DiscussionSession:
    """Owns one Discussion and is the only writer of its round history.

    At most one asynchronous operation (plan, execute, stop, follow-up) may be
    in flight at a time; a second one is rejected with StateError.
    """

    def __init__(self, discussion: Discussion) -> None:
        self.discussion = discussion
        self._busy: str | None = None

    @classmethod
    def create(
        cls,
        task: str,
        agents: list[Agent],
        *,
        language: str = "en",
        code_mode: bool = False,
        ingested: str = "",
        sources: list[str] | None = None,
        style: str = "",
        discussion_id: str | None = None,
    ) -> "DiscussionSession":
        """Create a discussion with an empty round history.

        Raises:
            ValueError: Empty task or roster, or duplicate provider/model pairs.
        """
        if not task.strip():
            raise ValueError("A discussion needs a topic or code to review")
        if not agents:
            raise ValueError("A discussion needs at least one agent")
        keys = [a.key for a in agents]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"Duplicate agents in roster: {', '.join(duplicates)}")

        discussion = Discussion(
            id=discussion_id or uuid.uuid4().hex[:12],
            task=task,
            agents=list(agents),
            language=language,
            code_mode=code_mode,
            ingested=ingested,
            sources=list(sources or []),
            style=style,
            created_at=time.time(),
        )
        logger.info("Created discussion %s with %d agents", discussion.id, len(agents))
        return cls(discussion)

    # --- guard -------------------------------------------------------------

    @property
    def busy(self) -> str | None:
        """Name of the operation in flight, or None."""
        return self._busy

    @asynccontextmanager
    async def operation(self, name: str) -> AsyncIterator[None]:
        if self._busy is not None:
            raise StateError(
                f"Cannot {name}: '{self._busy}' is already running on discussion {self.discussion.id}"
            )
        self._busy = name
        try:
            yield
        finally:
            self._busy = None

    # --- commands ----------------------------------------------------------

    def update_agent(
        self,
        provider: str,
        model: str,
        *,
        role: str | None = None,
        clarified_tasks: str | None = None,
        thinking_style: str | None = None,
    ) -> Agent:
        """Edit an agent's role or clarification before round 1."""
        if self.discussion.rounds:
            raise StateError("The roster is fixed once the first round exists")
        agent = self.discussion.find_agent(provider, model)
        if agent is None:
            raise StateError(f"Unknown agent {provider}/{model}")
        if role is not None:
            agent.role = role
        if clarified_tasks is not None:
            agent.clarified_tasks = clarified_tasks
        if thinking_style is not None:
            agent.thinking_style = thinking_style
        return agent

    def append_round(self, rnd: Round) -> Round:
        """Append ``rnd``; ``finished`` follows its stop condition immediately."""
        expected = len(self.discussion.rounds) + 1
        if rnd.number != expected:
            raise StateError(f"Expected round {expected}, got round {rnd.number}")
        if rnd.execution_results is not None:
            _check_alignment(rnd, rnd.execution_results)
        self.discussion.rounds.append(rnd)
        self.discussion.finished = stop.is_terminal(rnd.stop_condition)
        logger.info(
            "Discussion %s: round %d appended (%s)",
            self.discussion.id,
            rnd.number,
            rnd.stop_condition.value,
        )
        return rnd

    def append_proposal(self, proposal: RoundProposal) -> Round:
        rnd = Round(
            number=len(self.discussion.rounds) + 1,
            calls=list(proposal.calls),
            summary=proposal.summary,
            stop_condition=proposal.stop_condition,
            final_report=proposal.final_report,
        )
        return self.append_round(rnd)

    def apply_execution_results(self, number: int, results: list[ExecutionResult]) -> Round:
        """Attach the full result list to the latest round in one assignment."""
        latest = self.discussion.latest_round
        if latest is None or latest.number != number:
            raise StateError(f"Round {number} is not the latest round")
        _check_alignment(latest, results)
        latest.execution_results = list(results)
        return latest

    def forced_stop(self, proposal: RoundProposal) -> Round:
        """Rewrite the latest round's stop condition and final report in place."""
        latest = self.discussion.latest_round
        if latest is None:
            raise StateError("Nothing to stop: the discussion has no rounds")
        if self.discussion.finished:
            raise StateError("The discussion is already finished")
        stop.apply_forced_stop(latest, proposal)
        stop.evaluate(self.discussion)
        return latest

    # --- async operations ---------------------------------------------------

    async def plan_next_round(self, coordinator: "Coordinator") -> Round:
        async with self.operation("plan"):
            if self.discussion.finished:
                raise StateError("The discussion is finished; ask a follow-up question to continue")
            proposal = await coordinator.plan(self.discussion)
            return self.append_proposal(proposal)

    async def submit_follow_up(self, coordinator: "Coordinator", question: str) -> Round:
        if not question.strip():
            raise ValueError("Follow-up question is empty")
        async with self.operation("follow-up"):
            if not self.discussion.finished:
                raise StateError("Follow-up questions are only accepted once the discussion is finished")
            proposal = await coordinator.plan(self.discussion, follow_up=question)
            return self.append_proposal(proposal)

    async def execute_latest(self, engine: "ExecutionEngine") -> list[ExecutionResult]:
        """Execute the latest round; the engine holds the ``execute`` guard."""
        return await engine.execute_round(self)

    async def stop(self, coordinator: "Coordinator") -> Round:
        async with self.operation("stop"):
            if not self.discussion.rounds:
                raise StateError("Nothing to stop: the discussion has no rounds")
            if self.discussion.finished:
                raise StateError("The discussion is already finished")
            proposal = await coordinator.force_stop(self.discussion)
            return self.forced_stop(proposal)

    # --- snapshots ----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self.discussion)
        for raw, rnd in zip(data["rounds"], self.discussion.rounds):
            raw["stop_condition"] = rnd.stop_condition.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscussionSession":
        """Rebuild a session from ``to_dict`` output.

        Raises:
            StateError: Gaps in round numbers or misaligned results.
        """
        session = cls(
            Discussion(
                id=data["id"],
                task=data["task"],
                agents=[Agent(**a) for a in data["agents"]],
                language=data.get("language", "en"),
                code_mode=bool(data.get("code_mode", False)),
                ingested=data.get("ingested", ""),
                sources=list(data.get("sources", [])),
                style=data.get("style", ""),
                created_at=float(data.get("created_at", 0.0)),
            )
        )
        for raw in data.get("rounds", []):
            report = raw.get("final_report")
            results = raw.get("execution_results")
            session.append_round(
                Round(
                    number=int(raw["number"]),
                    calls=[Call(**c) for c in raw["calls"]],
                    summary=raw["summary"],
                    stop_condition=StopCondition(raw["stop_condition"]),
                    execution_results=(
                        [ExecutionResult(**r) for r in results] if results is not None else None
                    ),
                    final_report=(
                        FinalReport(
                            consensus=report["consensus"],
                            bullet_summary=list(report.get("bullet_summary", [])),
                            doc_outline=list(report.get("doc_outline", [])),
                            doc_body_blocks=[BodyBlock(**b) for b in report.get("doc_body_blocks", [])],
                        )
                        if report
                        else None
                    ),
                )
            )
        if bool(data.get("finished", False)) != session.discussion.finished:
            logger.warning(
                "Snapshot %s had finished=%s, recomputed %s from its rounds",
                data["id"],
                data.get("finished"),
                session.discussion.finished,
            )
        return session
