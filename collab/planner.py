"""Round planning: build Coordinator prompts and validate its answers into proposals."""

import logging

from collab.errors import PlanningError
from collab.formatting import clean_text
from collab.history import render_context, render_roster
from collab.models import (
    Agent,
    BodyBlock,
    Call,
    Discussion,
    FinalReport,
    RoundProposal,
    StopCondition,
)
from collab.providers.base import AIProvider, ProviderError
from collab.schema import CoordinatorResponse, FinalReportSpec, decode
from config.config_loader import PromptsConfig

logger = logging.getLogger(__name__)


def _preamble(discussion: Discussion) -> str:
    """Task, ingested material, style and participants shared by every prompt."""
    if discussion.code_mode:
        prompt = f"Code Debug Session\n\n{discussion.task}\n\n"
    else:
        prompt = f'Topic: "{discussion.task}"\n\n'
    if discussion.ingested:
        prompt += f"{discussion.ingested}\n"
    if discussion.style:
        prompt += f"Discussion style: {discussion.style}\n\n"
    prompt += "Participants and their detailed roles:\n"
    prompt += render_roster(discussion) + "\n"
    return prompt


def build_planning_prompt(discussion: Discussion, follow_up: str | None = None) -> str:
    prompt = _preamble(discussion)
    history = render_context(discussion)
    if history:
        prompt += "\n" + history

    if follow_up:
        latest = discussion.latest_round
        report = latest.final_report if latest is not None else None
        consensus = report.consensus if report else ""
        key_points = ", ".join(report.bullet_summary) if report else ""
        prompt += f"\n--- PREVIOUS FINAL REPORT ---\nConsensus: {consensus}\nKey Points: {key_points}\n\n"
        prompt += (
            f'The user has reviewed the final report and has a follow-up question: "{follow_up}". '
            "Please generate a new plan to address this question and continue the discussion."
        )
    elif discussion.rounds:
        prompt += f"\nBased on the latest results, generate the plan for Round {len(discussion.rounds) + 1}."
    else:
        prompt += "\nThis is the first round. Generate the initial plan."
    return prompt


def build_forced_stop_prompt(discussion: Discussion) -> str:
    prompt = _preamble(discussion)
    prompt += "\n" + render_context(discussion)
    prompt += (
        "\nThe user has decided to stop the discussion. "
        "Please analyze all the information above and generate the final report."
    )
    return prompt


def _final_report(spec: FinalReportSpec) -> FinalReport:
    return FinalReport(
        consensus=clean_text(spec.consensus),
        bullet_summary=[clean_text(p) for p in spec.bullet_summary],
        doc_outline=[clean_text(p) for p in spec.doc_outline],
        doc_body_blocks=[
            BodyBlock(heading=clean_text(b.heading), content=clean_text(b.content))
            for b in spec.doc_body_blocks
        ],
    )


def _validate_calls(response: CoordinatorResponse, agents: list[Agent]) -> list[Call]:
    roster = {(a.provider, a.model): a for a in agents}
    specs = response.round_plan.calls
    if not specs:
        raise PlanningError("Coordinator proposed a round with no calls")

    calls: list[Call] = []
    for index, spec in enumerate(specs):
        agent = roster.get((spec.provider, spec.model))
        if agent is None:
            raise PlanningError(f"Call {index} targets unknown agent {spec.provider}/{spec.model}")
        if not spec.prompt.strip():
            raise PlanningError(f"Call {index} for {agent.key} has an empty directive")
        if spec.timeout_sec <= 0:
            raise PlanningError(f"Call {index} for {agent.key} has non-positive timeout {spec.timeout_sec}")
        calls.append(
            Call(
                provider=spec.provider,
                model=spec.model,
                role=spec.role.strip() or agent.role,
                directive=spec.prompt,
                timeout_sec=spec.timeout_sec,
            )
        )
    return calls


def decode_round_proposal(raw: str, agents: list[Agent], *, forced: bool = False) -> RoundProposal:
    """Validate a raw Coordinator answer against the roster.

    With ``forced=True`` (the stop-and-summarize path) the call list is not
    used, a missing stop condition means ``consensus_formed`` and the final
    report is mandatory.

    Raises:
        PlanningError: Malformed JSON, schema mismatch, unknown agent,
            empty directive, non-positive timeout, or a final report whose
            presence does not match the stop condition.
    """
    try:
        response = decode(CoordinatorResponse, raw)
    except ValueError as exc:
        raise PlanningError(f"Invalid Coordinator response: {exc}") from exc

    condition = response.round_plan.stop_condition
    if forced:
        if response.final_if_stopped is None:
            raise PlanningError("Coordinator returned no final report for a forced stop")
        return RoundProposal(
            calls=[],
            stop_condition=condition or StopCondition.CONSENSUS_FORMED,
            summary=clean_text(response.debate_summary),
            final_report=_final_report(response.final_if_stopped),
        )

    if condition is None:
        raise PlanningError("Coordinator response has no stop_condition")
    calls = _validate_calls(response, agents)
    if condition.is_terminal and response.final_if_stopped is None:
        raise PlanningError(f"stop_condition {condition.value} requires a final report")
    if not condition.is_terminal and response.final_if_stopped is not None:
        raise PlanningError("A continuing round must not carry a final report")

    return RoundProposal(
        calls=calls,
        stop_condition=condition,
        summary=clean_text(response.debate_summary),
        final_report=_final_report(response.final_if_stopped) if response.final_if_stopped else None,
    )


class Coordinator:
    """The external planning service behind one designated provider/model."""

    def __init__(self, provider: AIProvider, prompts: PromptsConfig) -> None:
        self._provider = provider
        self._prompts = prompts

    def name(self) -> str:
        return f"{self._provider.name()}/{self._provider.model_string()}"

    async def _request(self, system: str, prompt: str) -> str:
        try:
            reply = await self._provider.generate(prompt, system=system, json_mode=True)
        except ProviderError as exc:
            raise PlanningError(f"Coordinator request failed: {exc}") from exc
        return reply.content

    async def plan(self, discussion: Discussion, follow_up: str | None = None) -> RoundProposal:
        """Ask for the next round; the result is validated but not appended."""
        language_name = self._prompts.language_name(discussion.language)
        system = self._prompts.coordinator.format(language_name=language_name)
        prompt = build_planning_prompt(discussion, follow_up)
        logger.info("Planning round %d via %s", len(discussion.rounds) + 1, self.name())
        raw = await self._request(system, prompt)
        return decode_round_proposal(raw, discussion.agents)

    async def force_stop(self, discussion: Discussion) -> RoundProposal:
        """Ask for a definitive final report for the latest round."""
        language_name = self._prompts.language_name(discussion.language)
        system = self._prompts.forced_stop.format(language_name=language_name)
        prompt = build_forced_stop_prompt(discussion)
        logger.info("Requesting forced stop via %s", self.name())
        raw = await self._request(system, prompt)
        return decode_round_proposal(raw, discussion.agents, forced=True)
