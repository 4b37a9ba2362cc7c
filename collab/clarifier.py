"""One-time role clarification before round 1."""

import logging

from collab.errors import PlanningError
from collab.formatting import clean_text
from collab.models import Agent, Clarification
from collab.providers.base import AIProvider, ProviderError
from collab.schema import ClarificationResponse, decode
from config.config_loader import PromptsConfig

logger = logging.getLogger(__name__)


def build_clarification_prompt(
    task: str,
    ingested: str,
    roster: list[Agent],
    code_mode: bool = False,
) -> str:
    if code_mode:
        prompt = f"Code Debug Session\n\n{task}\n\n"
    else:
        prompt = f'Topic: "{task}"\n\n'
    if ingested:
        prompt += f"{ingested}\n"
    prompt += "Roles:\n"
    for agent in roster:
        prompt += f"- {agent.key}: {agent.role}\n"
    return prompt


def apply_clarifications(roster: list[Agent], clarifications: list[Clarification]) -> list[Agent]:
    """Return new Agents carrying the clarified tasks and thinking style.

    Entries for agents outside the roster are ignored.

    Raises:
        PlanningError: A roster member received no clarification.
    """
    by_key = {f"{c.provider}/{c.model}": c for c in clarifications}
    missing = [a.key for a in roster if a.key not in by_key]
    if missing:
        raise PlanningError(f"No clarification returned for: {', '.join(missing)}")
    return [
        Agent(
            provider=a.provider,
            model=a.model,
            role=a.role,
            clarified_tasks=by_key[a.key].clarified_tasks,
            thinking_style=by_key[a.key].thinking_style,
        )
        for a in roster
    ]


async def clarify_roles(
    provider: AIProvider,
    prompts: PromptsConfig,
    task: str,
    roster: list[Agent],
    *,
    ingested: str = "",
    language: str = "en",
    code_mode: bool = False,
) -> list[Agent]:
    """Turn coarse role labels into concrete tasks and a thinking style per agent.

    Raises:
        PlanningError: The request failed or the response did not validate.
            No discussion should be created in that case.
    """
    system = prompts.clarifier.format(
        subject="code debugging request" if code_mode else "topic",
        focus="code analysis and debugging" if code_mode else "discussion on the given topic",
        language_name=prompts.language_name(language),
    )
    prompt = build_clarification_prompt(task, ingested, roster, code_mode)

    logger.info("Clarifying %d roles via %s", len(roster), provider.name())
    try:
        reply = await provider.generate(prompt, system=system, json_mode=True)
    except ProviderError as exc:
        raise PlanningError(f"Role clarification failed: {exc}") from exc

    try:
        parsed = decode(ClarificationResponse, reply.content)
    except ValueError as exc:
        raise PlanningError(f"Invalid clarification response: {exc}") from exc

    clarifications = [
        Clarification(
            provider=c.provider,
            model=c.model,
            original_role=c.original_role,
            clarified_tasks=clean_text(c.clarified_tasks),
            thinking_style=clean_text(c.thinking_style),
        )
        for c in parsed.clarifications
    ]
    return apply_clarifications(roster, clarifications)
