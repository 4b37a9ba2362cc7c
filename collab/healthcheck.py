"""Provider health checks: ping each agent's API before starting a discussion."""

import asyncio
import logging

from collab.engine import ProviderFactory
from collab.models import Agent

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(agent: Agent, factory: ProviderFactory) -> tuple[str, bool, str]:
    """Ping a single agent. Returns (key, ok, error_message)."""
    try:
        provider = factory(agent.provider, agent.model)
        await asyncio.wait_for(
            provider.generate(_PING_PROMPT, timeout_sec=_TIMEOUT_SEC),
            timeout=_TIMEOUT_SEC,
        )
        return agent.key, True, ""
    except Exception as exc:
        logger.debug("Health check failed for %s: %r", agent.key, exc)
        return agent.key, False, str(exc) or type(exc).__name__


async def run_health_checks(
    agents: list[Agent],
    factory: ProviderFactory,
) -> dict[str, tuple[bool, str]]:
    """Ping all agents in parallel.

    Returns:
        Dict mapping "provider/model" -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(a, factory) for a in agents))
    return {key: (ok, err) for key, ok, err in results}
