"""Parallel execution of a round's calls: fan out, isolate failures, join all."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from collab.errors import CollabError, StateError
from collab.formatting import clean_text
from collab.models import Call, ExecutionResult
from collab.providers.base import AIProvider

if TYPE_CHECKING:
    from collab.session import DiscussionSession

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str, str], AIProvider]

_DEFAULT_SYSTEM = (
    "Your role is: {role}.\n"
    "Your entire response MUST be in plain text.\n"
    "The response language must be {language_name}."
)


class ExecutionEngine:
    """Dispatch every call of a round concurrently and collect one result each.

    ``provider_factory(provider, model)`` returns a ready client for an
    agent; it may raise ``CredentialMissingError`` or ``ProviderError``,
    which only fails that agent's call.
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        system_template: str = _DEFAULT_SYSTEM,
        languages: dict[str, str] | None = None,
    ) -> None:
        self._provider_factory = provider_factory
        self._system_template = system_template
        self._languages = languages or {"en": "English"}
        self._active: set[tuple[str, int]] = set()

    def _system_for(self, call: Call, language: str) -> str:
        return self._system_template.format(
            role=call.role,
            language_name=self._languages.get(language, "English"),
        )

    async def _execute_call(self, call: Call, language: str) -> ExecutionResult:
        """Run one call. Never raises: every failure becomes a failed result."""
        start = time.monotonic()
        try:
            provider = self._provider_factory(call.provider, call.model)
            reply = await asyncio.wait_for(
                provider.generate(
                    call.directive,
                    system=self._system_for(call, language),
                    timeout_sec=call.timeout_sec,
                ),
                timeout=call.timeout_sec,
            )
        except TimeoutError:
            logger.warning("Call %s timed out after %ss", call.key, call.timeout_sec)
            return ExecutionResult(
                provider=call.provider,
                model=call.model,
                error=f"Request timed out after {call.timeout_sec}s",
                latency_sec=time.monotonic() - start,
            )
        except CollabError as exc:
            logger.warning("Call %s failed: %s", call.key, exc)
            return ExecutionResult(
                provider=call.provider,
                model=call.model,
                error=str(exc),
                latency_sec=time.monotonic() - start,
            )
        except Exception as exc:
            logger.warning("Call %s unexpected failure: %s", call.key, exc)
            return ExecutionResult(
                provider=call.provider,
                model=call.model,
                error=f"Unexpected error: {exc}",
                latency_sec=time.monotonic() - start,
            )

        text = clean_text(reply.content)
        if not text:
            return ExecutionResult(
                provider=call.provider,
                model=call.model,
                error="Failed to get response.",
                latency_sec=reply.latency_sec,
            )
        return ExecutionResult(
            provider=call.provider,
            model=call.model,
            response=text,
            latency_sec=reply.latency_sec,
        )

    async def execute_calls(
        self,
        calls: list[Call],
        language: str = "en",
    ) -> list[ExecutionResult]:
        """Execute ``calls`` concurrently and return results in call order.

        Returns only after every call has settled. A slow call is bounded by
        its own timeout and is never cancelled because a sibling finished.
        """
        # Cancelling the caller cancels outstanding calls on a best-effort basis;
        # nothing is written back in that case.
        results = await asyncio.gather(*(self._execute_call(call, language) for call in calls))

        succeeded = sum(1 for r in results if r.ok)
        logger.info("Round execution complete: %d/%d calls succeeded", succeeded, len(calls))
        return list(results)

    async def execute_round(
        self,
        session: "DiscussionSession",
        number: int | None = None,
    ) -> list[ExecutionResult]:
        """Execute round ``number`` (default: latest) and write the results back.

        Runs as the session's ``execute`` operation, so it is rejected while
        any other operation (plan, follow-up, stop) is in flight.

        Raises:
            StateError: No such round, not the latest round, the discussion is
                finished, or another operation is running on the session.
        """
        discussion = session.discussion
        latest = discussion.latest_round
        if latest is None:
            raise StateError("No round to execute")
        if number is None:
            number = latest.number
        if number != latest.number:
            raise StateError(f"Round {number} is not the latest round")

        slot = (discussion.id, number)
        if slot in self._active:
            raise StateError(f"Round {number} is already executing")

        async with session.operation("execute"):
            if discussion.finished:
                raise StateError("The discussion is finished; nothing to execute")
            self._active.add(slot)
            try:
                logger.info("Executing round %d with %d calls", number, len(latest.calls))
                results = await self.execute_calls(list(latest.calls), discussion.language)
                session.apply_execution_results(number, results)
            finally:
                self._active.discard(slot)
        return results

