"""Stop-condition rules: when a discussion is finished, and the forced-stop rewrite."""

import logging

from collab.errors import PlanningError
from collab.models import Discussion, Round, RoundProposal, StopCondition

logger = logging.getLogger(__name__)


def is_terminal(condition: StopCondition) -> bool:
    return condition.is_terminal


def evaluate(discussion: Discussion) -> bool:
    """Recompute and store ``discussion.finished`` from the latest round."""
    latest = discussion.latest_round
    discussion.finished = latest is not None and is_terminal(latest.stop_condition)
    return discussion.finished


def check_forced_stop(proposal: RoundProposal) -> RoundProposal:
    """A forced stop must end in consensus with a populated final report."""
    if proposal.final_report is None:
        raise PlanningError("Coordinator returned no final report for a forced stop")
    if proposal.stop_condition is not StopCondition.CONSENSUS_FORMED:
        logger.warning(
            "Forced stop returned %s, overriding to consensus_formed",
            proposal.stop_condition.value,
        )
        proposal.stop_condition = StopCondition.CONSENSUS_FORMED
    return proposal


def apply_forced_stop(rnd: Round, proposal: RoundProposal) -> Round:
    """Overwrite ``rnd``'s stop condition and final report in place.

    Any previous stop condition or report is replaced. Calls, summary and
    execution results are left as they are.
    """
    proposal = check_forced_stop(proposal)
    rnd.stop_condition = proposal.stop_condition
    rnd.final_report = proposal.final_report
    logger.info("Round %d force-stopped", rnd.number)
    return rnd
