"""Tests for collab/stop.py."""

import logging

import pytest

from collab import stop
from collab.errors import PlanningError
from collab.models import Discussion, RoundProposal, StopCondition
from tests.conftest import make_report, make_round


def _proposal(condition=StopCondition.CONSENSUS_FORMED, report=True) -> RoundProposal:
    return RoundProposal(
        calls=[],
        stop_condition=condition,
        summary="Wrapped up.",
        final_report=make_report() if report else None,
    )


@pytest.mark.parametrize(
    "condition, expected",
    [
        (StopCondition.CONTINUE, False),
        (StopCondition.CONSENSUS_FORMED, True),
        (StopCondition.ROUND_LIMIT_REACHED, True),
        (StopCondition.INSUFFICIENT_INFORMATION, True),
    ],
)
def test_is_terminal(condition, expected):
    assert stop.is_terminal(condition) is expected


def test_evaluate_empty_history(two_agents):
    discussion = Discussion(id="d", task="t", agents=two_agents, finished=True)
    assert stop.evaluate(discussion) is False
    assert discussion.finished is False


def test_evaluate_follows_latest_round(two_agents):
    discussion = Discussion(id="d", task="t", agents=two_agents)
    discussion.rounds = [make_round(1, StopCondition.CONSENSUS_FORMED), make_round(2)]
    assert stop.evaluate(discussion) is False
    discussion.rounds.append(make_round(3, StopCondition.ROUND_LIMIT_REACHED))
    assert stop.evaluate(discussion) is True


def test_check_forced_stop_requires_report():
    with pytest.raises(PlanningError):
        stop.check_forced_stop(_proposal(report=False))


def test_check_forced_stop_overrides_condition(caplog):
    with caplog.at_level(logging.WARNING, logger="collab.stop"):
        proposal = stop.check_forced_stop(_proposal(StopCondition.CONTINUE))
    assert proposal.stop_condition is StopCondition.CONSENSUS_FORMED
    assert "overriding" in caplog.text


def test_apply_forced_stop_keeps_calls_and_results():
    rnd = make_round(2)
    calls, summary, results = list(rnd.calls), rnd.summary, list(rnd.execution_results)

    stop.apply_forced_stop(rnd, _proposal())

    assert rnd.stop_condition is StopCondition.CONSENSUS_FORMED
    assert rnd.final_report == make_report()
    assert rnd.calls == calls
    assert rnd.summary == summary
    assert rnd.execution_results == results


def test_apply_forced_stop_replaces_previous_report():
    rnd = make_round(1, StopCondition.INSUFFICIENT_INFORMATION)
    proposal = _proposal()
    proposal.final_report.consensus = "New consensus."
    stop.apply_forced_stop(rnd, proposal)
    assert rnd.stop_condition is StopCondition.CONSENSUS_FORMED
    assert rnd.final_report.consensus == "New consensus."
