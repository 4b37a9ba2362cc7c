"""Tests for collab/schema.py: JSON extraction from model output."""

import pytest

from collab.models import StopCondition
from collab.schema import CoordinatorResponse, decode, extract_json


def test_extract_json_raw():
    assert extract_json('{"a": 1}') == {"a": 1}


def test_extract_json_fenced():
    text = 'Sure, here it is:\n```json\n{"a": [1, 2]}\n```\nAnything else?'
    assert extract_json(text) == {"a": [1, 2]}


def test_extract_json_outer_braces():
    assert extract_json('The answer is {"a": {"b": 2}} as requested.') == {"a": {"b": 2}}


@pytest.mark.parametrize("text", ["", "   ", "no json here", "{broken"])
def test_extract_json_failure(text):
    assert extract_json(text) is None


def test_decode_coordinator_response():
    raw = (
        '{"round_plan": {"calls": [{"provider": "A", "model": "m", "prompt": "Go", "timeout_sec": "45"}],'
        ' "stop_condition": "continue"}, "debate_summary": "s"}'
    )
    response = decode(CoordinatorResponse, raw)
    assert response.round_plan.stop_condition is StopCondition.CONTINUE
    assert response.round_plan.calls[0].timeout_sec == 45
    assert response.round_plan.calls[0].role == ""
    assert response.final_if_stopped is None


def test_decode_rejects_list():
    with pytest.raises(ValueError, match="Expected a JSON object"):
        decode(CoordinatorResponse, "[1, 2]")


def test_decode_rejects_schema_mismatch():
    with pytest.raises(ValueError, match="CoordinatorResponse failed validation"):
        decode(CoordinatorResponse, '{"round_plan": {}, "debate_summary": "s"}')
