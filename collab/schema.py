"""Wire schemas for Coordinator and clarifier responses.

Model output is untrusted: the raw text is first reduced to a JSON value
(models frequently wrap JSON in code fences or add a preamble), then decoded
into these pydantic models. Cross-field rules that need the roster live in
``collab.planner``.
"""

import json
import logging
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from collab.models import StopCondition

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound="BaseModel")

_FENCE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


class CallSpec(BaseModel):
    provider: str
    model: str
    role: str = ""
    prompt: str
    timeout_sec: int


class RoundPlanSpec(BaseModel):
    calls: list[CallSpec]
    stop_condition: StopCondition | None = None


class BodyBlockSpec(BaseModel):
    heading: str
    content: str


class FinalReportSpec(BaseModel):
    consensus: str
    bullet_summary: list[str] = []
    doc_outline: list[str] = []
    doc_body_blocks: list[BodyBlockSpec] = []


class CoordinatorResponse(BaseModel):
    round_plan: RoundPlanSpec
    debate_summary: str
    final_if_stopped: FinalReportSpec | None = None


class ClarificationSpec(BaseModel):
    provider: str
    model: str
    original_role: str = ""
    clarified_tasks: str
    thinking_style: str


class ClarificationResponse(BaseModel):
    clarifications: list[ClarificationSpec]


def extract_json(text: str) -> dict | list | None:
    """Extract JSON from model output, or None if nothing parses.

    Tries the raw text, then a fenced block, then the outermost braces.
    """
    if not text or not text.strip():
        return None

    text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    fence_match = _FENCE.search(text)
    if fence_match:
        try:
            return json.loads(fence_match.group(1).strip())
        except json.JSONDecodeError:
            pass

    start_idx = text.find("{")
    end_idx = text.rfind("}")
    if start_idx != -1 and end_idx > start_idx:
        try:
            return json.loads(text[start_idx : end_idx + 1])
        except json.JSONDecodeError:
            pass

    logger.warning("Failed to extract JSON from model output (%d chars)", len(text))
    return None


def decode(model_cls: type[_ModelT], text: str) -> _ModelT:
    """Decode ``text`` into ``model_cls``.

    Raises:
        ValueError: No JSON object found, or it does not match the schema.
    """
    data = extract_json(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got: {text[:200]!r}")
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"{model_cls.__name__} failed validation: {exc}") from exc
