# status: complete

"""
Text-to-plan pipeline.

Completion models wrap JSON in prose, markdown fences or both, so the
planner output goes through ``extract_json_object`` first. Candidates are
tried in a fixed order and the first one that parses wins:

1. the body of a fenced code block (```json ... ``` or bare ```)
2. the substring from the first ``{`` to the last ``}``
3. a scan that tries to decode an object at every ``{`` position

The parser never invents an empty plan when nothing parses; it raises
``PlanGenerationError`` with a prefix of the raw text instead.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List, Optional

from utils.logger import get_logger
from ..models.action_plan import ActionPlan, ActionStep, renumber_steps

logger = get_logger(__name__)

RAW_PREFIX_CHARS = 500

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
_OPEN_BRACE_RE = re.compile(r"\{")

# Placeholder tool names some models emit for "no tool needed"
NO_OP_TOOLS = {"", "none", "conversational"}

NAVIGATION_TOOLS = {"navigate_to_url"}
ANALYSIS_TOOL = "analyze_page_structure"
INTERACTION_TOOLS = {"click_element", "fill_form", "submit_form", "select_suggestion"}

REQUIRED_STEP_FIELDS = ("stepNumber", "tool", "parameters", "reasoning")


class PlanGenerationError(RuntimeError):
    """Raised when no valid plan can be recovered from the oracle output."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_prefix = (raw_text or "")[:RAW_PREFIX_CHARS]


def _load_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(candidate.strip())
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def _fenced_candidates(text: str) -> Iterable[str]:
    for match in _FENCE_RE.finditer(text):
        yield match.group(1)


def _brace_span_candidate(text: str) -> Optional[str]:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return None
    return text[first:last + 1]


def _scan_candidates(text: str) -> Iterable[Dict[str, Any]]:
    decoder = json.JSONDecoder()
    for match in _OPEN_BRACE_RE.finditer(text):
        try:
            value, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            yield value


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first JSON object recoverable from ``text``, or None."""
    if not text:
        return None

    for candidate in _fenced_candidates(text):
        parsed = _load_object(candidate)
        if parsed is not None:
            return parsed

    span = _brace_span_candidate(text)
    if span is not None:
        parsed = _load_object(span)
        if parsed is not None:
            return parsed

    for parsed in _scan_candidates(text):
        return parsed
    return None


def _step_from_raw(raw: Any, position: int) -> ActionStep:
    if not isinstance(raw, dict):
        raise PlanGenerationError(f"Invalid step structure: step {position} is not an object")

    missing = [name for name in REQUIRED_STEP_FIELDS if raw.get(name) in (None, "")]
    if missing:
        label = raw.get("stepNumber", position)
        raise PlanGenerationError(
            f"Invalid step structure: missing required fields in step {label} ({', '.join(missing)})"
        )
    if not isinstance(raw["parameters"], dict):
        raise PlanGenerationError(f"Invalid step structure: parameters of step {raw['stepNumber']} must be an object")

    try:
        return ActionStep.from_dict(raw)
    except (TypeError, ValueError) as e:
        raise PlanGenerationError(f"Invalid step structure in step {raw.get('stepNumber', position)}: {e}")


def parse_plan(text: str, known_tools: Optional[Iterable[str]] = None) -> ActionPlan:
    """
    Parse and validate planner output.

    Raises:
        PlanGenerationError: nothing parseable, bad structure, or a tool
            name outside ``known_tools``
    """
    data = extract_json_object(text)
    if data is None:
        logger.error(f"[PLANNER] No JSON object in completion: {(text or '')[:200]!r}")
        raise PlanGenerationError(f"No valid JSON found. LLM returned: {(text or '')[:RAW_PREFIX_CHARS]}", text)

    steps_raw = data.get("steps")
    if not isinstance(steps_raw, list):
        raise PlanGenerationError(
            "Invalid action plan structure: steps must be an array (can be empty for conversational requests)",
            text,
        )

    steps_raw = [s for s in steps_raw if not (isinstance(s, dict) and str(s.get("tool") or "").lower() in NO_OP_TOOLS)]
    steps = [_step_from_raw(raw, index) for index, raw in enumerate(steps_raw, start=1)]

    if known_tools is not None:
        valid = sorted(set(known_tools))
        for step in steps:
            if step.tool not in valid:
                raise PlanGenerationError(
                    f"Unknown tool '{step.tool}' in step {step.step_number}. Valid tools: {', '.join(valid)}",
                    text,
                )

    goal = str(data.get("goal") or "").strip() or "Complete the user's request"
    return ActionPlan(goal=goal, steps=renumber_steps(steps))


def filter_unknown_tools(plan: ActionPlan, known_tools: Iterable[str]) -> ActionPlan:
    """Drop steps whose tool is not registered and renumber the rest."""
    valid = set(known_tools)
    kept = [step for step in plan.steps if step.tool in valid]
    dropped = len(plan.steps) - len(kept)
    if dropped:
        logger.warning(f"[PLANNER] Dropped {dropped} step(s) with unknown tools from replanned plan")
    return plan.with_steps(kept)


def ensure_analysis_after_navigation(plan: ActionPlan) -> ActionPlan:
    """
    Insert an ``analyze_page_structure`` step between a navigation and the
    first interaction that follows it, unless one is already there.
    """
    result: List[ActionStep] = []
    pending_tab: Optional[Any] = None
    needs_analysis = False
    inserted = 0

    for step in plan.steps:
        if step.tool in NAVIGATION_TOOLS:
            needs_analysis = True
            pending_tab = step.parameters.get("tabId")
        elif step.tool == ANALYSIS_TOOL:
            needs_analysis = False
        elif step.tool in INTERACTION_TOOLS and needs_analysis:
            parameters = {"tabId": pending_tab} if pending_tab else {}
            result.append(ActionStep(
                step_number=0,
                tool=ANALYSIS_TOOL,
                parameters=parameters,
                reasoning="Discover the interactive elements on the page before interacting with it",
                requires_confirmation=False,
            ))
            needs_analysis = False
            inserted += 1
        result.append(step)

    if not inserted:
        return plan.with_steps(plan.steps)

    logger.info(f"[PLANNER] Inserted {inserted} structural analysis step(s) after navigation")
    return plan.with_steps(result)
