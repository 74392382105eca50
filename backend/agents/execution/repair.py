# status: complete

"""
Repair building blocks used by the executor.

* ``RetryStateMachine`` makes the retry budget explicit:
  PENDING -> RETRYING(n) -> REPAIRED | ESCALATED | FAILED.
* Parameter heuristics are plain conversion functions from the raw
  parameters the planner produced to a reshaped dict the tool accepts.
  Each one returns None when it does not apply.
* ``rank_candidates`` asks the oracle to order discovered page elements
  by how well they match the failed step, falling back to keyword overlap.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from chat.chat import OracleError
from utils.logger import get_logger
from agents.prompts.agent_prompt_templates import CANDIDATE_RANKING_SYSTEM_PROMPT, CANDIDATE_RANKING_USER_PROMPT

from ..models.action_plan import ActionStep
from ..tools.tool_registry import ToolSpec
from .entity_extractor import element_haystack

logger = get_logger(__name__)


class RetryPhase(str, Enum):
    PENDING = "PENDING"
    RETRYING = "RETRYING"
    REPAIRED = "REPAIRED"
    ESCALATED = "ESCALATED"
    FAILED = "FAILED"


_TERMINAL_PHASES = {RetryPhase.REPAIRED, RetryPhase.FAILED}


class RetryBudgetExhausted(RuntimeError):
    pass


@dataclass
class RetryStateMachine:
    """Bounded retry counter with explicit phase transitions."""

    budget: int
    attempt: int = 0
    phase: RetryPhase = RetryPhase.PENDING

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.budget

    @property
    def finished(self) -> bool:
        return self.phase in _TERMINAL_PHASES

    def begin_round(self) -> int:
        if self.finished or self.phase == RetryPhase.ESCALATED:
            raise RetryBudgetExhausted(f"cannot retry from phase {self.phase.value}")
        if self.exhausted:
            raise RetryBudgetExhausted(f"retry budget of {self.budget} exhausted")
        self.attempt += 1
        self.phase = RetryPhase.RETRYING
        return self.attempt

    def repaired(self) -> None:
        self.phase = RetryPhase.REPAIRED

    def escalate(self) -> None:
        if self.finished:
            raise RetryBudgetExhausted(f"cannot escalate from phase {self.phase.value}")
        self.phase = RetryPhase.ESCALATED

    def fail(self) -> None:
        self.phase = RetryPhase.FAILED


# Parameter reshaping heuristics

_SELECTOR_ALIASES = ("element", "target", "css", "cssSelector", "xpath", "text", "button", "link", "locator")
_URL_ALIASES = ("link", "href", "address", "website", "site", "page")
_FIELD_KEY_ALIASES = ("field", "selector", "fieldSelector", "input", "name")
_CONTEXT_KEYS = {"tabId"}


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def promote_field_value_pair(step: ActionStep, spec: Optional[ToolSpec]) -> Optional[Dict[str, Any]]:
    """fill_form {field|selector: "#x", value: "v"} -> {fields: {"#x": "v"}}"""
    if step.tool != "fill_form" or "value" not in step.parameters:
        return None
    params = step.parameters
    key = next((params[alias] for alias in _FIELD_KEY_ALIASES if isinstance(params.get(alias), str)), None)
    if not key:
        return None
    reshaped = {"fields": {key: params["value"]}}
    reshaped.update({k: v for k, v in params.items() if k in _CONTEXT_KEYS})
    return reshaped


def promote_flat_fields(step: ActionStep, spec: Optional[ToolSpec]) -> Optional[Dict[str, Any]]:
    """fill_form {"#email": "a@b.c", "#name": "x"} -> {fields: {...}}"""
    if step.tool != "fill_form" or isinstance(step.parameters.get("fields"), dict):
        return None
    flat = {k: v for k, v in step.parameters.items() if k not in _CONTEXT_KEYS and k != "fields"}
    if not flat or "value" in flat:
        return None
    reshaped = {"fields": flat}
    reshaped.update({k: v for k, v in step.parameters.items() if k in _CONTEXT_KEYS})
    return reshaped


def decode_fields_string(step: ActionStep, spec: Optional[ToolSpec]) -> Optional[Dict[str, Any]]:
    """fill_form {fields: '{"#q": "x"}'} -> {fields: {"#q": "x"}}"""
    raw = step.parameters.get("fields")
    if step.tool != "fill_form" or not isinstance(raw, str):
        return None
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(decoded, dict):
        return None
    reshaped = dict(step.parameters)
    reshaped["fields"] = decoded
    return reshaped


def rename_snake_case_keys(step: ActionStep, spec: Optional[ToolSpec]) -> Optional[Dict[str, Any]]:
    """{tab_id: ..., file_path: ...} -> {tabId: ..., filePath: ...} when the tool declares the camelCase name"""
    if spec is None:
        return None
    declared = {p.name for p in spec.parameters}
    renamed = {}
    changed = False
    for key, value in step.parameters.items():
        camel = _snake_to_camel(key)
        if key not in declared and camel in declared and camel not in step.parameters:
            renamed[camel] = value
            changed = True
        else:
            renamed[key] = value
    return renamed if changed else None


def infer_missing_selector(step: ActionStep, spec: Optional[ToolSpec]) -> Optional[Dict[str, Any]]:
    """click_element/select_suggestion without a selector: take it from an alias key or the only remaining string"""
    target_key = {"click_element": "selector", "select_suggestion": "fieldSelector"}.get(step.tool)
    if target_key is None or isinstance(step.parameters.get(target_key), str):
        return None

    params = dict(step.parameters)
    for alias in _SELECTOR_ALIASES:
        value = params.get(alias)
        if isinstance(value, str) and value.strip():
            params.pop(alias)
            params[target_key] = value
            if alias == "xpath":
                params["selectorType"] = "xpath"
            elif alias == "text" and step.tool == "click_element":
                params["selectorType"] = "text"
            return params

    if isinstance(params.get("id"), str) and params["id"].strip():
        params[target_key] = "#" + params.pop("id").lstrip("#")
        return params

    leftovers = [k for k, v in params.items() if isinstance(v, str) and v.strip() and k not in _CONTEXT_KEYS]
    if len(leftovers) == 1:
        params[target_key] = params.pop(leftovers[0])
        return params
    return None


def infer_missing_url(step: ActionStep, spec: Optional[ToolSpec]) -> Optional[Dict[str, Any]]:
    """navigate_to_url without url: take it from an alias key; add a scheme to bare hosts"""
    if step.tool != "navigate_to_url":
        return None
    params = dict(step.parameters)
    url = params.get("url")
    if not isinstance(url, str):
        url = next((params.pop(a) for a in _URL_ALIASES if isinstance(params.get(a), str)), None)
        if url is None:
            return None
    if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*:", url):
        url = "https://" + url.lstrip("/")
    if url == step.parameters.get("url"):
        return None
    params["url"] = url
    return params


PARAMETER_HEURISTICS: List[Tuple[str, Callable[[ActionStep, Optional[ToolSpec]], Optional[Dict[str, Any]]]]] = [
    ("promote_field_value_pair", promote_field_value_pair),
    ("promote_flat_fields", promote_flat_fields),
    ("decode_fields_string", decode_fields_string),
    ("rename_snake_case_keys", rename_snake_case_keys),
    ("infer_missing_selector", infer_missing_selector),
    ("infer_missing_url", infer_missing_url),
]


def parameter_repairs(step: ActionStep, spec: Optional[ToolSpec]) -> List[Tuple[str, Dict[str, Any]]]:
    """Applicable heuristics in order, each yielding a distinct parameter set at most once."""
    seen = [step.parameters]
    repairs = []
    for name, heuristic in PARAMETER_HEURISTICS:
        reshaped = heuristic(step, spec)
        if reshaped is None or reshaped in seen:
            continue
        seen.append(reshaped)
        repairs.append((name, reshaped))
    return repairs


# Element re-matching

_INDEX_LIST_RE = re.compile(r"\[[\d,\s]*\]")

_ELEMENT_TYPES_FOR_TOOL = {
    "click_element": {"button", "link", "input", "select"},
    "fill_form": {"input", "select"},
    "select_suggestion": {"input"},
    "submit_form": {"form", "button"},
}


def _describe_element(index: int, element: Dict[str, Any]) -> str:
    label = element.get("semantic") or element.get("text") or element.get("label") or element.get("placeholder") or ""
    return f"[{index}] {element.get('type', '?')} selector={element.get('selector')} {str(label)[:120]}"


def _usable_elements(step: ActionStep, elements: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    wanted = _ELEMENT_TYPES_FOR_TOOL.get(step.tool)
    usable = [e for e in elements if e.get("selector")]
    if wanted:
        typed = [e for e in usable if e.get("type") in wanted]
        usable = typed or usable
    return usable


def _overlap_score(step: ActionStep, user_message: str, element: Dict[str, Any]) -> int:
    words = set(re.findall(r"[a-zåäö0-9]{3,}", f"{step.reasoning} {json.dumps(step.parameters)} {user_message}".lower()))
    haystack = element_haystack(element)
    return sum(1 for word in words if word in haystack)


def rank_candidates(oracle, step: ActionStep, error: str, user_message: str,
                    elements: Optional[List[Dict[str, Any]]], limit: int = 5) -> List[str]:
    """
    Selectors of the most plausible target elements, best first.

    The oracle answers with a JSON list of indices; anything it cannot rank
    is ordered by keyword overlap with the step and the request.
    """
    usable = _usable_elements(step, elements or [])
    if not usable or limit <= 0:
        return []

    failed_selectors = {v for v in step.parameters.values() if isinstance(v, str)}
    fields = step.parameters.get("fields")
    if isinstance(fields, dict):
        failed_selectors.update(fields.keys())

    ranked: List[str] = []
    try:
        answer = oracle.complete(
            CANDIDATE_RANKING_SYSTEM_PROMPT,
            CANDIDATE_RANKING_USER_PROMPT.format(
                user_message=user_message,
                reasoning=step.reasoning,
                tool=step.tool,
                parameters=json.dumps(step.parameters, default=str),
                error=error,
                elements="\n".join(_describe_element(i, e) for i, e in enumerate(usable)),
                limit=limit,
            ),
            role="rank_candidates",
            temperature=0.0,
        )
        match = _INDEX_LIST_RE.search(answer or "")
        if match:
            for index in json.loads(match.group(0)):
                if isinstance(index, int) and 0 <= index < len(usable):
                    ranked.append(usable[index]["selector"])
    except (OracleError, json.JSONDecodeError, ValueError) as e:
        logger.warning(f"[REPAIR] Candidate ranking by oracle failed: {e}")

    if not ranked:
        by_overlap = sorted(usable, key=lambda e: _overlap_score(step, user_message, e), reverse=True)
        ranked = [e["selector"] for e in by_overlap if _overlap_score(step, user_message, e) > 0]

    result: List[str] = []
    for selector in ranked:
        if selector not in result and selector not in failed_selectors:
            result.append(selector)
        if len(result) >= limit:
            break
    return result


def apply_candidate(step: ActionStep, selector: str, error: str = "") -> ActionStep:
    """Copy of ``step`` pointed at ``selector`` instead of the element that was not found."""
    params = copy.deepcopy(step.parameters)
    if step.tool == "click_element":
        params["selector"] = selector
        params.pop("selectorType", None)
    elif step.tool == "select_suggestion":
        params["fieldSelector"] = selector
    elif step.tool == "submit_form":
        params["formSelector"] = selector
    elif step.tool == "fill_form" and isinstance(params.get("fields"), dict) and params["fields"]:
        fields = params["fields"]
        failed_key = next((key for key in fields if key and key in error), None) or next(iter(fields))
        fields[selector] = fields.pop(failed_key)
    else:
        params["selector"] = selector
    return step.with_parameters(params)
