# status: complete

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..tools.tool_registry import ToolResult
from .action_plan import ActionPlan, ActionStep


class ErrorKind(str, Enum):
    """Failure buckets, each with its own repair strategy."""

    UNRECOVERABLE = "UNRECOVERABLE"
    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
    PARAMETER_ERROR = "PARAMETER_ERROR"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    UNKNOWN = "UNKNOWN"


@dataclass
class FailedStepInfo:
    step: ActionStep
    error: str
    retry_count: int
    error_kind: ErrorKind
    tool_name: str
    exhausted: bool = False


@dataclass
class CompletedStep:
    step: ActionStep
    result: ToolResult


@dataclass
class Observation:
    step_number: int
    text: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ExecutionContext:
    """Last-known-good snapshot of the environment. Each field is overwritten, never appended."""

    MAX_SNAPSHOT_ELEMENTS = 40

    current_url: Optional[str] = None
    page_elements: Optional[List[Dict[str, Any]]] = None
    last_page_content: Optional[str] = None
    last_page_analysis: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        elements = self.page_elements or []
        return {
            "currentUrl": self.current_url,
            "pageElementCount": len(elements),
            "pageElements": [_element_summary(e) for e in elements[:self.MAX_SNAPSHOT_ELEMENTS]],
            "lastPageContent": (self.last_page_content or "")[:500] or None,
            "hasPageAnalysis": self.last_page_analysis is not None,
        }


def _element_summary(element: Dict[str, Any]) -> Dict[str, Any]:
    label = next((element.get(key) for key in ("label", "text", "placeholder", "ariaLabel", "name")
                  if element.get(key)), None)
    summary = {"type": element.get("type"), "selector": element.get("selector")}
    if label:
        summary["label"] = str(label)[:80]
    return summary


@dataclass
class ExecutionState:
    """Mutable per-request record owned by a single executor run."""

    original_plan: ActionPlan
    current_plan: ActionPlan
    completed_steps: List[CompletedStep] = field(default_factory=list)
    failed_steps: Dict[int, FailedStepInfo] = field(default_factory=dict)
    observations: List[Observation] = field(default_factory=list)
    task_failure_counts: Dict[str, int] = field(default_factory=dict)
    context: ExecutionContext = field(default_factory=ExecutionContext)
    goal_achieved: bool = False

    def record_success(self, step: ActionStep, result: ToolResult) -> None:
        self.completed_steps.append(CompletedStep(step=step, result=result))
        self.failed_steps.pop(step.step_number, None)

    def record_failure(self, step: ActionStep, error: str, error_kind: ErrorKind) -> FailedStepInfo:
        """Record a step failure and bump the tool's run-wide failure counter.

        Repair progress carries over when the identical step (same tool and
        parameters) fails again. The per-tool counter is never decremented.
        """
        previous = self.failed_steps.get(step.step_number)
        same_step = (previous is not None and previous.tool_name == step.tool
                     and previous.step.parameters == step.parameters)
        info = FailedStepInfo(
            step=step,
            error=error,
            retry_count=previous.retry_count if same_step else 0,
            error_kind=error_kind,
            tool_name=step.tool,
            exhausted=previous.exhausted if same_step else False,
        )
        self.failed_steps[step.step_number] = info
        self.count_tool_failure(step.tool)
        return info

    def count_tool_failure(self, tool_name: str) -> int:
        """Count one failed execution of ``tool_name``, including repair attempts."""
        self.task_failure_counts[tool_name] = self.task_failure_counts.get(tool_name, 0) + 1
        return self.task_failure_counts[tool_name]

    def set_retry_count(self, step_number: int, retry_count: int) -> None:
        info = self.failed_steps.get(step_number)
        if info is not None and retry_count > info.retry_count:
            info.retry_count = retry_count

    def mark_exhausted(self, step_number: int) -> None:
        info = self.failed_steps.get(step_number)
        if info is not None:
            info.exhausted = True

    def observe(self, step_number: int, text: str) -> Observation:
        observation = Observation(step_number=step_number, text=text)
        self.observations.append(observation)
        return observation

    def recent_observations(self, limit: int = 5) -> List[Observation]:
        return self.observations[-limit:] if limit > 0 else []

    def failure_count(self, tool_name: str) -> int:
        return self.task_failure_counts.get(tool_name, 0)

    def exhausted_failures(self) -> List[FailedStepInfo]:
        return [info for info in self.failed_steps.values() if info.exhausted]

    def replace_plan(self, plan: ActionPlan) -> None:
        """Swap the whole current plan. The original plan is never touched."""
        self.current_plan = plan.copy()


def create_execution_state(plan: ActionPlan) -> ExecutionState:
    return ExecutionState(original_plan=plan.copy(), current_plan=plan.copy())
