# status: complete

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ActionStep:
    """A single tool invocation inside a plan."""

    step_number: int
    tool: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    reasoning: str = ""
    requires_confirmation: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stepNumber": self.step_number,
            "tool": self.tool,
            "parameters": self.parameters,
            "reasoning": self.reasoning,
            "requiresConfirmation": self.requires_confirmation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionStep":
        return cls(
            step_number=int(data["stepNumber"]),
            tool=str(data["tool"]),
            parameters=dict(data.get("parameters") or {}),
            reasoning=str(data.get("reasoning") or ""),
            requires_confirmation=bool(data.get("requiresConfirmation", False)),
        )

    def with_parameters(self, parameters: Dict[str, Any]) -> "ActionStep":
        """Copy of this step with different parameters."""
        return ActionStep(
            step_number=self.step_number,
            tool=self.tool,
            parameters=copy.deepcopy(parameters),
            reasoning=self.reasoning,
            requires_confirmation=self.requires_confirmation,
        )


@dataclass
class ActionPlan:
    """Goal plus ordered steps produced by the planner."""

    goal: str
    steps: List[ActionStep] = field(default_factory=list)

    @property
    def is_conversational(self) -> bool:
        return len(self.steps) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal": self.goal,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionPlan":
        return cls(
            goal=str(data.get("goal") or ""),
            steps=[ActionStep.from_dict(step) for step in data.get("steps", [])],
        )

    def copy(self) -> "ActionPlan":
        return copy.deepcopy(self)

    def with_steps(self, steps: List[ActionStep]) -> "ActionPlan":
        """New plan with the same goal and the given steps, renumbered 1..n."""
        return ActionPlan(goal=self.goal, steps=renumber_steps(steps))


def renumber_steps(steps: List[ActionStep]) -> List[ActionStep]:
    """Return deep copies of the steps numbered densely from 1."""
    renumbered = []
    for index, step in enumerate(steps, start=1):
        clone = copy.deepcopy(step)
        clone.step_number = index
        renumbered.append(clone)
    return renumbered
