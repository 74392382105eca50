# status: complete

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from chat.chat import OracleError
from utils.config import Config
from utils.logger import get_logger
from agents.prompts.planner_prompt import format_tool_list, planner_system_prompt, replan_user_prompt

from ..models.action_plan import ActionPlan
from ..models.execution_state import ExecutionState
from ..services.long_term_memory import LongTermMemory
from ..tools.tool_registry import ToolRegistry
from .plan_parser import PlanGenerationError, ensure_analysis_after_navigation, filter_unknown_tools, parse_plan


class TaskPlanner:
    """Turns a user message (and, when replanning, execution state) into an ActionPlan."""

    def __init__(self, oracle, registry: ToolRegistry, memory: Optional[LongTermMemory] = None):
        self._oracle = oracle
        self._registry = registry
        self._memory = memory
        self._logger = get_logger(__name__)

    def build_system_prompt(self, user_message: str) -> str:
        destructive = sorted(spec.name for spec in self._registry.get_all_tools() if spec.requires_confirmation)
        memory_section = self._memory.format_for_prompt(user_message) if self._memory else ""
        return planner_system_prompt.format(
            available_tools=format_tool_list(self._registry.get_all_tools()),
            destructive_tools=", ".join(destructive) or "none",
            max_steps=Config.get_max_plan_steps(),
            memory_section=memory_section,
        )

    def generate_plan(self, user_message: str, prior_context: Optional[Dict[str, Any]] = None) -> ActionPlan:
        """
        Ask the oracle for a plan and validate it against the registry.

        Raises:
            PlanGenerationError: oracle failure, unparseable output or an
                unknown tool name
        """
        user_prompt = user_message
        if prior_context:
            user_prompt = (
                f"{user_message}\n\n## PRIOR CONTEXT:\n{json.dumps(prior_context, indent=2, default=str)}"
            )

        text = self._complete("planner", self.build_system_prompt(user_message), user_prompt)
        plan = parse_plan(text, known_tools=self._registry.list())
        plan = ensure_analysis_after_navigation(plan)
        self._logger.info(f"[PLANNER] Plan ready: {plan.goal!r} with {len(plan.steps)} step(s)")
        return plan

    def replan(self, state: ExecutionState, user_message: str, observation_window: int = 5) -> Optional[ActionPlan]:
        """
        Build a replacement plan from accumulated execution state.

        Returns None when the oracle fails, nothing parses, or every
        returned step names an unknown tool. Replanning never raises.
        """
        user_prompt = replan_user_prompt.format(
            user_message=user_message,
            goal=state.original_plan.goal,
            completed_summary=self._summarize_completed(state),
            failed_summary=self._summarize_failed(state),
            observations=self._summarize_observations(state, observation_window),
            context=json.dumps(state.context.to_dict(), indent=2, default=str),
        )

        try:
            text = self._complete("replanner", self.build_system_prompt(user_message), user_prompt)
            plan = parse_plan(text)
        except PlanGenerationError as e:
            self._logger.warning(f"[PLANNER] Replanning produced no usable plan: {e}")
            return None

        plan = filter_unknown_tools(plan, self._registry.list())
        if not plan.steps:
            self._logger.info("[PLANNER] Replanning produced no actionable steps")
            return None

        plan = ensure_analysis_after_navigation(plan)
        self._logger.info(f"[PLANNER] Replanned with {len(plan.steps)} step(s)")
        return plan

    def _complete(self, role: str, system_prompt: str, user_prompt: str) -> str:
        try:
            return self._oracle.complete(
                system_prompt,
                user_prompt,
                role=role,
                temperature=Config.get_planner_temperature(),
                max_retries=Config.get_oracle_max_retries(),
            )
        except OracleError as e:
            self._logger.error(f"[PLANNER] {role} call failed: {e}")
            raise PlanGenerationError(str(e))

    @staticmethod
    def _summarize_completed(state: ExecutionState) -> str:
        if not state.completed_steps:
            return "None"
        lines = []
        for completed in state.completed_steps:
            summary = completed.result.message or "Success"
            lines.append(f"- Step {completed.step.step_number} ({completed.step.tool}): {summary}")
        return "\n".join(lines)

    @staticmethod
    def _summarize_failed(state: ExecutionState) -> str:
        if not state.failed_steps:
            return "None"
        lines = []
        for info in state.failed_steps.values():
            lines.append(
                f"- Step {info.step.step_number} ({info.tool_name}): {info.error} "
                f"[kind={info.error_kind.value}, retries={info.retry_count}, "
                f"params={json.dumps(info.step.parameters, default=str)}]"
            )
        return "\n".join(lines)

    @staticmethod
    def _summarize_observations(state: ExecutionState, window: int) -> str:
        recent = state.recent_observations(window)
        if not recent:
            return "None"
        return "\n".join(f"- [step {obs.step_number}] {obs.text}" for obs in recent)
