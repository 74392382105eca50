# status: complete

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from chat.chat import OracleError
from utils.config import Config, ExecutionLimits
from utils.confirmation_manager import ConfirmationManager
from utils.error_formatter import ErrorFormatter
from utils.logger import get_logger
from utils.token_counter import estimate_task_tokens
from agents.prompts.agent_prompt_templates import (
    CAPABILITIES_SYSTEM_PROMPT,
    CONVERSATIONAL_SYSTEM_PROMPT,
    FINAL_SUMMARY_SYSTEM_PROMPT,
    FINAL_SUMMARY_USER_PROMPT,
    GOAL_CHECK_SYSTEM_PROMPT,
    GOAL_CHECK_USER_PROMPT,
)

from ..events.events import (
    AgentEventPublisher,
    ConfirmationRequest,
    GuidanceRequest,
    NullAgentEventPublisher,
    ReasoningUpdate,
)
from ..models.action_plan import ActionPlan, ActionStep
from ..models.execution_state import ErrorKind, ExecutionState, FailedStepInfo, create_execution_state
from ..services.long_term_memory import LongTermMemory
from ..tools.tool_registry import ToolRegistry, ToolResult
from .entity_extractor import synthesize_follow_up_steps
from .error_classifier import classify_error
from .plan_parser import ANALYSIS_TOOL, INTERACTION_TOOLS, PlanGenerationError
from .planner import TaskPlanner
from .repair import RetryStateMachine, apply_candidate, parameter_repairs, rank_candidates

CAPABILITY_QUESTION = re.compile(
    r"(what can you do|what tools|capabilities|help me with|what are you|what do you|what are your|"
    r"list your|show me your|tell me about your)",
    re.IGNORECASE,
)

PAGE_CONTENT_PREVIEW_CHARS = 2000


class RepairHalted(Exception):
    """An unrecoverable failure during repair; the whole run stops."""

    def __init__(self, step: ActionStep, error: str):
        super().__init__(error)
        self.step = step
        self.error = error


class RequestOutcome(str, Enum):
    CONVERSATIONAL = "CONVERSATIONAL"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ERROR = "ERROR"


@dataclass
class RequestResult:
    message_id: str
    outcome: RequestOutcome
    response: str
    plan: Optional[ActionPlan] = None
    state: Optional[ExecutionState] = None
    goal_achieved: bool = False
    ceiling_reached: bool = False


@dataclass
class _RequestRun:
    """Per-request bookkeeping; never shared between requests."""

    message_id: str
    user_message: str
    state: ExecutionState
    pinned_target: Optional[str] = None
    iterations: int = 0
    halted_by: Optional[Tuple[ActionStep, str]] = None
    step_results: List[Tuple[ActionStep, ToolResult]] = field(default_factory=list)


class AgentExecutor:
    """
    Plan/execute/observe/replan loop for one user request at a time.

    Each call to ``process_request`` is strictly sequential. Concurrent
    requests need their own calls (typically on their own threads); they
    share nothing but the registry, oracle, actuator and long-term memory.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        oracle,
        actuator=None,
        events: Optional[AgentEventPublisher] = None,
        confirmations: Optional[ConfirmationManager] = None,
        limits: Optional[ExecutionLimits] = None,
        memory: Optional[LongTermMemory] = None,
        planner: Optional[TaskPlanner] = None,
    ) -> None:
        self._registry = registry
        self._oracle = oracle
        self._actuator = actuator
        self._events = events or NullAgentEventPublisher()
        self._confirmations = confirmations or ConfirmationManager()
        self._limits = limits or Config.get_execution_limits()
        self._memory = memory
        self._planner = planner or TaskPlanner(oracle, registry, memory)
        self._logger = get_logger(__name__)

    # Request entry point

    def process_request(self, user_message: str, message_id: str) -> RequestResult:
        if not self._oracle.is_configured():
            return self._finish_error(
                message_id, "LLM service is not configured. Please add your API key to the .env file."
            )

        self._narrate(message_id, "planning", "Analyzing your request and creating an action plan...")
        self._warn_if_large(message_id, user_message)

        try:
            plan = self._planner.generate_plan(user_message)
        except PlanGenerationError as e:
            self._logger.error(f"[EXECUTOR] Plan generation failed for {message_id}: {e}")
            self._narrate(message_id, "error", f"Failed to create action plan: {e}")
            if self._memory:
                self._memory.store_failed_attempt(user_message, str(e))
            return self._finish_error(
                message_id,
                f"{ErrorFormatter.format_error_message(e, 'Action planning')}. Please try rephrasing your request.",
            )

        self._narrate(message_id, "planning", f"Created plan with {len(plan.steps)} step(s): {plan.goal}")

        if plan.is_conversational:
            self._narrate(message_id, "planning", "This is a conversational request. Generating response...")
            response = self.generate_conversational_response(user_message)
            self._events.final_response(message_id, response, True)
            return RequestResult(message_id, RequestOutcome.CONVERSATIONAL, response, plan=plan)

        self._events.plan_published(message_id, plan.to_dict())
        run = _RequestRun(message_id=message_id, user_message=user_message, state=create_execution_state(plan))

        try:
            return self._execute(run)
        except Exception as e:
            self._logger.exception(f"[EXECUTOR] Unexpected error while executing {message_id}")
            self._narrate(message_id, "error", f"Error: {e}")
            result = self._finish_error(message_id, ErrorFormatter.format_error_message(e, "Agent execution"))
            result.plan, result.state = plan, run.state
            return result

    # Main loop

    def _execute(self, run: _RequestRun) -> RequestResult:
        state = run.state
        step_index = 0
        ceiling_reached = False

        while step_index < len(state.current_plan.steps):
            if run.iterations >= self._limits.max_iterations:
                ceiling_reached = True
                break
            run.iterations += 1

            step = state.current_plan.steps[step_index]
            self._events.current_step(run.message_id, step.step_number)
            self._narrate(run.message_id, "executing", step.reasoning, step.step_number, step.tool)

            if self._needs_confirmation(step) and not self._request_confirmation(run, step):
                self._narrate(run.message_id, "error", "Step cancelled by user", step.step_number)
                return self._finish(run, RequestOutcome.CANCELLED, "Action plan cancelled by user.", success=False)

            step, result = self._run_step(run, step)

            if run.halted_by is not None:
                halted_step, reason = run.halted_by
                message = f"Execution stopped at step {halted_step.step_number} ({halted_step.tool}): {reason}"
                self._narrate(run.message_id, "error", message, halted_step.step_number, halted_step.tool)
                if self._memory:
                    self._memory.store_failed_attempt(run.user_message, reason)
                return self._finish(run, RequestOutcome.ERROR, message, success=False)

            synthesized = 0
            if result.success and step.tool == ANALYSIS_TOOL:
                synthesized = self._splice_synthesized_steps(run, step_index, step)

            if self._goal_achieved(run, step, result):
                state.goal_achieved = True
                self._narrate(run.message_id, "completed", f"Goal achieved: {state.current_plan.goal}")
                break

            if self._should_replan(run, step, result, synthesized):
                new_plan = self._replan(run)
                if new_plan is not None:
                    state.replace_plan(new_plan)
                    self._events.plan_published(run.message_id, new_plan.to_dict())
                    step_index = 0
                    continue

            step_index += 1

        if ceiling_reached:
            self._narrate(
                run.message_id, "completed",
                f"Stopped after {self._limits.max_iterations} iterations with partial progress: "
                f"{len(state.completed_steps)} step(s) completed.",
            )
        elif not state.goal_achieved:
            self._narrate(run.message_id, "completed", "All steps completed. Generating final response...")

        self._remember_outcome(run)
        summary = self.generate_final_response(run)
        result = self._finish(run, RequestOutcome.COMPLETED, summary, success=True)
        result.goal_achieved = state.goal_achieved
        result.ceiling_reached = ceiling_reached
        return result

    def _run_step(self, run: _RequestRun, step: ActionStep) -> Tuple[ActionStep, ToolResult]:
        """Execute one step, repairing it when the failure kind allows."""
        state = run.state
        result = self._execute_and_observe(run, step)
        if result.success:
            state.record_success(step, result)
            self._narrate(run.message_id, "executing",
                          f"Step {step.step_number} completed: {result.message or 'Success'}", step.step_number)
            return step, result

        error = result.error or "Unknown error"
        self._narrate(run.message_id, "error", f"Step failed: {error}", step.step_number, step.tool)
        kind = classify_error(error, step.tool)
        info = state.record_failure(step, error, kind)
        self._logger.info(f"[EXECUTOR] Step {step.step_number} ({step.tool}) failed as {kind.value}: {error}")

        if kind == ErrorKind.UNRECOVERABLE:
            run.halted_by = (step, error)
            return step, result

        try:
            repaired = self._repair(run, step, info)
        except RepairHalted as halt:
            self._logger.warning(f"[REPAIR] Unrecoverable failure while repairing step {step.step_number}: {halt.error}")
            run.halted_by = (step, halt.error)
            return step, ToolResult.failure(halt.error)
        if repaired is None:
            state.mark_exhausted(step.step_number)
            return step, result

        repaired_step, repaired_result = repaired
        state.record_success(repaired_step, repaired_result)
        self._narrate(run.message_id, "executing",
                      f"Step {step.step_number} succeeded after repair: {repaired_result.message or 'Success'}",
                      step.step_number)
        return repaired_step, repaired_result

    # Tool invocation and observation

    def _needs_confirmation(self, step: ActionStep) -> bool:
        if step.requires_confirmation:
            return True
        spec = self._registry.get(step.tool)
        return bool(spec and spec.requires_confirmation)

    def _resolve_target(self, run: _RequestRun, step: ActionStep) -> Optional[str]:
        explicit = step.parameters.get("tabId")
        if isinstance(explicit, str) and explicit:
            return explicit
        if run.pinned_target:
            return run.pinned_target
        if self._actuator is None:
            return None
        try:
            return self._actuator.active_target_id()
        except Exception as e:
            self._logger.warning(f"[EXECUTOR] Could not read the active target: {e}")
            return None

    def _execute_tool(self, run: _RequestRun, step: ActionStep) -> ToolResult:
        target = self._resolve_target(run, step)
        try:
            return self._registry.execute(step.tool, step.parameters, target_id=target, actuator=self._actuator)
        except Exception as e:
            self._logger.warning(f"[EXECUTOR] Tool {step.tool} raised {type(e).__name__}: {e}")
            return ToolResult.failure(str(e) or type(e).__name__)

    def _execute_and_observe(self, run: _RequestRun, step: ActionStep) -> ToolResult:
        result = self._execute_tool(run, step)
        run.step_results.append((step, result))
        self._observe(run, step, result)
        return result

    def _attempt_repair(self, run: _RequestRun, step: ActionStep, attempt: ActionStep) -> ToolResult:
        """Run one repair attempt for ``step``; every failure counts against the attempted tool."""
        result = self._execute_and_observe(run, attempt)
        if result.success:
            return result
        error = result.error or "Unknown error"
        run.state.count_tool_failure(attempt.tool)
        if classify_error(error, attempt.tool) == ErrorKind.UNRECOVERABLE:
            raise RepairHalted(step, error)
        return result

    def _observe(self, run: _RequestRun, step: ActionStep, result: ToolResult) -> None:
        state = run.state
        context = state.context
        payload = result.result if isinstance(result.result, dict) else {}

        if not result.success:
            state.observe(step.step_number, f"{step.tool} failed: {result.error}")
            return

        if payload.get("tabId") and step.tool in ("create_tab", "navigate_to_url", "switch_tab"):
            run.pinned_target = str(payload["tabId"])
        elif step.tool == "switch_tab":
            run.pinned_target = step.parameters.get("tabId")
        elif step.tool == "close_tab" and run.pinned_target in (None, step.parameters.get("tabId")):
            run.pinned_target = None

        if step.tool == "navigate_to_url":
            context.current_url = payload.get("url") or step.parameters.get("url")
            text = f"Navigated to {context.current_url}"
        elif step.tool == ANALYSIS_TOOL:
            elements = payload.get("elements") or []
            context.page_elements = elements
            context.last_page_analysis = payload
            if payload.get("url"):
                context.current_url = payload["url"]
            text = result.message or f"Found {len(elements)} interactive elements"
        elif step.tool == "read_page_content":
            content = result.result if isinstance(result.result, str) else payload.get("content", "")
            context.last_page_content = content
            if payload.get("url"):
                context.current_url = payload["url"]
            text = f"Read {len(content or '')} characters of page content"
        else:
            text = f"{step.tool} succeeded: {result.message or 'Success'}"
        state.observe(step.step_number, text)

    # Repair

    def _repair(self, run: _RequestRun, step: ActionStep,
                info: FailedStepInfo) -> Optional[Tuple[ActionStep, ToolResult]]:
        state = run.state
        if info.exhausted:
            self._logger.info(f"[REPAIR] Step {step.step_number} already exhausted its repairs")
            return None

        failures = state.failure_count(step.tool)
        if failures >= self._limits.task_failure_limit:
            self._narrate(run.message_id, "error",
                          f"{step.tool} has failed {failures} times in this run; not retrying automatically",
                          step.step_number, step.tool)
            if info.error_kind == ErrorKind.ELEMENT_NOT_FOUND:
                return self._guided_retry(run, step, info.error, [])
            return None

        if info.error_kind == ErrorKind.PARAMETER_ERROR:
            return self._repair_parameters(run, step, info)
        if info.error_kind == ErrorKind.ELEMENT_NOT_FOUND:
            return self._repair_element(run, step, info)
        return None

    def _repair_parameters(self, run: _RequestRun, step: ActionStep,
                           info: FailedStepInfo) -> Optional[Tuple[ActionStep, ToolResult]]:
        repairs = parameter_repairs(step, self._registry.get(step.tool))
        machine = RetryStateMachine(budget=len(repairs))
        for name, params in repairs:
            machine.begin_round()
            candidate = step.with_parameters(params)
            self._narrate(run.message_id, "executing",
                          f"Retrying step {step.step_number} with corrected parameters ({name})",
                          step.step_number, step.tool)
            result = self._attempt_repair(run, step, candidate)
            if result.success:
                machine.repaired()
                return candidate, result
            self._logger.info(f"[REPAIR] Heuristic {name} did not fix step {step.step_number}: {result.error}")
        machine.fail()
        return None

    def _repair_element(self, run: _RequestRun, step: ActionStep,
                        info: FailedStepInfo) -> Optional[Tuple[ActionStep, ToolResult]]:
        state = run.state
        machine = RetryStateMachine(budget=self._limits.element_retry_limit, attempt=info.retry_count)
        last_error = info.error
        candidates: List[str] = []

        while not machine.exhausted:
            round_no = machine.begin_round()
            state.set_retry_count(step.step_number, round_no)
            self._narrate(run.message_id, "executing",
                          f"Element not found. Re-analyzing the page (retry {round_no}/{machine.budget})",
                          step.step_number, step.tool)

            analysis_params = {"tabId": step.parameters["tabId"]} if step.parameters.get("tabId") else {}
            analysis_step = ActionStep(step_number=step.step_number, tool=ANALYSIS_TOOL,
                                       parameters=analysis_params, reasoning="Re-analyze the page structure")
            analysis = self._attempt_repair(run, step, analysis_step)
            if not analysis.success:
                last_error = analysis.error or last_error
                continue

            candidates = rank_candidates(self._oracle, step, last_error, run.user_message,
                                         state.context.page_elements, self._limits.candidate_limit)
            if not candidates:
                self._logger.info(f"[REPAIR] No candidate elements for step {step.step_number} in round {round_no}")
                continue

            for selector in candidates:
                attempt = apply_candidate(step, selector, last_error)
                result = self._attempt_repair(run, step, attempt)
                if result.success:
                    machine.repaired()
                    return attempt, result
                last_error = result.error or last_error

        machine.escalate()
        guided = self._guided_retry(run, step, last_error, candidates)
        if guided is None:
            machine.fail()
        else:
            machine.repaired()
        return guided

    def _guided_retry(self, run: _RequestRun, step: ActionStep, error: str,
                      candidates: List[str]) -> Optional[Tuple[ActionStep, ToolResult]]:
        request_id = f"guidance-{run.message_id}-{step.step_number}"
        pending = self._confirmations.register(request_id, kind="guidance")
        self._narrate(run.message_id, "executing",
                      "Could not find the element automatically. Please point out the element to use.",
                      step.step_number, step.tool)
        self._events.guidance_requested(
            run.message_id,
            GuidanceRequest(id=request_id, step=step.to_dict(), error=error,
                            candidates=[{"selector": c} for c in candidates]),
        )
        response = self._confirmations.wait(pending, self._limits.confirmation_timeout_ms)

        selector = (response or {}).get("selector")
        if not response or response.get("cancelled") or not isinstance(selector, str) or not selector.strip():
            self._narrate(run.message_id, "error", "No element guidance received", step.step_number, step.tool)
            return None

        attempt = apply_candidate(step, selector.strip(), error)
        result = self._attempt_repair(run, step, attempt)
        if result.success:
            return attempt, result
        self._narrate(run.message_id, "error", f"Guided attempt failed: {result.error}", step.step_number, step.tool)
        return None

    # Confirmation

    def _request_confirmation(self, run: _RequestRun, step: ActionStep) -> bool:
        request_id = f"confirm-{run.message_id}-{step.step_number}"
        pending = self._confirmations.register(request_id, kind="confirmation")
        self._events.confirmation_requested(run.message_id, ConfirmationRequest(id=request_id, step=step.to_dict()))
        response = self._confirmations.wait(pending, self._limits.confirmation_timeout_ms)
        if response is None:
            self._logger.info(f"[CONFIRM] {request_id} timed out; treating as declined")
            return False
        return bool(response.get("confirmed")) and not response.get("cancelled")

    # Analysis follow-ups, goal check and replanning

    def _splice_synthesized_steps(self, run: _RequestRun, step_index: int, step: ActionStep) -> int:
        state = run.state
        remaining = state.current_plan.steps[step_index + 1:]
        if any(s.tool in INTERACTION_TOOLS for s in remaining):
            return 0

        synthesized = synthesize_follow_up_steps(
            run.user_message, state.context.page_elements, step.parameters.get("tabId")
        )
        if not synthesized:
            return 0

        steps = state.current_plan.steps[:step_index + 1] + synthesized + remaining
        state.replace_plan(state.current_plan.with_steps(steps))
        self._events.plan_published(run.message_id, state.current_plan.to_dict())
        self._narrate(run.message_id, "planning",
                      f"Added {len(synthesized)} step(s) based on the elements found on the page")
        return len(synthesized)

    def _goal_achieved(self, run: _RequestRun, step: ActionStep, result: ToolResult) -> bool:
        state = run.state
        content = state.context.last_page_content or ""
        user_prompt = GOAL_CHECK_USER_PROMPT.format(
            goal=state.current_plan.goal,
            user_message=run.user_message,
            last_step=f"{step.tool} {step.parameters}",
            last_result=result.message or result.error or ("Success" if result.success else "Failed"),
            current_url=state.context.current_url or "unknown",
            page_content=content[:PAGE_CONTENT_PREVIEW_CHARS] or "(none)",
        )
        try:
            answer = self._oracle.complete(GOAL_CHECK_SYSTEM_PROMPT, user_prompt, role="goal_check", temperature=0.0)
        except OracleError as e:
            self._logger.warning(f"[EXECUTOR] Goal check failed, assuming not achieved: {e}")
            return False
        return answer.strip().lower().startswith("yes")

    def _should_replan(self, run: _RequestRun, step: ActionStep, result: ToolResult, synthesized: int) -> bool:
        state = run.state
        if result.success:
            # analysis results feed the planner unless synthesis already acted on them
            return step.tool == ANALYSIS_TOOL and synthesized == 0

        info = state.failed_steps.get(step.step_number)
        if info is not None and info.exhausted:
            return True
        return len(state.exhausted_failures()) >= 2

    def _replan(self, run: _RequestRun) -> Optional[ActionPlan]:
        self._narrate(run.message_id, "planning", "Replanning based on what has happened so far...")
        new_plan = self._planner.replan(run.state, run.user_message, self._limits.observation_window)
        if new_plan is None:
            self._narrate(run.message_id, "planning", "No better plan found; continuing with the current plan")
        else:
            self._narrate(run.message_id, "planning", f"New plan with {len(new_plan.steps)} step(s)")
        return new_plan

    # Responses

    def generate_conversational_response(self, user_message: str) -> str:
        about_capabilities = bool(CAPABILITY_QUESTION.search(user_message))
        tools = self._registry.get_all_tools()
        if about_capabilities:
            tool_list = "\n".join(f"- **{t.name}**: {t.description} (category: {t.category})" for t in tools)
            system_prompt = CAPABILITIES_SYSTEM_PROMPT.format(tools=tool_list)
        else:
            system_prompt = CONVERSATIONAL_SYSTEM_PROMPT

        try:
            return self._oracle.complete(system_prompt, user_message, role="conversational",
                                         temperature=Config.get_response_temperature())
        except OracleError as e:
            self._logger.warning(f"[EXECUTOR] Conversational response failed: {e}")
            tool_list = "\n".join(f"- {t.name}: {t.description}" for t in tools)
            return (
                "Hello! I'm an AI agent integrated into this browser. I can help you with various tasks "
                f"using these tools:\n\n{tool_list}\n\nHow can I help you today?"
            )

    def generate_final_response(self, run: _RequestRun) -> str:
        state = run.state
        lines = [f"Step {c.step.step_number} ({c.step.tool}): Success" for c in state.completed_steps]
        lines += [
            f"Step {info.step.step_number} ({info.tool_name}): Failed: {info.error}"
            for info in state.failed_steps.values()
        ]
        user_prompt = FINAL_SUMMARY_USER_PROMPT.format(
            user_message=run.user_message,
            goal=state.current_plan.goal,
            results="\n".join(lines) or "No steps were executed",
        )
        try:
            return self._oracle.complete(FINAL_SUMMARY_SYSTEM_PROMPT, user_prompt, role="final_summary",
                                         temperature=Config.get_response_temperature())
        except OracleError as e:
            self._logger.warning(f"[EXECUTOR] Final summary failed, using fallback: {e}")
            total = len(state.current_plan.steps)
            return (
                f"Completed {len(state.completed_steps)} of {total} step(s) for: {state.current_plan.goal}.\n"
                + "\n".join(lines)
            )

    def _remember_outcome(self, run: _RequestRun) -> None:
        if not self._memory or not run.state.completed_steps:
            return
        state = run.state
        if state.failed_steps and not state.goal_achieved:
            first = next(iter(state.failed_steps.values()))
            self._memory.store_failed_attempt(run.user_message, f"{first.tool_name}: {first.error}")
            return
        self._memory.store_successful_pattern(
            run.user_message,
            [f"{c.step.tool}: {c.step.reasoning}" for c in state.completed_steps],
            [c.step.tool for c in state.completed_steps],
        )

    # Events

    def _narrate(self, message_id: str, update_type: str, content: str,
                 step_number: Optional[int] = None, tool_name: Optional[str] = None) -> None:
        self._events.reasoning_update(message_id, ReasoningUpdate(update_type, content, step_number, tool_name))

    def _warn_if_large(self, message_id: str, user_message: str) -> None:
        estimate = estimate_task_tokens(user_message, self._planner.build_system_prompt(user_message))
        thresholds = Config.get_task_token_thresholds()
        if estimate >= thresholds["very_large"]:
            self._narrate(message_id, "planning",
                          f"This is a very large task (~{estimate:,} tokens). It may take a while and could be "
                          f"split into smaller requests.")
        elif estimate >= thresholds["large"]:
            self._narrate(message_id, "planning", f"This is a large task (~{estimate:,} tokens).")

    def _finish(self, run: _RequestRun, outcome: RequestOutcome, response: str, success: bool) -> RequestResult:
        self._events.current_step(run.message_id, None)
        self._events.final_response(run.message_id, response, success)
        self._logger.info(f"[EXECUTOR] Request {run.message_id} finished as {outcome.value} "
                          f"after {run.iterations} iteration(s)")
        return RequestResult(run.message_id, outcome, response, plan=run.state.current_plan, state=run.state)

    def _finish_error(self, message_id: str, message: str) -> RequestResult:
        response = f"Error: {message}"
        self._events.final_response(message_id, response, False)
        return RequestResult(message_id, RequestOutcome.ERROR, response)
