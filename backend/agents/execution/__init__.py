"""Execution engine for the browser agent.

This package contains the request orchestrator and its collaborators:
- Planning and replanning
- Failure classification and repair
- Follow-up step synthesis after page analysis
"""

from agents.execution.executor import (
    AgentExecutor,
    RequestOutcome,
    RequestResult,
)
from agents.execution.plan_parser import PlanGenerationError
from agents.execution.planner import TaskPlanner

__all__ = [
    "AgentExecutor",
    "RequestOutcome",
    "RequestResult",
    "PlanGenerationError",
    "TaskPlanner",
]
