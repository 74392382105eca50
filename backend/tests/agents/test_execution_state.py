"""Unit tests for ExecutionState bookkeeping."""

import sys
import unittest
from pathlib import Path

backend_dir = Path(__file__).resolve().parents[2]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from agents.models.action_plan import ActionPlan, ActionStep
from agents.models.execution_state import ErrorKind, create_execution_state
from agents.tools.tool_registry import ToolResult


def _plan():
    return ActionPlan(goal="Buy", steps=[
        ActionStep(1, "navigate_to_url", {"url": "https://shop.example.com"}),
        ActionStep(2, "click_element", {"selector": "#buy"}),
        ActionStep(3, "click_element", {"selector": "#confirm"}),
    ])


class TestFailureTracking(unittest.TestCase):
    """failedSteps and taskFailureCounts."""

    def setUp(self):
        self.plan = _plan()
        self.state = create_execution_state(self.plan)

    def test_task_failure_count_only_increases(self):
        """Counts go up with every failure and a retry never lowers them."""
        click = self.plan.steps[1]
        seen = []
        for _ in range(3):
            self.state.record_failure(click, "Element not found", ErrorKind.ELEMENT_NOT_FOUND)
            self.state.set_retry_count(2, 1)
            seen.append(self.state.failure_count("click_element"))

        self.state.record_success(click, ToolResult(success=True))

        self.assertEqual(seen, [1, 2, 3])
        self.assertEqual(self.state.failure_count("click_element"), 3)
        self.assertEqual(self.state.failure_count("navigate_to_url"), 0)

    def test_repair_attempts_count_without_touching_failed_steps(self):
        click = self.plan.steps[1]
        self.state.record_failure(click, "Element not found", ErrorKind.ELEMENT_NOT_FOUND)

        self.assertEqual(self.state.count_tool_failure("click_element"), 2)
        self.assertEqual(self.state.count_tool_failure("analyze_page_structure"), 1)
        self.assertEqual(list(self.state.failed_steps), [2])
        self.assertEqual(self.state.failed_steps[2].retry_count, 0)

    def test_success_clears_failed_entry(self):
        click = self.plan.steps[1]
        self.state.record_failure(click, "Element not found", ErrorKind.ELEMENT_NOT_FOUND)

        self.state.record_success(click, ToolResult(success=True))

        self.assertNotIn(2, self.state.failed_steps)
        self.assertEqual(len(self.state.completed_steps), 1)

    def test_retry_progress_carries_over_for_identical_step(self):
        click = self.plan.steps[1]
        self.state.record_failure(click, "Element not found", ErrorKind.ELEMENT_NOT_FOUND)
        self.state.set_retry_count(2, 3)
        self.state.mark_exhausted(2)

        info = self.state.record_failure(click, "Element not found again", ErrorKind.ELEMENT_NOT_FOUND)

        self.assertEqual(info.retry_count, 3)
        self.assertTrue(info.exhausted)
        self.assertEqual(info.error, "Element not found again")

    def test_retry_progress_resets_for_different_step(self):
        """A replanned step reusing the number starts a fresh budget."""
        self.state.record_failure(self.plan.steps[1], "Element not found", ErrorKind.ELEMENT_NOT_FOUND)
        self.state.set_retry_count(2, 3)
        self.state.mark_exhausted(2)

        other = ActionStep(2, "click_element", {"selector": "button.buy"})
        info = self.state.record_failure(other, "Element not found", ErrorKind.ELEMENT_NOT_FOUND)

        self.assertEqual(info.retry_count, 0)
        self.assertFalse(info.exhausted)

    def test_set_retry_count_never_decreases(self):
        self.state.record_failure(self.plan.steps[1], "Element not found", ErrorKind.ELEMENT_NOT_FOUND)
        self.state.set_retry_count(2, 2)
        self.state.set_retry_count(2, 1)
        self.assertEqual(self.state.failed_steps[2].retry_count, 2)

    def test_exhausted_failures(self):
        self.state.record_failure(self.plan.steps[1], "Element not found", ErrorKind.ELEMENT_NOT_FOUND)
        self.state.record_failure(self.plan.steps[2], "Something odd", ErrorKind.UNKNOWN)
        self.state.mark_exhausted(3)

        exhausted = self.state.exhausted_failures()

        self.assertEqual([info.step.step_number for info in exhausted], [3])


class TestPlanReplacement(unittest.TestCase):
    """Replanning never touches the original plan."""

    def test_replace_plan_keeps_original(self):
        plan = _plan()
        state = create_execution_state(plan)
        new_plan = ActionPlan(goal="Buy differently", steps=[ActionStep(1, "read_page_content")])

        state.replace_plan(new_plan)
        new_plan.steps.append(ActionStep(2, "capture_screenshot"))

        self.assertEqual([s.tool for s in state.current_plan.steps], ["read_page_content"])
        self.assertEqual(len(state.original_plan.steps), 3)
        self.assertEqual(state.original_plan.goal, "Buy")

    def test_state_is_detached_from_input_plan(self):
        plan = _plan()
        state = create_execution_state(plan)

        plan.steps[0].parameters["url"] = "https://changed.example.com"

        self.assertEqual(state.original_plan.steps[0].parameters["url"], "https://shop.example.com")


class TestObservationsAndContext(unittest.TestCase):

    def test_recent_observations_window(self):
        state = create_execution_state(_plan())
        for i in range(8):
            state.observe(i, f"obs {i}")

        recent = state.recent_observations(5)

        self.assertEqual([o.text for o in recent], ["obs 3", "obs 4", "obs 5", "obs 6", "obs 7"])
        self.assertEqual(state.recent_observations(0), [])

    def test_context_to_dict(self):
        state = create_execution_state(_plan())
        state.context.current_url = "https://example.com"
        state.context.page_elements = [{"selector": "#a"}, {"selector": "#b"}]

        data = state.context.to_dict()

        self.assertEqual(data["currentUrl"], "https://example.com")
        self.assertEqual(data["pageElementCount"], 2)
        self.assertEqual(data["pageElements"], [{"type": None, "selector": "#a"}, {"type": None, "selector": "#b"}])
        self.assertFalse(data["hasPageAnalysis"])

    def test_context_element_snapshot_is_bounded(self):
        state = create_execution_state(_plan())
        state.context.page_elements = [
            {"type": "button", "selector": f"#b{i}", "text": "Go " * 50} for i in range(60)
        ]

        elements = state.context.to_dict()["pageElements"]

        self.assertEqual(len(elements), 40)
        self.assertEqual(elements[0]["selector"], "#b0")
        self.assertEqual(len(elements[0]["label"]), 80)


if __name__ == "__main__":
    unittest.main()
