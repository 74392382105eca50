"""Unit tests for browser tools delegating to an injected actuator."""

import sys
import unittest
from pathlib import Path

backend_dir = Path(__file__).resolve().parents[2]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))
tests_dir = Path(__file__).resolve().parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from agent_fakes import FakeActuator
from agents.tools.browser_tools import BROWSER_TOOL_SPECS, NO_TARGET_ERROR, register_browser_tools
from agents.tools.tool_registry import ToolRegistry


class TestBrowserTools(unittest.TestCase):

    def setUp(self):
        self.registry = ToolRegistry()
        register_browser_tools(self.registry)
        self.actuator = FakeActuator(elements=[{"type": "button", "selector": "#ok", "text": "OK"}])

    def run_tool(self, name, params, target_id=None, actuator="default"):
        actuator = self.actuator if actuator == "default" else actuator
        return self.registry.execute(name, params, target_id=target_id, actuator=actuator)

    def test_catalogue(self):
        self.assertEqual(len(BROWSER_TOOL_SPECS), 11)
        confirm = sorted(s.name for s in BROWSER_TOOL_SPECS if s.requires_confirmation)
        self.assertEqual(confirm, ["close_tab", "submit_form"])
        self.assertTrue(all(s.category == "browser" for s in BROWSER_TOOL_SPECS))

    def test_navigate_uses_target(self):
        result = self.run_tool("navigate_to_url", {"url": "https://example.com"}, target_id="tab-5")

        self.assertTrue(result.success)
        self.assertEqual(self.actuator.calls_to("navigate")[0][1],
                         {"target_id": "tab-5", "url": "https://example.com", "new_tab": False})

    def test_navigate_opens_tab_when_none_active(self):
        self.actuator.active_tab = None

        self.run_tool("navigate_to_url", {"url": "https://example.com"})

        self.assertTrue(self.actuator.calls_to("navigate")[0][1]["new_tab"])

    def test_explicit_tab_beats_context_target(self):
        self.run_tool("click_element", {"selector": "#ok", "tabId": "tab-7"}, target_id="tab-5")
        self.assertEqual(self.actuator.calls_to("click")[0][1]["target_id"], "tab-7")

    def test_falls_back_to_active_tab(self):
        self.run_tool("read_page_content", {})
        self.assertEqual(self.actuator.calls_to("read_page_content")[0][1]["target_id"], "tab-1")

    def test_no_target_fails(self):
        self.actuator.active_tab = None

        result = self.run_tool("analyze_page_structure", {})

        self.assertFalse(result.success)
        self.assertEqual(result.error, NO_TARGET_ERROR)

    def test_missing_actuator_fails(self):
        result = self.run_tool("read_page_content", {}, actuator=None)

        self.assertFalse(result.success)
        self.assertIn("actuator", result.error)

    def test_click_failure_is_passed_through(self):
        result = self.run_tool("click_element", {"selector": "#missing"})

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Element not found: #missing")

    def test_fill_form_requires_fields_object(self):
        self.assertEqual(self.run_tool("fill_form", {"field": "#ok", "value": "x"}).error,
                         "Missing required parameter: fields")
        self.assertEqual(self.run_tool("fill_form", {"fields": {}}).error,
                         "Fields must be an object mapping selectors to values")

    def test_read_page_defaults(self):
        self.run_tool("read_page_content", {})
        call = self.actuator.calls_to("read_page_content")[0][1]
        self.assertEqual((call["content_type"], call["max_length"]), ("text", 10000))

    def test_enum_validation(self):
        result = self.run_tool("click_element", {"selector": "#ok", "selectorType": "magic"})
        self.assertEqual(result.error, "Parameter selectorType must be one of: css, xpath, text")

    def test_create_and_switch_tab(self):
        created = self.run_tool("create_tab", {"url": "https://example.org"})
        switched = self.run_tool("switch_tab", {"tabId": "tab-2"})

        self.assertEqual(created.result["tabId"], "tab-2")
        self.assertTrue(switched.success)
        self.assertEqual(self.actuator.calls_to("switch_tab")[0][1], {"target_id": "tab-2"})

    def test_select_suggestion(self):
        self.run_tool("select_suggestion", {"fieldSelector": "#city", "suggestionText": "Stockholm"})
        call = self.actuator.calls_to("select_suggestion")[0][1]
        self.assertEqual((call["field_selector"], call["suggestion_text"]), ("#city", "Stockholm"))


if __name__ == "__main__":
    unittest.main()
