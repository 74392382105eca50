"""Test doubles for the completion oracle, the browser actuator and the event stream."""

import json
from typing import Any, Dict, List, Optional

from agents.tools.browser_tools import BrowserActuator
from chat.chat import OracleError

DEFAULT_ANSWERS = {
    "goal_check": "NO",
    "rank_candidates": "[]",
    "replanner": '{"goal": "Nothing else to do", "steps": []}',
    "conversational": "Hello! How can I help you today?",
    "final_summary": "Summary of the run",
}


def plan_json(goal: str, steps: List[Dict[str, Any]]) -> str:
    """Serialise a plan the way a completion model would answer (fenced, with prose)."""
    numbered = []
    for index, step in enumerate(steps, start=1):
        entry = {"stepNumber": index, "reasoning": f"Step {index}", "parameters": {}}
        entry.update(step)
        numbered.append(entry)
    body = json.dumps({"goal": goal, "steps": numbered}, indent=2)
    return f"Here is the plan:\n```json\n{body}\n```"


class FakeOracle:
    """Answers completions by role; a list answers in order and repeats its last entry."""

    def __init__(self, answers: Optional[Dict[str, Any]] = None, configured: bool = True):
        self.answers = dict(DEFAULT_ANSWERS)
        self.answers.update(answers or {})
        self.configured = configured
        self.calls: List[Dict[str, Any]] = []

    def is_configured(self) -> bool:
        return self.configured

    def complete(self, system_prompt, user_prompt, role="agent", temperature=None, max_retries=None):
        self.calls.append({"role": role, "system": system_prompt, "user": user_prompt})
        answer = self.answers.get(role)
        if isinstance(answer, list):
            answer = answer.pop(0) if len(answer) > 1 else answer[0]
        if callable(answer):
            answer = answer(system_prompt, user_prompt)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            raise OracleError(f"no answer configured for role {role}")
        return answer

    def calls_for(self, role: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["role"] == role]


class FakeActuator(BrowserActuator):
    """In-memory browser: clicks and fills succeed only for known selectors."""

    def __init__(self, elements=None, extra_selectors=None, active_tab: Optional[str] = "tab-1",
                 page_text: str = "Example page"):
        self.elements = list(elements or [])
        self.known = {e["selector"] for e in self.elements if e.get("selector")} | set(extra_selectors or ())
        self.active_tab = active_tab
        self.page_text = page_text
        self.calls: List[tuple] = []
        self._queued: Dict[str, List[Dict[str, Any]]] = {}

    def queue(self, method: str, result: Dict[str, Any]) -> None:
        """Make the next call to ``method`` return ``result``."""
        self._queued.setdefault(method, []).append(result)

    def calls_to(self, method: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == method]

    def _record(self, method: str, **kwargs) -> Optional[Dict[str, Any]]:
        self.calls.append((method, kwargs))
        queued = self._queued.get(method)
        return queued.pop(0) if queued else None

    def active_target_id(self):
        return self.active_tab

    def navigate(self, target_id, url, new_tab=False):
        tab = target_id if target_id and not new_tab else "tab-new"
        return self._record("navigate", target_id=target_id, url=url, new_tab=new_tab) or {
            "success": True, "result": {"url": url, "tabId": tab}, "message": f"Navigated to {url}"}

    def analyze_page_structure(self, target_id, element_types="all"):
        return self._record("analyze_page_structure", target_id=target_id, element_types=element_types) or {
            "success": True,
            "result": {"elements": list(self.elements), "url": "https://example.com"},
            "message": f"Found {len(self.elements)} interactive elements"}

    def click(self, target_id, selector, selector_type=None):
        queued = self._record("click", target_id=target_id, selector=selector, selector_type=selector_type)
        if queued:
            return queued
        if selector not in self.known:
            return {"success": False, "error": f"Element not found: {selector}"}
        return {"success": True, "message": f"Clicked {selector}"}

    def fill_fields(self, target_id, fields):
        queued = self._record("fill_fields", target_id=target_id, fields=dict(fields))
        if queued:
            return queued
        missing = [selector for selector in fields if selector not in self.known]
        if missing:
            return {"success": False, "error": f"Field not found: {missing[0]}"}
        return {"success": True, "message": f"Filled {len(fields)} field(s)"}

    def submit_form(self, target_id, form_selector=None):
        return self._record("submit_form", target_id=target_id, form_selector=form_selector) or {
            "success": True, "message": "Form submitted"}

    def read_page_content(self, target_id, content_type="text", max_length=10000):
        return self._record("read_page_content", target_id=target_id, content_type=content_type,
                            max_length=max_length) or {
            "success": True, "result": self.page_text[:max_length], "message": "Read page content"}

    def capture_screenshot(self, target_id, name=None, full_page=False):
        return self._record("capture_screenshot", target_id=target_id, name=name, full_page=full_page) or {
            "success": True, "result": {"name": name or "screenshot"}, "message": "Screenshot captured"}

    def create_tab(self, url=None):
        return self._record("create_tab", url=url) or {
            "success": True, "result": {"tabId": "tab-2", "url": url}, "message": "Created tab"}

    def switch_tab(self, target_id):
        return self._record("switch_tab", target_id=target_id) or {
            "success": True, "result": {"tabId": target_id}, "message": f"Switched to {target_id}"}

    def close_tab(self, target_id):
        return self._record("close_tab", target_id=target_id) or {"success": True, "message": "Closed tab"}

    def select_suggestion(self, target_id, field_selector, suggestion_text=None, suggestion_index=None):
        return self._record("select_suggestion", target_id=target_id, field_selector=field_selector,
                            suggestion_text=suggestion_text, suggestion_index=suggestion_index) or {
            "success": True, "message": "Selected suggestion"}


class EventRecorder:
    """AgentEventEmitter listener keeping every event in order."""

    def __init__(self):
        self.events: List[tuple] = []

    def __call__(self, message_id, event_type, payload):
        self.events.append((message_id, event_type, payload))

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [payload for _, kind, payload in self.events if kind == event_type]

    def narration(self) -> List[str]:
        return [payload["content"] for payload in self.of_type("reasoning_update")]
