# status: complete

"""
Browser tool catalogue.

The engine never touches a page itself. Every tool below delegates to a
``BrowserActuator`` handed in through ``ToolExecutionContext``; the host
application supplies the implementation (tab scripting, screenshots, ...).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from utils.logger import get_logger
from ..models.tool_params import parse_tool_params
from .tool_registry import ToolExecutionContext, ToolParameter, ToolRegistry, ToolResult, ToolSpec

_logger = get_logger(__name__)

NO_TARGET_ERROR = "No active tab available. Please create a tab first or navigate to a page."


class BrowserActuator:
    """Interface to the host's tab automation primitives.

    Action methods return a plain dict shaped like a tool result:
    ``{"success": bool, "result": ..., "error": str, "message": str}``.
    """

    def active_target_id(self) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    def navigate(self, target_id: Optional[str], url: str, new_tab: bool = False) -> Dict[str, Any]:  # pragma: no cover
        raise NotImplementedError

    def analyze_page_structure(self, target_id: str, element_types: str = "all") -> Dict[str, Any]:  # pragma: no cover
        raise NotImplementedError

    def click(self, target_id: str, selector: str, selector_type: Optional[str] = None) -> Dict[str, Any]:  # pragma: no cover
        raise NotImplementedError

    def fill_fields(self, target_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError

    def submit_form(self, target_id: str, form_selector: Optional[str] = None) -> Dict[str, Any]:  # pragma: no cover
        raise NotImplementedError

    def read_page_content(self, target_id: str, content_type: str = "text",
                          max_length: int = 10000) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError

    def capture_screenshot(self, target_id: str, name: Optional[str] = None,
                           full_page: bool = False) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError

    def create_tab(self, url: Optional[str] = None) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError

    def switch_tab(self, target_id: str) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError

    def close_tab(self, target_id: str) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError

    def select_suggestion(self, target_id: str, field_selector: str, suggestion_text: Optional[str] = None,
                          suggestion_index: Optional[int] = None) -> Dict[str, Any]:  # pragma: no cover
        raise NotImplementedError


def _to_result(raw: Any) -> ToolResult:
    if isinstance(raw, ToolResult):
        return raw
    if not isinstance(raw, dict):
        return ToolResult(success=True, result=raw)
    return ToolResult(
        success=bool(raw.get("success", False)),
        result=raw.get("result"),
        error=raw.get("error"),
        message=raw.get("message"),
    )


def _actuator(ctx: ToolExecutionContext) -> BrowserActuator:
    if ctx.actuator is None:
        raise RuntimeError("Browser actuator not available")
    return ctx.actuator


def _resolve_target(ctx: ToolExecutionContext, explicit: Optional[str]) -> Optional[str]:
    return explicit or ctx.target_id or _actuator(ctx).active_target_id()


def _tool_navigate(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("navigate_to_url", params)
    if not p.url.strip():
        raise ValueError("URL is required and must be a string")

    target = _resolve_target(ctx, p.tab_id)
    # no tab yet: the actuator opens one
    new_tab = p.new_tab or target is None
    _logger.info(f"[BROWSER] navigate {p.url} (target={target}, new_tab={new_tab})")
    return _to_result(_actuator(ctx).navigate(target, p.url, new_tab))


def _tool_analyze_page(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("analyze_page_structure", params)
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).analyze_page_structure(target, p.element_types))


def _tool_click(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("click_element", params)
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).click(target, p.selector, p.selector_type))


def _tool_fill_form(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("fill_form", params)
    if not p.fields:
        raise ValueError("Fields must be an object mapping selectors to values")
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).fill_fields(target, p.fields))


def _tool_submit_form(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("submit_form", params)
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).submit_form(target, p.form_selector))


def _tool_read_page(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("read_page_content", params)
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).read_page_content(target, p.content_type, int(p.max_length)))


def _tool_screenshot(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("capture_screenshot", params)
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).capture_screenshot(target, p.name, p.full_page))


def _tool_create_tab(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("create_tab", params)
    return _to_result(_actuator(ctx).create_tab(p.url))


def _tool_switch_tab(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("switch_tab", params)
    return _to_result(_actuator(ctx).switch_tab(p.tab_id))


def _tool_close_tab(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("close_tab", params)
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).close_tab(target))


def _tool_select_suggestion(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    p = parse_tool_params("select_suggestion", params)
    target = _resolve_target(ctx, p.tab_id)
    if target is None:
        return ToolResult.failure(NO_TARGET_ERROR)
    return _to_result(_actuator(ctx).select_suggestion(
        target, p.field_selector, p.suggestion_text, p.suggestion_index
    ))


def _tab_param(what: str = "interact with") -> ToolParameter:
    return ToolParameter("tabId", "string", f"ID of the tab to {what} (defaults to active tab)", required=False)


navigate_spec = ToolSpec(
    name="navigate_to_url",
    description="Navigate to a URL in the current tab or a new tab",
    category="browser",
    fn=_tool_navigate,
    parameters=[
        ToolParameter("url", "string", "URL to navigate to"),
        ToolParameter("tabId", "string", "ID of the tab to navigate (defaults to active tab, creates new if not found)",
                      required=False),
        ToolParameter("newTab", "boolean", "Whether to open in a new tab", required=False),
    ],
)

analyze_page_spec = ToolSpec(
    name="analyze_page_structure",
    description=(
        "Analyze the page structure to find all interactive elements (inputs, buttons, selects, links) "
        "with their semantic context (labels, placeholders, nearby text). Use this to understand what "
        "elements are available before filling forms or clicking buttons."
    ),
    category="browser",
    fn=_tool_analyze_page,
    parameters=[
        _tab_param("analyze"),
        ToolParameter("elementTypes", "string", "Types of elements to find (defaults to 'all')", required=False,
                      enum=["input", "button", "select", "link", "all"]),
    ],
)

click_spec = ToolSpec(
    name="click_element",
    description="Click an element on the current page using CSS selector, XPath, or text content",
    category="browser",
    fn=_tool_click,
    parameters=[
        ToolParameter("selector", "string", "CSS selector, XPath, or text content to identify the element"),
        ToolParameter("selectorType", "string", "Type of selector: 'css', 'xpath', or 'text'", required=False,
                      enum=["css", "xpath", "text"]),
        _tab_param(),
    ],
)

fill_form_spec = ToolSpec(
    name="fill_form",
    description="Fill form fields on the current page",
    category="browser",
    fn=_tool_fill_form,
    parameters=[
        ToolParameter("fields", "object",
                      "Object mapping field selectors to values (e.g., {'#email': 'user@example.com'})"),
        _tab_param(),
    ],
)

submit_form_spec = ToolSpec(
    name="submit_form",
    description="Submit a form on the current page",
    category="browser",
    fn=_tool_submit_form,
    requires_confirmation=True,
    parameters=[
        ToolParameter("formSelector", "string", "CSS selector for the form element (defaults to first form on page)",
                      required=False),
        _tab_param(),
    ],
)

read_page_spec = ToolSpec(
    name="read_page_content",
    description="Read the text content or HTML of the current page",
    category="browser",
    fn=_tool_read_page,
    parameters=[
        ToolParameter("contentType", "string", "Type of content to read: 'text' or 'html'", required=False,
                      enum=["text", "html"]),
        _tab_param("read from"),
        ToolParameter("maxLength", "number", "Maximum length of content to return (defaults to 10000 characters)",
                      required=False),
    ],
)

screenshot_spec = ToolSpec(
    name="capture_screenshot",
    description="Capture a screenshot of the current page and save it with a name for later reference",
    category="browser",
    fn=_tool_screenshot,
    parameters=[
        ToolParameter("name", "string", "Name for the screenshot. If not provided, uses timestamp.", required=False),
        _tab_param("capture"),
        ToolParameter("fullPage", "boolean", "Capture full page including scrollable content", required=False),
    ],
)

create_tab_spec = ToolSpec(
    name="create_tab",
    description="Create a new browser tab",
    category="browser",
    fn=_tool_create_tab,
    parameters=[ToolParameter("url", "string", "URL to load in the new tab (defaults to new tab page)",
                              required=False)],
)

switch_tab_spec = ToolSpec(
    name="switch_tab",
    description="Switch to a different browser tab",
    category="browser",
    fn=_tool_switch_tab,
    parameters=[ToolParameter("tabId", "string", "ID of the tab to switch to")],
)

close_tab_spec = ToolSpec(
    name="close_tab",
    description="Close a browser tab",
    category="browser",
    fn=_tool_close_tab,
    requires_confirmation=True,
    parameters=[_tab_param("close")],
)

select_suggestion_spec = ToolSpec(
    name="select_suggestion",
    description="Select an option from an autocomplete/suggestion dropdown that appeared after typing in a field",
    category="browser",
    fn=_tool_select_suggestion,
    parameters=[
        ToolParameter("fieldSelector", "string", "CSS selector of the input field that triggered the suggestions"),
        ToolParameter("suggestionText", "string", "The text of the suggestion to select (partial match is OK)",
                      required=False),
        ToolParameter("suggestionIndex", "number", "Index of the suggestion to select (0-based)", required=False),
        _tab_param(),
    ],
)

BROWSER_TOOL_SPECS = [
    navigate_spec,
    analyze_page_spec,
    click_spec,
    fill_form_spec,
    submit_form_spec,
    read_page_spec,
    screenshot_spec,
    create_tab_spec,
    switch_tab_spec,
    close_tab_spec,
    select_suggestion_spec,
]


def register_browser_tools(registry: ToolRegistry) -> None:
    registry.register_many(BROWSER_TOOL_SPECS)
    _logger.info(f"Browser tools registered successfully ({len(BROWSER_TOOL_SPECS)} tools)")
