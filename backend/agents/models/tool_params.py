# status: complete

"""
Typed parameter records for the bundled tools.

Plans carry raw JSON parameters. Tool functions convert them into one of
the dataclasses below with ``parse_tool_params`` so every tool works on a
known shape. Tools outside this catalogue keep their raw dict.
"""

from __future__ import annotations

from dataclasses import MISSING, asdict, dataclass, field
from dataclasses import fields as dataclass_fields
from typing import Any, Dict, Optional, Type, Union


@dataclass
class NavigateParams:
    url: str
    tab_id: Optional[str] = None
    new_tab: bool = False


@dataclass
class AnalyzePageParams:
    tab_id: Optional[str] = None
    element_types: str = "all"


@dataclass
class ClickParams:
    selector: str
    selector_type: Optional[str] = None
    tab_id: Optional[str] = None


@dataclass
class FillFormParams:
    fields: Dict[str, Any] = field(default_factory=dict)
    tab_id: Optional[str] = None


@dataclass
class SubmitFormParams:
    form_selector: Optional[str] = None
    tab_id: Optional[str] = None


@dataclass
class ReadPageParams:
    content_type: str = "text"
    max_length: int = 10000
    tab_id: Optional[str] = None


@dataclass
class ScreenshotParams:
    name: Optional[str] = None
    full_page: bool = False
    tab_id: Optional[str] = None


@dataclass
class CreateTabParams:
    url: Optional[str] = None


@dataclass
class SwitchTabParams:
    tab_id: str


@dataclass
class CloseTabParams:
    tab_id: Optional[str] = None


@dataclass
class SelectSuggestionParams:
    field_selector: str
    suggestion_text: Optional[str] = None
    suggestion_index: Optional[int] = None
    tab_id: Optional[str] = None


@dataclass
class ReadFileParams:
    file_path: str
    encoding: str = "utf-8"


@dataclass
class WriteFileParams:
    file_path: str
    content: str
    encoding: str = "utf-8"


@dataclass
class ListDirectoryParams:
    directory_path: str = "."
    include_details: bool = False


ToolParams = Union[
    NavigateParams, AnalyzePageParams, ClickParams, FillFormParams, SubmitFormParams,
    ReadPageParams, ScreenshotParams, CreateTabParams, SwitchTabParams, CloseTabParams,
    SelectSuggestionParams, ReadFileParams, WriteFileParams, ListDirectoryParams,
]

# tool name -> (params class, {wire key: field name})
_PARAM_TYPES: Dict[str, tuple] = {
    "navigate_to_url": (NavigateParams, {"url": "url", "tabId": "tab_id", "newTab": "new_tab"}),
    "analyze_page_structure": (AnalyzePageParams, {"tabId": "tab_id", "elementTypes": "element_types"}),
    "click_element": (ClickParams, {"selector": "selector", "selectorType": "selector_type", "tabId": "tab_id"}),
    "fill_form": (FillFormParams, {"fields": "fields", "tabId": "tab_id"}),
    "submit_form": (SubmitFormParams, {"formSelector": "form_selector", "tabId": "tab_id"}),
    "read_page_content": (ReadPageParams, {"contentType": "content_type", "maxLength": "max_length",
                                           "tabId": "tab_id"}),
    "capture_screenshot": (ScreenshotParams, {"name": "name", "fullPage": "full_page", "tabId": "tab_id"}),
    "create_tab": (CreateTabParams, {"url": "url"}),
    "switch_tab": (SwitchTabParams, {"tabId": "tab_id"}),
    "close_tab": (CloseTabParams, {"tabId": "tab_id"}),
    "select_suggestion": (SelectSuggestionParams, {"fieldSelector": "field_selector",
                                                   "suggestionText": "suggestion_text",
                                                   "suggestionIndex": "suggestion_index",
                                                   "tabId": "tab_id"}),
    "read_file": (ReadFileParams, {"filePath": "file_path", "encoding": "encoding"}),
    "write_file": (WriteFileParams, {"filePath": "file_path", "content": "content", "encoding": "encoding"}),
    "list_directory": (ListDirectoryParams, {"directoryPath": "directory_path",
                                             "includeDetails": "include_details"}),
}


def params_type_for(tool: str) -> Optional[Type]:
    entry = _PARAM_TYPES.get(tool)
    return entry[0] if entry else None


def parse_tool_params(tool: str, raw: Dict[str, Any]) -> Union[ToolParams, Dict[str, Any]]:
    """
    Convert wire parameters into the typed record for ``tool``.

    Unknown keys are ignored. Missing required fields raise ValueError with
    the registry's wording so the failure still classifies as a parameter
    error.
    """
    entry = _PARAM_TYPES.get(tool)
    if entry is None:
        return dict(raw or {})

    cls, key_map = entry
    kwargs = {}
    for wire_key, field_name in key_map.items():
        if wire_key in (raw or {}) and raw[wire_key] is not None:
            kwargs[field_name] = raw[wire_key]

    try:
        return cls(**kwargs)
    except TypeError:
        reverse = {f: k for k, f in key_map.items()}
        missing = [reverse[f.name] for f in dataclass_fields(cls)
                   if f.default is MISSING and f.default_factory is MISSING and f.name not in kwargs]
        raise ValueError(f"Missing required parameter: {missing[0] if missing else tool}")


def params_to_wire(tool: str, params: Any) -> Dict[str, Any]:
    """Inverse of ``parse_tool_params``; drops unset optional fields."""
    entry = _PARAM_TYPES.get(tool)
    if entry is None:
        return dict(params)

    _, key_map = entry
    values = asdict(params)
    reverse = {field_name: wire_key for wire_key, field_name in key_map.items()}
    return {reverse[name]: value for name, value in values.items() if value is not None}
