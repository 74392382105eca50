"""Unit tests for typed tool parameter records."""

import sys
import unittest
from pathlib import Path

backend_dir = Path(__file__).resolve().parents[2]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from agents.models.tool_params import (
    ClickParams,
    ListDirectoryParams,
    ReadPageParams,
    params_to_wire,
    params_type_for,
    parse_tool_params,
)


class TestParseToolParams(unittest.TestCase):

    def test_maps_wire_keys(self):
        p = parse_tool_params("click_element", {"selector": "#ok", "selectorType": "css", "tabId": "tab-1"})

        self.assertIsInstance(p, ClickParams)
        self.assertEqual((p.selector, p.selector_type, p.tab_id), ("#ok", "css", "tab-1"))

    def test_defaults_and_unknown_keys(self):
        p = parse_tool_params("read_page_content", {"bogus": 1})

        self.assertIsInstance(p, ReadPageParams)
        self.assertEqual((p.content_type, p.max_length, p.tab_id), ("text", 10000, None))

    def test_none_values_fall_back_to_defaults(self):
        p = parse_tool_params("list_directory", {"directoryPath": None})
        self.assertEqual(p, ListDirectoryParams())

    def test_missing_required_uses_wire_name(self):
        with self.assertRaises(ValueError) as cm:
            parse_tool_params("switch_tab", {})
        self.assertEqual(str(cm.exception), "Missing required parameter: tabId")

    def test_unknown_tool_keeps_raw_dict(self):
        self.assertEqual(parse_tool_params("custom_tool", {"a": 1}), {"a": 1})
        self.assertIsNone(params_type_for("custom_tool"))


class TestParamsToWire(unittest.TestCase):

    def test_drops_unset_optionals(self):
        p = parse_tool_params("click_element", {"selector": "#ok"})
        self.assertEqual(params_to_wire("click_element", p), {"selector": "#ok"})

    def test_keeps_defaults_that_are_set(self):
        p = parse_tool_params("navigate_to_url", {"url": "https://example.com"})
        self.assertEqual(params_to_wire("navigate_to_url", p), {"url": "https://example.com", "newTab": False})


if __name__ == "__main__":
    unittest.main()
