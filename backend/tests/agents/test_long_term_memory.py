"""Unit tests for in-process long-term memory."""

import sys
import unittest
from pathlib import Path
from unittest.mock import patch

backend_dir = Path(__file__).resolve().parents[2]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from agents.services.long_term_memory import LongTermMemory


def _char_tokens(text):
    return len(text)


@patch('agents.services.long_term_memory.count_tokens', side_effect=_char_tokens)
class TestLongTermMemory(unittest.TestCase):

    def test_relevant_by_task_overlap(self, mock_count):
        memory = LongTermMemory()
        memory.store_successful_pattern("buy shoes", ["navigate", "click"], ["click_element", "navigate_to_url"])
        memory.store_successful_pattern("read the news", ["navigate"], ["navigate_to_url"])

        memories = memory.get_relevant_memories("buy shoes online")

        self.assertEqual([p.task for p in memories["patterns"]], ["buy shoes"])

    def test_relevant_by_shared_tool(self, mock_count):
        memory = LongTermMemory()
        memory.store_successful_pattern("book a table", ["fill"], ["fill_form"])

        memories = memory.get_relevant_memories("something else", tools_used=["fill_form"])

        self.assertEqual(len(memories["patterns"]), 1)

    def test_tools_are_deduplicated(self, mock_count):
        memory = LongTermMemory()
        memory.store_successful_pattern("task", [], ["b", "a", "b"])
        self.assertEqual(memory.get_relevant_memories("task")["patterns"][0].tools, ["a", "b"])

    def test_newest_first_and_capped(self, mock_count):
        memory = LongTermMemory()
        for i in range(5):
            memory.store_failed_attempt("login", f"error {i}")

        failures = memory.get_relevant_memories("login")["failures"]

        self.assertEqual([f.error for f in failures], ["error 4", "error 3", "error 2"])

    def test_format_for_prompt(self, mock_count):
        memory = LongTermMemory()
        self.assertEqual(memory.format_for_prompt("anything"), "")

        memory.store_successful_pattern("search flights", [], ["navigate_to_url"])
        memory.store_failed_attempt("search flights", "Element not found: #from")
        text = memory.format_for_prompt("search flights")

        self.assertIn("## PAST EXPERIENCE:", text)
        self.assertIn('Succeeded on "search flights" using: navigate_to_url', text)
        self.assertIn('Failed on "search flights": Element not found: #from', text)

    def test_oldest_dropped_over_budget(self, mock_count):
        memory = LongTermMemory(max_tokens=200)
        memory.store_successful_pattern("first task", ["a"], ["x"])
        memory.store_successful_pattern("second task", ["a"], ["x"])
        memory.store_successful_pattern("third task", ["a"], ["x"])

        tasks = [p.task for p in memory.get_relevant_memories("task")["patterns"]]

        self.assertNotIn("first task", tasks)
        self.assertIn("third task", tasks)

    def test_clear(self, mock_count):
        memory = LongTermMemory()
        memory.store_failed_attempt("x", "y")
        memory.clear()
        self.assertEqual(memory.get_relevant_memories("x"), {"patterns": [], "failures": []})


if __name__ == "__main__":
    unittest.main()
