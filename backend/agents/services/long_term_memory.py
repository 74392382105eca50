# status: complete

from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from utils.logger import get_logger
from utils.token_counter import count_tokens


@dataclass
class SuccessfulPattern:
    task: str
    steps: List[str]
    tools: List[str]
    timestamp: float = field(default_factory=time.time)


@dataclass
class FailedAttempt:
    task: str
    error: str
    solution: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


class LongTermMemory:
    """
    In-process memory of past task outcomes, shared across requests.

    Nothing is written to disk; the store lives as long as the process.
    Oldest entries are dropped first once the token budget is exceeded.
    """

    MAX_TOKENS = 200000
    MAX_PATTERNS = 5
    MAX_FAILURES = 3

    def __init__(self, max_tokens: int = MAX_TOKENS):
        self._patterns: List[SuccessfulPattern] = []
        self._failures: List[FailedAttempt] = []
        self._max_tokens = max_tokens
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    def store_successful_pattern(self, task: str, steps: List[str], tools: List[str]) -> None:
        with self._lock:
            self._patterns.append(SuccessfulPattern(task=task, steps=list(steps), tools=sorted(set(tools))))
            self._trim()
        self._logger.debug("[MEMORY] Stored pattern for %r (%d tools)", task[:60], len(tools))

    def store_failed_attempt(self, task: str, error: str, solution: Optional[str] = None) -> None:
        with self._lock:
            self._failures.append(FailedAttempt(task=task, error=error, solution=solution))
            self._trim()
        self._logger.debug("[MEMORY] Stored failure for %r", task[:60])

    def get_relevant_memories(self, task: str, tools_used: Optional[List[str]] = None) -> Dict[str, List[Any]]:
        """Patterns whose task overlaps ``task`` or share a tool, plus overlapping failures."""
        task_lower = task.lower().strip()
        tools_used = tools_used or []
        with self._lock:
            patterns = [
                p for p in reversed(self._patterns)
                if self._overlaps(task_lower, p.task.lower()) or any(t in p.tools for t in tools_used)
            ]
            failures = [f for f in reversed(self._failures) if self._overlaps(task_lower, f.task.lower())]
        return {
            "patterns": patterns[:self.MAX_PATTERNS],
            "failures": failures[:self.MAX_FAILURES],
        }

    def format_for_prompt(self, task: str) -> str:
        memories = self.get_relevant_memories(task)
        if not memories["patterns"] and not memories["failures"]:
            return ""

        lines = ["", "## PAST EXPERIENCE:"]
        for pattern in memories["patterns"]:
            lines.append(f"- Succeeded on \"{pattern.task}\" using: {', '.join(pattern.tools)}")
        for failure in memories["failures"]:
            lines.append(f"- Failed on \"{failure.task}\": {failure.error}")
        return "\n".join(lines) + "\n"

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()
            self._failures.clear()

    @staticmethod
    def _overlaps(task_lower: str, other_lower: str) -> bool:
        if not task_lower or not other_lower:
            return False
        return task_lower in other_lower or other_lower in task_lower

    def _token_count(self) -> int:
        entries = [asdict(p) for p in self._patterns] + [asdict(f) for f in self._failures]
        return sum(count_tokens(json.dumps(entry)) for entry in entries)

    def _trim(self) -> None:
        total = self._token_count()
        while total > self._max_tokens and self._patterns:
            removed = self._patterns.pop(0)
            total -= count_tokens(json.dumps(asdict(removed)))
        while total > self._max_tokens and self._failures:
            removed = self._failures.pop(0)
            total -= count_tokens(json.dumps(asdict(removed)))
