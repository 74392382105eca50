# status: complete

"""
Retry handler for completion oracle calls with rate limit and overload detection.
These are transport-level retries, distinct from step-execution retries.
"""

import re
import time
from typing import Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class RetryHandler:
    """
    Handles retry logic for API calls with smart delay calculation.

    Supports:
    - Rate limit errors (429, RESOURCE_EXHAUSTED, quota exceeded) -> Uses API-provided delay
    - Overload errors (503, overloaded, UNAVAILABLE) -> Uses exponential backoff
    - Dropped connections and timeouts -> Uses exponential backoff
    """

    def __init__(self, max_retries: int = 2):
        self.max_retries = max_retries
        self.retry_delays = [1, 2, 4, 8, 16]
        self.rate_limit_delays = [2, 5, 20, 40, 60]

    def is_retryable_error(self, error_message: str) -> tuple[bool, Optional[str], Optional[float], bool]:
        """
        Check if an error is retryable and extract retry information.

        Returns:
            tuple: (is_retryable, retry_reason, api_provided_delay, is_rate_limit)
        """
        error_lower = error_message.lower()

        if ("429" in error_message or "RESOURCE_EXHAUSTED" in error_message or
                "rate limit" in error_lower or "quota exceeded" in error_lower):
            return True, "Rate limit exceeded", self._extract_api_delay(error_message), True

        if ("overloaded" in error_lower or "503" in error_message or "UNAVAILABLE" in error_message or
                "experiencing high traffic" in error_lower):
            return True, "Model overloaded", None, False

        if "timed out" in error_lower or "timeout" in error_lower or "connection" in error_lower:
            return True, "Connection problem", None, False

        return False, None, None, False

    def _extract_api_delay(self, error_message: str) -> Optional[float]:
        """
        Extract retry delay from API error message.
        Handles formats like: "Please retry in 29.64s" or "Please retry in 92.7ms"
        """
        match = re.search(r"retry in ([\d.]+)(m?s)", error_message, re.IGNORECASE)
        if match:
            delay_value = float(match.group(1))
            unit = match.group(2).lower()
            return delay_value / 1000.0 if unit == 'ms' else delay_value
        return None

    def calculate_delay(self, attempt: int, is_rate_limit: bool, api_provided_delay: Optional[float]) -> float:
        """Calculate retry delay (attempt is 1-indexed)."""
        if is_rate_limit:
            if api_provided_delay is None:
                delay_idx = min(attempt - 1, len(self.rate_limit_delays) - 1)
                return float(self.rate_limit_delays[delay_idx])
            return api_provided_delay + 1.5
        delay_idx = min(attempt - 1, len(self.retry_delays) - 1)
        return float(self.retry_delays[delay_idx])

    def should_retry(self, error_message: str, attempt: int, logger_instance=None) -> tuple[bool, Optional[float]]:
        """
        Determine if we should retry and calculate the delay.

        Args:
            error_message: The error message to check
            attempt: Number of attempts already retried (0-indexed)

        Returns:
            tuple: (should_retry, delay_seconds) - delay is None if should not retry
        """
        if logger_instance is None:
            logger_instance = logger

        is_retryable, retry_reason, api_provided_delay, is_rate_limit = self.is_retryable_error(error_message)
        if not is_retryable:
            return False, None

        if attempt >= self.max_retries:
            logger_instance.warning(f"[RETRY] {retry_reason} persisted after {self.max_retries} retries. Giving up.")
            return False, None

        delay = self.calculate_delay(attempt + 1, is_rate_limit, api_provided_delay)
        logger_instance.warning(
            f"[RETRY] {retry_reason}, retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries})"
        )
        return True, delay

    def sleep(self, delay: float) -> None:
        time.sleep(delay)
