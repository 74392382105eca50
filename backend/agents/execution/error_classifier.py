# status: complete

from __future__ import annotations

from typing import Optional

from ..models.execution_state import ErrorKind

UNRECOVERABLE_MARKERS = (
    "api",
    "openai",
    "anthropic",
    "network",
    "authentication",
    "unauthorized",
    "rate limit",
)

ELEMENT_MARKERS = (
    "not found",
    "not visible",
    "could not find",
    "field not found",
)

PARAMETER_MARKERS = (
    "missing required parameter",
    "must be",
    "invalid parameter",
    "parameter",
)


def classify_error(error: Optional[str], tool: Optional[str] = None) -> ErrorKind:
    """
    Map a failure message onto an ``ErrorKind``.

    Case-insensitive substring checks, evaluated in order; the first bucket
    that matches wins. ``tool`` is accepted for callers that have it but
    does not affect the result.
    """
    text = (error or "").lower()

    if any(marker in text for marker in UNRECOVERABLE_MARKERS):
        return ErrorKind.UNRECOVERABLE
    if any(marker in text for marker in ELEMENT_MARKERS):
        return ErrorKind.ELEMENT_NOT_FOUND
    if any(marker in text for marker in PARAMETER_MARKERS):
        return ErrorKind.PARAMETER_ERROR
    if "partial" in text or ("some" in text and "failed" in text):
        return ErrorKind.PARTIAL_SUCCESS
    return ErrorKind.UNKNOWN
