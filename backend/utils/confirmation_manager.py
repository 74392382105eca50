# status: complete

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PendingRequest:
    """A blocked wait for a user response, keyed by correlation id."""

    request_id: str
    kind: str
    event: threading.Event = field(default_factory=threading.Event)
    response: Optional[Dict[str, Any]] = None


class ConfirmationManager:
    """Correlates confirmation and guidance responses with blocked waiters.

    Every wait is registered before the request is published and always
    unregistered afterwards, whether it was answered, declined or timed out.
    """

    def __init__(self):
        self._pending: Dict[str, PendingRequest] = {}
        self._lock = threading.Lock()

    def register(self, request_id: str, kind: str = "confirmation") -> PendingRequest:
        """Register a waiter before the request leaves the process"""
        with self._lock:
            if request_id in self._pending:
                raise ValueError(f"Request {request_id} is already pending")
            pending = PendingRequest(request_id=request_id, kind=kind)
            self._pending[request_id] = pending
            logger.debug(f"[CONFIRM] Registered {kind} request {request_id}")
            return pending

    def wait(self, pending: PendingRequest, timeout_ms: int) -> Optional[Dict[str, Any]]:
        """Block until a response arrives or the timeout elapses.

        Returns the response payload, or None on timeout.
        """
        try:
            answered = pending.event.wait(timeout=timeout_ms / 1000.0)
            if not answered:
                logger.info(f"[CONFIRM] {pending.kind} request {pending.request_id} timed out after {timeout_ms}ms")
                return None
            return pending.response
        finally:
            self.unregister(pending.request_id)

    def resolve(self, request_id: str, response: Dict[str, Any]) -> bool:
        """Deliver a response. Returns False when nobody is waiting for the id."""
        with self._lock:
            pending = self._pending.get(request_id)
            if pending is None:
                logger.warning(f"[CONFIRM] No pending request for {request_id}, dropping response")
                return False
            pending.response = dict(response)
            pending.event.set()
            logger.info(f"[CONFIRM] Resolved {pending.kind} request {request_id}")
            return True

    def unregister(self, request_id: str) -> None:
        with self._lock:
            if self._pending.pop(request_id, None) is not None:
                logger.debug(f"[CONFIRM] Unregistered request {request_id}")

    def is_pending(self, request_id: str) -> bool:
        with self._lock:
            return request_id in self._pending

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)


confirmation_manager = ConfirmationManager()
