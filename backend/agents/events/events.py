# status: complete

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from utils.logger import get_logger

REASONING_TYPES = ("planning", "executing", "completed", "error")


@dataclass
class ReasoningUpdate:
    type: str
    content: str
    step_number: Optional[int] = None
    tool_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "content": self.content}
        if self.step_number is not None:
            payload["stepNumber"] = self.step_number
        if self.tool_name is not None:
            payload["toolName"] = self.tool_name
        return payload


@dataclass
class ConfirmationRequest:
    id: str
    step: Dict[str, Any]


@dataclass
class GuidanceRequest:
    id: str
    step: Dict[str, Any]
    error: str
    candidates: Optional[List[Dict[str, Any]]] = None


class AgentEventPublisher:
    """Interface for publishing agent progress events."""

    def reasoning_update(self, message_id: str, update: ReasoningUpdate) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def plan_published(self, message_id: str, plan: Dict[str, Any]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def current_step(self, message_id: str, step_number: Optional[int]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def final_response(self, message_id: str, content: str, success: bool) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def confirmation_requested(self, message_id: str, request: ConfirmationRequest) -> None:  # pragma: no cover
        raise NotImplementedError

    def guidance_requested(self, message_id: str, request: GuidanceRequest) -> None:  # pragma: no cover
        raise NotImplementedError


class AgentEventEmitter(AgentEventPublisher):
    """Multiplex events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: List[Callable[[str, str, Dict[str, Any]], None]] = []
        self._logger = get_logger(__name__)

    def subscribe(self, listener: Callable[[str, str, Dict[str, Any]], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[str, str, Dict[str, Any]], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _broadcast(self, message_id: str, event_type: str, payload: Dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(message_id, event_type, payload)
            except Exception as exc:
                self._logger.error("Agent event listener error: %s", exc)

    def reasoning_update(self, message_id: str, update: ReasoningUpdate) -> None:
        self._broadcast(message_id, "reasoning_update", update.to_dict())

    def plan_published(self, message_id: str, plan: Dict[str, Any]) -> None:
        self._broadcast(message_id, "plan_published", plan)

    def current_step(self, message_id: str, step_number: Optional[int]) -> None:
        self._broadcast(message_id, "current_step", {"stepNumber": step_number})

    def final_response(self, message_id: str, content: str, success: bool) -> None:
        self._broadcast(message_id, "final_response", {"content": content, "success": success})

    def confirmation_requested(self, message_id: str, request: ConfirmationRequest) -> None:
        self._broadcast(message_id, "confirmation_requested", request.__dict__.copy())

    def guidance_requested(self, message_id: str, request: GuidanceRequest) -> None:
        self._broadcast(message_id, "guidance_requested", request.__dict__.copy())


class NullAgentEventPublisher(AgentEventPublisher):
    """Drop-in publisher that ignores all events."""

    def reasoning_update(self, message_id: str, update: ReasoningUpdate) -> None:
        pass

    def plan_published(self, message_id: str, plan: Dict[str, Any]) -> None:
        pass

    def current_step(self, message_id: str, step_number: Optional[int]) -> None:
        pass

    def final_response(self, message_id: str, content: str, success: bool) -> None:
        pass

    def confirmation_requested(self, message_id: str, request: ConfirmationRequest) -> None:
        pass

    def guidance_requested(self, message_id: str, request: GuidanceRequest) -> None:
        pass
