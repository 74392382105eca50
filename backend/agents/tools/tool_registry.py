# status: complete

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from utils.logger import get_logger

_PARAM_TYPES = ("string", "number", "boolean", "object", "array")


@dataclass
class ToolParameter:
    """Declared parameter of a tool."""

    name: str
    type: str
    description: str
    required: bool = True
    enum: Optional[List[str]] = None

    def to_schema(self) -> Dict[str, Any]:
        prop: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            prop["enum"] = list(self.enum)
        return prop


@dataclass
class ToolExecutionContext:
    """Execution context passed to tools.

    The actuator is handed in per call; tools never look it up globally.
    """

    actuator: Any = None
    target_id: Optional[str] = None
    workspace_path: Optional[str] = None


@dataclass
class ToolResult:
    """Standardised return type for tools."""

    success: bool
    result: Any = None
    error: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        if self.message is not None:
            data["message"] = self.message
        return data

    @classmethod
    def failure(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)


@dataclass
class ToolSpec:
    """Specification and callable for a tool."""

    name: str
    description: str
    category: str
    fn: Callable[[Dict[str, Any], ToolExecutionContext], ToolResult]
    parameters: List[ToolParameter] = field(default_factory=list)
    requires_confirmation: bool = False

    def to_schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.parameters},
                "required": [p.name for p in self.parameters if p.required],
            },
        }


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "object":
        return isinstance(value, dict)
    if expected == "array":
        return isinstance(value, list)
    return True


def validate_parameters(spec: ToolSpec, params: Dict[str, Any]) -> Optional[str]:
    """Return the first validation error for ``params`` or None."""
    for param in spec.parameters:
        if param.required and param.name not in params:
            return f"Missing required parameter: {param.name}"
        if param.name not in params:
            continue

        value = params[param.name]
        if param.type in _PARAM_TYPES and not _matches_type(value, param.type):
            article = "an" if param.type[0] in "aeiou" else "a"
            return f"Parameter {param.name} must be {article} {param.type}"
        if param.enum and str(value) not in param.enum:
            return f"Parameter {param.name} must be one of: {', '.join(param.enum)}"
    return None


class ToolRegistry:
    """Registry of available tools."""

    def __init__(self, workspace_path: Optional[str] = None):
        self._tools: Dict[str, ToolSpec] = {}
        self._workspace_path = workspace_path
        self._logger = get_logger(__name__)

    def set_workspace_path(self, workspace_path: Optional[str]) -> None:
        self._workspace_path = workspace_path

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            self._logger.warning("Tool %s already registered, overwriting", spec.name)
        self._tools[spec.name] = spec
        self._logger.debug("Registered tool %s (%s)", spec.name, spec.category)

    def register_many(self, specs: List[ToolSpec]) -> None:
        for spec in specs:
            self.register(spec)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def list(self) -> List[str]:
        return sorted(self._tools.keys())

    def get_all_tools(self) -> List[ToolSpec]:
        return list(self._tools.values())

    def get_by_category(self, category: str) -> List[ToolSpec]:
        return [spec for spec in self._tools.values() if spec.category == category]

    def get_schemas(self) -> List[Dict[str, Any]]:
        return [spec.to_schema() for spec in self._tools.values()]

    def execute(self, name: str, params: Dict[str, Any], target_id: Optional[str] = None,
                actuator: Any = None) -> ToolResult:
        """
        Validate and run a tool.

        Never raises: unknown tools, invalid parameters and exceptions from
        the tool function all come back as ``ToolResult(success=False)``.
        """
        spec = self._tools.get(name)
        if spec is None:
            return ToolResult.failure(f"Unknown tool: {name}")

        params = params or {}
        validation_error = validate_parameters(spec, params)
        if validation_error:
            self._logger.info("[TOOL] %s rejected: %s", name, validation_error)
            return ToolResult.failure(validation_error)

        ctx = ToolExecutionContext(
            actuator=actuator,
            target_id=target_id,
            workspace_path=self._workspace_path,
        )

        try:
            result = spec.fn(params, ctx)
        except Exception as e:
            self._logger.warning("[TOOL] %s raised %s: %s", name, type(e).__name__, e)
            return ToolResult.failure(str(e) or type(e).__name__)

        if not isinstance(result, ToolResult):
            return ToolResult(success=True, result=result)
        return result
