# status: complete

from __future__ import annotations

from typing import Optional

from utils.logger import get_logger
from .browser_tools import register_browser_tools
from .tool_registry import ToolRegistry

_logger = get_logger(__name__)


def register_file_tools(registry: ToolRegistry, workspace_root: Optional[str] = None) -> None:
    """Register read_file, write_file and list_directory, scoped to ``workspace_root``."""
    from .file_ops.list_func import list_directory_spec
    from .file_ops.read_func import read_file_spec
    from .file_ops.write_func import write_file_spec

    if workspace_root is not None:
        registry.set_workspace_path(workspace_root)
    registry.register_many([read_file_spec, write_file_spec, list_directory_spec])
    _logger.info("File operations tools registered successfully")


def create_default_registry(workspace_root: Optional[str] = None) -> ToolRegistry:
    registry = ToolRegistry(workspace_path=workspace_root)
    register_browser_tools(registry)
    register_file_tools(registry, workspace_root)
    return registry
