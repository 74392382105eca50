from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from utils.logger import get_logger
from ...models.tool_params import parse_tool_params
from ..tool_registry import ToolExecutionContext, ToolParameter, ToolResult, ToolSpec
from .file_utils import format_file_size, validate_directory_path, workspace_relative_path

_logger = get_logger(__name__)

MAX_ENTRIES = 1000


def _tool_list_directory(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    """List a directory, directories first, optionally with size and mtime."""
    p = parse_tool_params("list_directory", params)

    is_valid, error_msg, resolved_path = validate_directory_path(
        p.directory_path,
        workspace_root=ctx.workspace_path,
    )
    if not is_valid:
        raise ValueError(f"Cannot list directory: {error_msg}")

    entries: List[Dict[str, Any]] = []
    truncated = False
    for entry in sorted(resolved_path.iterdir(), key=lambda x: (not x.is_dir(), x.name.lower())):
        if len(entries) >= MAX_ENTRIES:
            truncated = True
            break

        item: Dict[str, Any] = {
            "name": entry.name,
            "type": "directory" if entry.is_dir() else "file",
        }
        if p.include_details:
            try:
                stat_info = entry.stat()
            except OSError as e:
                _logger.debug(f"Error reading {entry}: {e}")
            else:
                item["size"] = "-" if entry.is_dir() else format_file_size(stat_info.st_size)
                item["modified"] = datetime.fromtimestamp(stat_info.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
        entries.append(item)

    return ToolResult(
        success=True,
        result={
            "directoryPath": workspace_relative_path(resolved_path, ctx.workspace_path),
            "entries": entries,
            "truncated": truncated,
        },
        message=f"Found {len(entries)} entries in {p.directory_path}",
    )


list_directory_spec = ToolSpec(
    name="list_directory",
    description="List files and directories in a given path",
    category="filesystem",
    fn=_tool_list_directory,
    parameters=[
        ToolParameter("directoryPath", "string",
                      "Path to the directory to list (relative to the workspace root, defaults to it)",
                      required=False),
        ToolParameter("includeDetails", "boolean", "Whether to include file size and modification time",
                      required=False),
    ],
)
