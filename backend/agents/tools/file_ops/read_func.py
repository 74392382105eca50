from __future__ import annotations

from typing import Any, Dict

from utils.logger import get_logger
from ...models.tool_params import parse_tool_params
from ..tool_registry import ToolExecutionContext, ToolParameter, ToolResult, ToolSpec
from .file_utils import format_file_size, is_likely_binary, validate_file_path, workspace_relative_path

_logger = get_logger(__name__)

MAX_READ_SIZE = 10 * 1024 * 1024


def _tool_read_file(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    """
    Read a textual file and return its contents.

    Binary files and files over 10 MB are refused with a ValueError.
    """
    p = parse_tool_params("read_file", params)

    is_valid, error_msg, resolved_path = validate_file_path(
        p.file_path,
        must_exist=True,
        workspace_root=ctx.workspace_path,
    )
    if not is_valid:
        raise ValueError(f"Cannot read file: {error_msg}")

    is_binary, reason = is_likely_binary(resolved_path)
    if is_binary:
        raise ValueError(f"Cannot read '{p.file_path}': {reason}. This tool is for textual files only.")

    file_size = resolved_path.stat().st_size
    if file_size > MAX_READ_SIZE:
        raise ValueError(
            f"File '{p.file_path}' is too large ({format_file_size(file_size)}). "
            f"Maximum allowed size is {format_file_size(MAX_READ_SIZE)}."
        )

    content = resolved_path.read_text(encoding=p.encoding)
    line_count = content.count('\n') + 1 if content else 0
    _logger.info(f"Successfully read file '{p.file_path}' ({format_file_size(file_size)}, {line_count} lines)")

    return ToolResult(
        success=True,
        result={
            "filePath": workspace_relative_path(resolved_path, ctx.workspace_path),
            "content": content,
            "size": file_size,
            "lineCount": line_count,
        },
        message=f"Read {format_file_size(file_size)} from {p.file_path}",
    )


read_file_spec = ToolSpec(
    name="read_file",
    description="Read the contents of a file",
    category="filesystem",
    fn=_tool_read_file,
    parameters=[
        ToolParameter("filePath", "string", "Path to the file to read (relative to the workspace root)"),
        ToolParameter("encoding", "string", "File encoding (defaults to 'utf-8')", required=False),
    ],
)
