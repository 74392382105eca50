from __future__ import annotations

from typing import Any, Dict

from utils.logger import get_logger
from ...models.tool_params import parse_tool_params
from ..tool_registry import ToolExecutionContext, ToolParameter, ToolResult, ToolSpec
from .file_utils import format_file_size, validate_file_path, workspace_relative_path

_logger = get_logger(__name__)

MAX_CONTENT_SIZE = 50 * 1024 * 1024


def _tool_write_file(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolResult:
    """
    Write content to a file, creating it (and missing parent directories)
    or overwriting it.
    """
    p = parse_tool_params("write_file", params)

    content_size = len(p.content.encode(p.encoding))
    if content_size > MAX_CONTENT_SIZE:
        raise ValueError(
            f"Content is too large ({format_file_size(content_size)}). "
            f"Maximum allowed size is {format_file_size(MAX_CONTENT_SIZE)}."
        )

    is_valid, error_msg, resolved_path = validate_file_path(
        p.file_path,
        must_exist=False,
        workspace_root=ctx.workspace_path,
    )
    if not is_valid:
        raise ValueError(f"Cannot write file: {error_msg}")

    existed = resolved_path.exists()
    resolved_path.parent.mkdir(parents=True, exist_ok=True)
    resolved_path.write_text(p.content, encoding=p.encoding)

    action = "Overwrote" if existed else "Created"
    _logger.info(f"{action} file '{p.file_path}' ({format_file_size(content_size)})")

    return ToolResult(
        success=True,
        result={
            "filePath": workspace_relative_path(resolved_path, ctx.workspace_path),
            "size": content_size,
            "created": not existed,
        },
        message=f"{action} {p.file_path}",
    )


write_file_spec = ToolSpec(
    name="write_file",
    description="Write content to a file (creates file if it doesn't exist, overwrites if it does)",
    category="filesystem",
    fn=_tool_write_file,
    requires_confirmation=True,
    parameters=[
        ToolParameter("filePath", "string", "Path to the file to write (relative to the workspace root)"),
        ToolParameter("content", "string", "Content to write to the file"),
        ToolParameter("encoding", "string", "File encoding (defaults to 'utf-8')", required=False),
    ],
)
