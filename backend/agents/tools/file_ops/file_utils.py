from __future__ import annotations

from pathlib import Path
from typing import Optional

from utils.logger import get_logger

_logger = get_logger(__name__)

BINARY_EXTENSIONS = {
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.ico', '.tiff', '.tif',
    '.mp4', '.avi', '.mov', '.webm', '.mkv', '.mp3', '.wav', '.flac', '.ogg',
    '.zip', '.tar', '.gz', '.bz2', '.xz', '.7z', '.rar', '.iso',
    '.pdf', '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
    '.exe', '.dll', '.so', '.dylib', '.bin',
    '.db', '.sqlite', '.sqlite3', '.pyc', '.class', '.jar', '.o', '.a'
}


def resolve_in_workspace(path: Path, workspace_root: Optional[str]) -> Path:
    """
    Resolve a path, relative to the workspace root when one is set.

    Raises ValueError if the resolved path escapes the workspace boundary.
    """
    if workspace_root:
        workspace_root_path = Path(workspace_root).resolve()
        candidate = path if path.is_absolute() else workspace_root_path / path
    else:
        workspace_root_path = None
        candidate = path

    resolved = candidate.resolve()

    if workspace_root_path:
        try:
            resolved.relative_to(workspace_root_path)
        except ValueError:
            raise ValueError(f"path '{path}' resolves outside the workspace '{workspace_root_path}'")

    return resolved


def workspace_relative_path(path: Path, workspace_root: Optional[str]) -> str:
    if workspace_root:
        try:
            relative_str = path.relative_to(Path(workspace_root).resolve()).as_posix()
            return relative_str if relative_str else "."
        except ValueError:
            pass
    return path.as_posix()


def is_likely_binary(file_path: Path) -> tuple[bool, str]:
    """
    Determine if a file is likely binary.
    Returns (is_binary, reason).
    """
    ext = file_path.suffix.lower()
    if ext in BINARY_EXTENSIONS:
        return True, f"file extension '{ext}' indicates binary format"

    try:
        with open(file_path, 'rb') as f:
            chunk = f.read(8192)
    except OSError as e:
        _logger.warning(f"Error checking file type for {file_path}: {e}")
        return True, f"unable to read file for type detection: {str(e)}"

    if b'\x00' in chunk:
        return True, "file contains null bytes (binary indicator)"
    try:
        chunk.decode('utf-8')
    except UnicodeDecodeError:
        return True, "file content contains non-UTF-8 data"
    return False, "file content appears to be valid UTF-8 text"


def validate_file_path(
    file_path: str,
    must_exist: bool = True,
    workspace_root: Optional[str] = None,
) -> tuple[bool, str, Optional[Path]]:
    """
    Validate a file path.
    Returns (is_valid, error_message, resolved_path).
    """
    try:
        resolved_path = resolve_in_workspace(Path(file_path), workspace_root)
    except ValueError as e:
        return False, str(e), None

    if must_exist and not resolved_path.exists():
        return False, f"path '{file_path}' does not exist", None
    if resolved_path.exists() and not resolved_path.is_file():
        if resolved_path.is_dir():
            return False, f"path '{file_path}' is a directory, not a file. Use list_directory to inspect directories.", None
        return False, f"path '{file_path}' is not a regular file", None

    return True, "", resolved_path


def validate_directory_path(
    dir_path: str,
    workspace_root: Optional[str] = None,
) -> tuple[bool, str, Optional[Path]]:
    """
    Validate an existing directory path.
    Returns (is_valid, error_message, resolved_path).
    """
    try:
        path = resolve_in_workspace(Path(dir_path), workspace_root)
    except ValueError as e:
        return False, str(e), None

    if not path.exists():
        return False, f"directory '{dir_path}' does not exist", None
    if not path.is_dir():
        return False, f"path '{dir_path}' is a file, not a directory. Use read_file to read files.", None
    return True, "", path


def format_file_size(size_bytes: float) -> str:
    """Format file size in human-readable format."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"
