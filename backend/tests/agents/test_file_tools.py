"""Unit tests for the workspace-scoped file tools and their helpers.

Covers:
- read_file: textual files only, workspace-relative paths
- write_file: creates parents, overwrites, flagged for confirmation
- list_directory: directories first, optional details
- file_utils: workspace boundary, binary detection, size formatting
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path

backend_dir = Path(__file__).resolve().parents[2]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from agents.tools.builtin import create_default_registry
from agents.tools.file_ops.file_utils import (
    format_file_size,
    is_likely_binary,
    resolve_in_workspace,
    validate_directory_path,
    validate_file_path,
)


class FileToolTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)
        self.registry = create_default_registry(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestReadFile(FileToolTestCase):

    def test_read_text_file(self):
        (self.temp_path / "notes.txt").write_text("one\ntwo", encoding="utf-8")

        result = self.registry.execute("read_file", {"filePath": "notes.txt"})

        self.assertTrue(result.success)
        self.assertEqual(result.result["content"], "one\ntwo")
        self.assertEqual(result.result["lineCount"], 2)
        self.assertEqual(result.result["filePath"], "notes.txt")

    def test_missing_file(self):
        result = self.registry.execute("read_file", {"filePath": "nope.txt"})

        self.assertFalse(result.success)
        self.assertIn("does not exist", result.error)

    def test_binary_file_refused(self):
        (self.temp_path / "image.png").write_bytes(b"\x89PNG")

        result = self.registry.execute("read_file", {"filePath": "image.png"})

        self.assertFalse(result.success)
        self.assertIn("textual files only", result.error)

    def test_path_outside_workspace_refused(self):
        result = self.registry.execute("read_file", {"filePath": "../outside.txt"})

        self.assertFalse(result.success)
        self.assertIn("outside the workspace", result.error)

    def test_missing_path_parameter(self):
        result = self.registry.execute("read_file", {"path": "notes.txt"})
        self.assertEqual(result.error, "Missing required parameter: filePath")


class TestWriteFile(FileToolTestCase):

    def test_requires_confirmation(self):
        self.assertTrue(self.registry.get("write_file").requires_confirmation)

    def test_creates_file_and_parents(self):
        result = self.registry.execute("write_file", {"filePath": "a/b/notes.txt", "content": "hello"})

        self.assertTrue(result.success)
        self.assertTrue(result.result["created"])
        self.assertEqual((self.temp_path / "a" / "b" / "notes.txt").read_text(encoding="utf-8"), "hello")

    def test_overwrites_existing(self):
        (self.temp_path / "notes.txt").write_text("old", encoding="utf-8")

        result = self.registry.execute("write_file", {"filePath": "notes.txt", "content": "new"})

        self.assertFalse(result.result["created"])
        self.assertEqual(result.message, "Overwrote notes.txt")
        self.assertEqual((self.temp_path / "notes.txt").read_text(encoding="utf-8"), "new")

    def test_directory_target_refused(self):
        (self.temp_path / "folder").mkdir()

        result = self.registry.execute("write_file", {"filePath": "folder", "content": "x"})

        self.assertFalse(result.success)
        self.assertIn("is a directory", result.error)


class TestListDirectory(FileToolTestCase):

    def test_directories_first(self):
        (self.temp_path / "b.txt").write_text("b", encoding="utf-8")
        (self.temp_path / "a.txt").write_text("a", encoding="utf-8")
        (self.temp_path / "zdir").mkdir()

        result = self.registry.execute("list_directory", {})

        names = [(e["name"], e["type"]) for e in result.result["entries"]]
        self.assertEqual(names, [("zdir", "directory"), ("a.txt", "file"), ("b.txt", "file")])
        self.assertEqual(result.result["directoryPath"], ".")

    def test_details(self):
        (self.temp_path / "a.txt").write_text("abc", encoding="utf-8")

        result = self.registry.execute("list_directory", {"includeDetails": True})

        entry = result.result["entries"][0]
        self.assertEqual(entry["size"], "3.00 B")
        self.assertIn("modified", entry)

    def test_file_is_not_a_directory(self):
        (self.temp_path / "a.txt").write_text("abc", encoding="utf-8")

        result = self.registry.execute("list_directory", {"directoryPath": "a.txt"})

        self.assertFalse(result.success)
        self.assertIn("is a file", result.error)


class TestFileUtils(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_resolve_relative_to_workspace(self):
        resolved = resolve_in_workspace(Path("sub/file.txt"), self.temp_dir)
        self.assertEqual(resolved, (self.temp_path / "sub" / "file.txt").resolve())

    def test_resolve_rejects_escape(self):
        with self.assertRaises(ValueError):
            resolve_in_workspace(Path("../../etc/passwd"), self.temp_dir)

    def test_validate_file_path_without_must_exist(self):
        is_valid, error, resolved = validate_file_path("new.txt", must_exist=False, workspace_root=self.temp_dir)

        self.assertTrue(is_valid)
        self.assertEqual(error, "")
        self.assertEqual(resolved.name, "new.txt")

    def test_validate_directory_path_missing(self):
        is_valid, error, resolved = validate_directory_path("missing", workspace_root=self.temp_dir)

        self.assertFalse(is_valid)
        self.assertIn("does not exist", error)
        self.assertIsNone(resolved)

    def test_binary_detection(self):
        text_file = self.temp_path / "a.txt"
        text_file.write_text("plain text", encoding="utf-8")
        null_file = self.temp_path / "data.dat"
        null_file.write_bytes(b"abc\x00def")

        self.assertFalse(is_likely_binary(text_file)[0])
        self.assertTrue(is_likely_binary(null_file)[0])
        self.assertIn(".zip", is_likely_binary(self.temp_path / "archive.zip")[1])

    def test_format_file_size(self):
        self.assertEqual(format_file_size(512), "512.00 B")
        self.assertEqual(format_file_size(2048), "2.00 KB")
        self.assertEqual(format_file_size(5 * 1024 * 1024), "5.00 MB")


if __name__ == "__main__":
    unittest.main()
