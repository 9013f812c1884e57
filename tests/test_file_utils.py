"""
Tests for filesystem helpers
"""

import os
import sys
import pytest

# Add parent directory to path to import modules
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

from utils.file_utils import (
    create_text_file_if_not_exist,
    find_up_directory_with_name,
    is_parent_path_of,
    normalize_path_for_compare,
    read_file_contents,
    to_forward_slashes,
)


class TestPathHelpers:
    def test_to_forward_slashes(self):
        assert to_forward_slashes("C:\\work\\demo") == "C:/work/demo"

    def test_normalize_path_for_compare(self):
        assert normalize_path_for_compare("C:\\Work\\Demo\\") == "c:/work/demo"

    @pytest.mark.parametrize(
        "parent, child, expected",
        [
            ("/work/demo", "/work/demo", True),
            ("/work/demo", "/work/demo/src", True),
            ("C:\\Work", "c:/work/demo", True),
            ("/work/demo", "/work/demo-two", False),
            ("/work/demo/src", "/work/demo", False),
        ],
    )
    def test_is_parent_path_of(self, parent, child, expected):
        assert is_parent_path_of(parent, child) is expected


class TestFindUpDirectory:
    def test_finds_folder_in_start_dir(self, temp_directory):
        (temp_directory / "proj" / ".prodash").mkdir(parents=True)

        found = find_up_directory_with_name(str(temp_directory / "proj"), ".prodash")

        assert found == str(temp_directory / "proj" / ".prodash")

    def test_finds_folder_in_ancestor(self, temp_directory):
        (temp_directory / "proj" / ".git").mkdir(parents=True)
        (temp_directory / "proj" / "a" / "b").mkdir(parents=True)

        found = find_up_directory_with_name(str(temp_directory / "proj" / "a" / "b"), ".git")

        assert found == str(temp_directory / "proj" / ".git")

    def test_ignores_files_with_the_name(self, temp_directory):
        (temp_directory / "proj").mkdir()
        (temp_directory / "proj" / "prodash-marker-file").write_text("x")

        found = find_up_directory_with_name(
            str(temp_directory / "proj"), "prodash-marker-file"
        )

        assert found is None


class TestFileContents:
    def test_create_text_file_if_not_exist(self, temp_directory):
        path = temp_directory / "a.txt"

        assert create_text_file_if_not_exist(str(path), "first") is True
        assert create_text_file_if_not_exist(str(path), "second") is False
        assert path.read_text(encoding="utf-8") == "first"

    def test_read_file_contents(self, mock_file_system):
        path = mock_file_system.create_file("notes.md", "\n  hello  \n")

        assert read_file_contents(str(path)) == "hello"
        assert read_file_contents(None) == ""
        assert read_file_contents(str(path) + ".missing") == ""
