"""
Filesystem helpers shared by the registry services
"""

import logging
import re
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def to_forward_slashes(path: str) -> str:
    """Rewrite backslash separators so the path is safe in every shell"""
    return path.replace("\\", "/")


def normalize_path_for_compare(path: str) -> str:
    """Lower-case, forward-slash form without a trailing separator"""
    return re.sub(r"/+$", "", to_forward_slashes(str(path)).lower())


def is_parent_path_of(parent_path: str, child_path: str) -> bool:
    """True when parent_path is child_path or one of its ancestors"""
    parent = normalize_path_for_compare(parent_path)
    child = normalize_path_for_compare(child_path)
    return parent == child or child.startswith(parent + "/")


def find_up_directory_with_name(start_dir: str, folder_name: str) -> Optional[str]:
    """Search start_dir and its ancestors for a directory called folder_name"""
    current = Path(start_dir)
    while True:
        candidate = current / folder_name
        if candidate.is_dir():
            return str(candidate)
        if current.parent == current:
            return None
        current = current.parent


def create_folder_if_not_exist(folder_path: str):
    Path(folder_path).mkdir(parents=True, exist_ok=True)


def create_text_file_if_not_exist(file_path: str, contents: str) -> bool:
    """Write contents unless the file exists; returns True when written"""
    path = Path(file_path)
    if path.exists():
        return False
    path.write_text(contents, encoding="utf-8")
    return True


def read_file_contents(file_path: Optional[str]) -> str:
    """Trimmed file contents, or "" when the file is missing or unreadable"""
    if not file_path:
        return ""

    path = Path(file_path)
    if not path.is_file():
        return ""

    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read {file_path}: {e}")
        return ""
