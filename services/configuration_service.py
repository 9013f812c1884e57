"""
Loads parsed registry documents (projects and scripts files)
"""

import json
from pathlib import Path
from typing import Any, Callable, Optional

import json5

from services.logging_service import LoggingService


class ConfigurationService:
    """
    Reads JSON-with-comments configuration files (comments and trailing
    commas allowed); absent or broken files load as None
    """

    def __init__(
        self,
        logging_service: Optional[LoggingService] = None,
        parser: Callable[[str], Any] = json5.loads,
    ):
        self.logging = logging_service or LoggingService()
        self.parser = parser

    def load_configuration(self, file_path: Optional[str]) -> Optional[Any]:
        """
        Parse the file at file_path.

        Returns None when the path is empty, the file does not exist or is
        blank, or its contents fail to parse (the failure is logged).
        """
        if not file_path:
            return None

        path = Path(file_path)
        if not path.is_file():
            return None

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            self.logging.error(f"Failed to read configuration file '{file_path}'", e)
            return None

        if not content.strip():
            return None

        try:
            return self.parser(content)
        except ValueError as e:
            self.logging.error(f"Failed to parse configuration file '{file_path}'", e)
            return None

    def save_configuration(self, file_path: str, data: Any):
        """Write data as indented JSON, creating parent folders"""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
