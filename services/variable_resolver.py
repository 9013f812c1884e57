"""
Substitution of {{NAME}} placeholders in script command lines
"""

import re
from typing import Callable, Dict, Optional

from models.project import Project
from services.logging_service import LoggingService
from utils.file_utils import to_forward_slashes
from utils.script_errors import UnresolvedVariableWarning

VARIABLE_PATTERN = re.compile(r"\{\{([A-Z_]+)\}\}")


class VariableResolver:
    """
    Maps the fixed set of placeholder names to project-derived paths.

    Known names with no value on the project resolve to an empty string.
    Unknown names are logged and left in the line as written.
    """

    def __init__(
        self,
        global_config_dir: Callable[[], Optional[str]],
        logging_service: Optional[LoggingService] = None,
    ):
        self.global_config_dir = global_config_dir
        self.logging = logging_service or LoggingService()

    def _sources(self, project: Project) -> Dict[str, Callable[[], Optional[str]]]:
        return {
            "PROJECT_PATH": lambda: project.path,
            "PRODASH_PATH": lambda: project.prodash_directory,
            "GLOBALCONFIG_PATH": self.global_config_dir,
            "DESCRIPTION_FILE": lambda: project.description_file,
            "LONGDESCRIPTION_FILE": lambda: project.long_description_file,
            "FULLDESCRIPTION_FILE": lambda: project.full_description_file,
        }

    def resolve(self, name: str, project: Project) -> str:
        source = self._sources(project).get(name)
        if source is None:
            warning = UnresolvedVariableWarning(f"{{{{{name}}}}}")
            self.logging.warning(str(warning))
            return warning.token

        value = source()
        return to_forward_slashes(value) if value else ""

    def substitute(self, line: str, project: Project) -> str:
        """Replace every placeholder in the line in one left-to-right pass"""
        return VARIABLE_PATTERN.sub(lambda m: self.resolve(m.group(1), project), line)
