"""
Service for loading the scripts declared by each project
"""

from typing import Any, Dict, List, Optional

from config.config import get_config
from models.project import Project, Script
from services.configuration_service import ConfigurationService
from services.logging_service import LoggingService


class ScriptService:
    """Script registry: every script of a project, hidden ones included"""

    def __init__(
        self,
        configuration_service: Optional[ConfigurationService] = None,
        logging_service: Optional[LoggingService] = None,
        default_group: Optional[str] = None,
    ):
        self.logging = logging_service or LoggingService()
        self.configuration_service = configuration_service or ConfigurationService(
            self.logging
        )
        self.default_group = default_group or get_config().dashboard.default_group

    def get_all_scripts(self, project: Project) -> List[Script]:
        """
        Load every script of the project from its scripts file.

        The file holds either a flat list of scripts or an object mapping
        group names to lists. Scripts without a group land in the default
        group. Filtering hidden scripts is left to the consumer.
        """
        data = self.configuration_service.load_configuration(project.script_config_path)
        if not data:
            return []

        scripts = [
            script
            for script in self._parse_scripts(data, project)
            if script is not None
        ]
        for script in scripts:
            script.group = script.group or self.default_group
        return scripts

    def get_visible_scripts(self, project: Project) -> List[Script]:
        return [script for script in self.get_all_scripts(project) if script.is_visible]

    def get_activation_scripts(self, project: Project) -> List[Script]:
        return [s for s in self.get_all_scripts(project) if s.runs_on_activate]

    def find_script(self, project: Project, name: str) -> Optional[Script]:
        return next(
            (script for script in self.get_all_scripts(project) if script.name == name),
            None,
        )

    def _parse_scripts(self, data: Any, project: Project) -> List[Optional[Script]]:
        if isinstance(data, list):
            return [self._parse_entry(entry, None, project) for entry in data]

        if isinstance(data, dict):
            return [
                self._parse_entry(entry, group_name, project)
                for group_name, entries in data.items()
                for entry in (entries or [])
            ]

        self.logging.warning(
            f"Ignoring scripts file of project '{project.name}': expected a list or an object"
        )
        return []

    def _parse_entry(
        self, entry: Dict[str, Any], group: Optional[str], project: Project
    ) -> Optional[Script]:
        try:
            return Script.from_dict(entry, group=group)
        except (TypeError, ValueError) as e:
            self.logging.warning(f"Skipping script in project '{project.name}': {e}")
            return None
