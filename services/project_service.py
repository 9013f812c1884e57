"""
Service for loading the project registry and resolving each project's paths
"""

import os
import shutil
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from config.config import UnifiedConfig, get_config
from models.project import Project
from services.configuration_service import ConfigurationService
from services.logging_service import LoggingService
from utils.file_utils import (
    create_folder_if_not_exist,
    find_up_directory_with_name,
    is_parent_path_of,
)


class ProjectService:
    """
    Loads the global registry, marks the projects containing a workspace
    root as active and prepares their dashboard folders.

    Projects are rebuilt from scratch on every (re)load.
    """

    def __init__(
        self,
        config: Optional[UnifiedConfig] = None,
        configuration_service: Optional[ConfigurationService] = None,
        logging_service: Optional[LoggingService] = None,
        workspace_roots: Optional[Iterable[str]] = None,
    ):
        self.config = config or get_config()
        self.dashboard = self.config.dashboard
        self.logging = logging_service or LoggingService()
        self.configuration_service = configuration_service or ConfigurationService(
            self.logging
        )
        self.workspace_roots: List[str] = [
            os.path.abspath(root) for root in (workspace_roots or [])
        ]
        self._projects: List[Project] = []
        self._current_project: Optional[Project] = None
        self._activation_callbacks: List[Callable[[Project], None]] = []

    @property
    def global_configuration_file(self) -> str:
        return str(self.dashboard.projects_file)

    @property
    def global_configuration_path(self) -> str:
        """Directory holding the global project registry"""
        return os.path.dirname(self.global_configuration_file)

    @property
    def current_project(self) -> Optional[Project]:
        """The first active project"""
        return self._current_project

    def get_projects(self) -> List[Project]:
        return list(self._projects)

    def find_project(self, name: str) -> Optional[Project]:
        return next((p for p in self._projects if p.name == name), None)

    def add_activation_callback(self, callback: Callable[[Project], None]):
        """Add a callback called for every active project after a (re)load"""
        if callback not in self._activation_callbacks:
            self._activation_callbacks.append(callback)

    def remove_activation_callback(self, callback: Callable[[Project], None]):
        if callback in self._activation_callbacks:
            self._activation_callbacks.remove(callback)

    def refresh(self) -> List[Project]:
        return self.load_and_resolve_projects()

    def load_and_resolve_projects(self) -> List[Project]:
        """Reload the registry from disk and resolve every project"""
        resolved: List[Project] = []
        covered_roots = set()
        active: List[Project] = []

        for project in self._load_projects_from_config():
            roots_inside = [
                root for root in self.workspace_roots if is_parent_path_of(project.path, root)
            ]
            covered_roots.update(roots_inside)
            project.is_active = bool(roots_inside)
            self._resolve_paths(project)
            if project.is_active:
                active.append(project)
            resolved.append(project)

        # Workspace roots outside every registered project
        for root in self.workspace_roots:
            if root in covered_roots:
                continue
            project = Project(
                name=os.path.basename(root) or root,
                path=root,
                group=self.dashboard.default_group,
                description=self.dashboard.unregistered_description,
                is_active=True,
            )
            self._resolve_paths(project)
            active.append(project)
            resolved.append(project)

        self._projects = resolved
        self._current_project = active[0] if active else None

        for project in active:
            self.initialize_project_files(project)

        if len(active) > 1:
            self.logging.warning(
                "Multiple active ProDash projects found. Commands will default to "
                f"the first project: '{self._current_project.name}'."
            )

        self.logging.info(f"Loaded {len(resolved)} projects ({len(active)} active)")
        self._notify_activation(active)
        return self.get_projects()

    def _notify_activation(self, projects: List[Project]):
        for project in projects:
            for callback in list(self._activation_callbacks):
                try:
                    callback(project)
                except Exception as e:
                    self.logging.error(
                        f"Error in activation callback for project '{project.name}'", e
                    )

    def _load_projects_from_config(self) -> List[Project]:
        data = self.configuration_service.load_configuration(self.global_configuration_file)
        if not data:
            return []

        if isinstance(data, list):
            entries = [(entry, None) for entry in data]
        elif isinstance(data, dict):
            entries = [
                (entry, group_name)
                for group_name, group_entries in data.items()
                if not group_name.startswith("_")
                for entry in (group_entries or [])
            ]
        else:
            self.logging.warning(
                f"Ignoring '{self.global_configuration_file}': expected a list or an object"
            )
            return []

        projects = []
        for entry, group_name in entries:
            try:
                project = Project.from_dict(entry, group=group_name)
            except (TypeError, ValueError) as e:
                self.logging.warning(f"Skipping registry entry: {e}")
                continue
            if project.name.startswith("_"):
                continue
            project.group = project.group or self.dashboard.default_group
            projects.append(project)
        return projects

    def _resolve_paths(self, project: Project):
        project.prodash_directory = find_up_directory_with_name(
            project.path, self.dashboard.folder_name
        )
        project.git_directory = find_up_directory_with_name(project.path, ".git")
        self._set_dashboard_files(project)

    def _set_dashboard_files(self, project: Project):
        base = project.prodash_directory
        if base is None:
            project.script_config_path = None
            project.description_file = None
            project.long_description_file = None
            project.full_description_file = None
            return

        project.script_config_path = os.path.join(base, self.dashboard.scripts_file_name)
        project.description_file = os.path.join(base, self.dashboard.description_file_name)
        project.long_description_file = os.path.join(
            base, self.dashboard.long_description_file_name
        )
        project.full_description_file = os.path.join(
            base, self.dashboard.full_description_file_name
        )

    def initialize_project_files(self, project: Project):
        """
        One-time setup of an active project: create the dashboard folder
        with a scripts file, and keep its files out of git.
        """
        if project.prodash_directory is None:
            self._create_dashboard_folder(project)

        if project.git_directory:
            self._update_git_exclude(project)

    def _create_dashboard_folder(self, project: Project):
        folder = os.path.join(project.path, self.dashboard.folder_name)
        create_folder_if_not_exist(folder)
        project.prodash_directory = folder
        self._set_dashboard_files(project)

        scripts_file = project.script_config_path
        template_file = self.dashboard.templates_dir / self.dashboard.scripts_file_name
        try:
            if template_file.is_file():
                shutil.copyfile(template_file, scripts_file)
                self.logging.info(
                    f"Initialized '{self.dashboard.scripts_file_name}' for project "
                    f"'{project.name}' from global template."
                )
            else:
                self.configuration_service.save_configuration(
                    scripts_file, self.config.templates.fallback_scripts_template
                )
                self.logging.warning(
                    "Global scripts template not found. Created a default "
                    f"'{self.dashboard.scripts_file_name}' for project '{project.name}'."
                )
        except OSError as e:
            self.logging.error(
                f"Failed to create '{self.dashboard.scripts_file_name}' for project "
                f"'{project.name}'.",
                e,
            )

    def _update_git_exclude(self, project: Project):
        exclude_path = Path(project.git_directory) / "info" / "exclude"
        pattern = self.dashboard.git_exclude_pattern
        try:
            content = exclude_path.read_text(encoding="utf-8") if exclude_path.exists() else ""
            if pattern in content:
                return
            separator = "" if content == "" or content.endswith("\n") else "\n"
            create_folder_if_not_exist(str(exclude_path.parent))
            exclude_path.write_text(f"{content}{separator}{pattern}\n", encoding="utf-8")
        except OSError as e:
            self.logging.warning(
                f"Could not update .git/info/exclude for project '{project.name}': {e}"
            )
