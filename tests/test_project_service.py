"""
Tests for ProjectService - registry loading, activation and project initialization
"""

import json
import os
import sys
from unittest.mock import Mock
import pytest

# Add parent directory to path to import modules
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

from services.logging_service import LoggingService
from services.project_service import ProjectService


class TestProjectService:
    """Test cases for ProjectService"""

    @pytest.fixture(autouse=True)
    def setup_service(self, test_config, mock_file_system, temp_directory):
        self.config = test_config
        self.fs = mock_file_system
        self.root = temp_directory
        self.logging = Mock(spec=LoggingService)

    def write_registry(self, data):
        path = self.config.dashboard.projects_file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")

    def make_service(self, *roots):
        return ProjectService(
            self.config, logging_service=self.logging, workspace_roots=[str(r) for r in roots]
        )

    def test_global_configuration_path(self):
        service = self.make_service()
        assert service.global_configuration_path == self.config.dashboard.home_dir

    def test_no_registry(self):
        service = self.make_service()
        assert service.load_and_resolve_projects() == []
        assert service.current_project is None

    def test_flat_registry(self):
        a = self.fs.create_project("a")
        b = self.fs.create_project("b")
        self.write_registry(
            [{"name": "A", "path": str(a)}, {"name": "B", "path": str(b), "group": "Two"}]
        )

        projects = self.make_service().load_and_resolve_projects()

        assert [(p.name, p.group) for p in projects] == [("A", "Uncategorized"), ("B", "Two")]
        assert not any(p.is_active for p in projects)

    def test_grouped_registry_skips_underscore_names(self):
        a = self.fs.create_project("a")
        self.write_registry(
            {
                "Web": [{"name": "A", "path": str(a)}, {"name": "_Old", "path": str(a)}],
                "_Archive": [{"name": "Z", "path": str(a)}],
            }
        )

        projects = self.make_service().load_and_resolve_projects()

        assert [(p.name, p.group) for p in projects] == [("A", "Web")]

    def test_invalid_registry_entry_is_skipped(self):
        a = self.fs.create_project("a")
        self.write_registry([{"name": "NoPath"}, {"name": "A", "path": str(a)}])

        projects = self.make_service().load_and_resolve_projects()

        assert [p.name for p in projects] == ["A"]
        self.logging.warning.assert_called()

    def test_derived_paths(self):
        a = self.fs.create_project("a", scripts=[], with_git=True)
        self.write_registry([{"name": "A", "path": str(a)}])

        project = self.make_service().load_and_resolve_projects()[0]

        assert project.prodash_directory == str(a / ".prodash")
        assert project.git_directory == str(a / ".git")
        assert project.script_config_path == str(a / ".prodash" / "scripts.jsonc")
        assert project.description_file == str(a / ".prodash" / "description.md")
        assert project.long_description_file == str(a / ".prodash" / "long-description.md")
        assert project.full_description_file == str(a / ".prodash" / "full-description.md")

    def test_inactive_project_without_dashboard_folder_is_left_alone(self):
        a = self.fs.create_project("a")
        self.write_registry([{"name": "A", "path": str(a)}])

        project = self.make_service().load_and_resolve_projects()[0]

        assert project.prodash_directory is None
        assert project.script_config_path is None
        assert not (a / ".prodash").exists()

    def test_workspace_inside_project_activates_it(self):
        a = self.fs.create_project("a", scripts=[])
        (a / "src").mkdir()
        self.write_registry([{"name": "A", "path": str(a)}])
        service = self.make_service(a / "src")

        projects = service.load_and_resolve_projects()

        assert projects[0].is_active
        assert service.current_project.name == "A"
        self.logging.warning.assert_not_called()

    def test_first_active_project_is_current_and_warning_issued(self):
        outer = self.fs.create_project("outer", scripts=[])
        inner = self.fs.create_project("outer/inner", scripts=[])
        self.write_registry(
            [{"name": "Outer", "path": str(outer)}, {"name": "Inner", "path": str(inner)}]
        )
        service = self.make_service(inner)

        projects = service.load_and_resolve_projects()

        assert all(p.is_active for p in projects)
        assert service.current_project.name == "Outer"
        warning = self.logging.warning.call_args[0][0]
        assert "Multiple active ProDash projects" in warning
        assert "'Outer'" in warning

    def test_unregistered_workspace_becomes_temporary_project(self):
        loose = self.fs.create_project("loose")
        service = self.make_service(loose)

        projects = service.load_and_resolve_projects()

        assert len(projects) == 1
        project = projects[0]
        assert project.name == "loose"
        assert project.group == "Uncategorized"
        assert project.description == "(Unregistered workspace)"
        assert project.is_active
        assert service.current_project is project

    def test_active_project_gets_dashboard_folder_from_fallback_template(self):
        loose = self.fs.create_project("loose")
        service = self.make_service(loose)

        project = service.load_and_resolve_projects()[0]

        scripts_file = loose / ".prodash" / "scripts.jsonc"
        assert project.prodash_directory == str(loose / ".prodash")
        assert project.script_config_path == str(scripts_file)
        data = json.loads(scripts_file.read_text(encoding="utf-8"))
        assert data["Sample Group"][0]["name"] == "Sample Script"
        assert any(
            "Global scripts template not found" in call.args[0]
            for call in self.logging.warning.call_args_list
        )

    def test_active_project_gets_dashboard_folder_from_global_template(self):
        template = self.config.dashboard.templates_dir / "scripts.jsonc"
        template.parent.mkdir(parents=True, exist_ok=True)
        template.write_text('{"Mine": [{"name": "Custom", "script": "echo"}]}', encoding="utf-8")
        loose = self.fs.create_project("loose")

        self.make_service(loose).load_and_resolve_projects()

        data = json.loads((loose / ".prodash" / "scripts.jsonc").read_text(encoding="utf-8"))
        assert data == {"Mine": [{"name": "Custom", "script": "echo"}]}

    def test_existing_scripts_file_is_kept(self):
        loose = self.fs.create_project("loose", scripts=[{"name": "Mine", "script": "echo"}])

        self.make_service(loose).load_and_resolve_projects()

        data = json.loads((loose / ".prodash" / "scripts.jsonc").read_text(encoding="utf-8"))
        assert data == [{"name": "Mine", "script": "echo"}]

    def test_git_exclude_updated_once(self):
        loose = self.fs.create_project("loose", scripts=[], with_git=True)
        exclude = loose / ".git" / "info" / "exclude"
        exclude.write_text("*.log", encoding="utf-8")
        service = self.make_service(loose)

        service.load_and_resolve_projects()
        service.refresh()

        assert exclude.read_text(encoding="utf-8") == "*.log\n.prodash/*.*\n"

    def test_git_exclude_created_when_missing(self):
        loose = self.fs.create_project("loose", scripts=[])
        (loose / ".git").mkdir()

        self.make_service(loose).load_and_resolve_projects()

        assert (loose / ".git" / "info" / "exclude").read_text(encoding="utf-8") == ".prodash/*.*\n"

    def test_activation_callbacks(self):
        a = self.fs.create_project("a", scripts=[])
        b = self.fs.create_project("b", scripts=[])
        self.write_registry([{"name": "A", "path": str(a)}, {"name": "B", "path": str(b)}])
        service = self.make_service(a)
        activated = []
        service.add_activation_callback(lambda p: activated.append(p.name))

        service.load_and_resolve_projects()

        assert activated == ["A"]

    def test_failing_activation_callback_is_logged(self):
        a = self.fs.create_project("a", scripts=[])
        service = self.make_service(a)
        callback = Mock(side_effect=RuntimeError("boom"))
        service.add_activation_callback(callback)

        service.load_and_resolve_projects()

        callback.assert_called_once()
        self.logging.error.assert_called_once()

    def test_remove_activation_callback(self):
        a = self.fs.create_project("a", scripts=[])
        service = self.make_service(a)
        callback = Mock()
        service.add_activation_callback(callback)
        service.remove_activation_callback(callback)

        service.load_and_resolve_projects()

        callback.assert_not_called()

    def test_find_project(self):
        a = self.fs.create_project("a")
        self.write_registry([{"name": "A", "path": str(a)}])
        service = self.make_service()
        service.load_and_resolve_projects()

        assert service.find_project("A").path == str(a)
        assert service.find_project("Z") is None

    def test_refresh_picks_up_registry_changes(self):
        a = self.fs.create_project("a")
        service = self.make_service()
        assert service.refresh() == []

        self.write_registry([{"name": "A", "path": str(a)}])

        assert [p.name for p in service.refresh()] == ["A"]
