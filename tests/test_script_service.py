"""
Tests for ScriptService and ConfigurationService - loading scripts files
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

from models.project import Project
from services.configuration_service import ConfigurationService
from services.logging_service import LoggingService
from services.script_service import ScriptService


class TestConfigurationService:
    """Test cases for ConfigurationService"""

    def setup_method(self):
        self.logging = Mock(spec=LoggingService)
        self.service = ConfigurationService(self.logging)

    def test_loads_json(self, mock_file_system):
        path = mock_file_system.create_json("data.json", {"a": [1, 2]})
        assert self.service.load_configuration(str(path)) == {"a": [1, 2]}

    def test_missing_or_empty_path(self, temp_directory):
        assert self.service.load_configuration(None) is None
        assert self.service.load_configuration("") is None
        assert self.service.load_configuration(str(temp_directory / "nope.json")) is None
        self.logging.error.assert_not_called()

    def test_blank_file(self, mock_file_system):
        path = mock_file_system.create_file("blank.json", "  \n")
        assert self.service.load_configuration(str(path)) is None

    def test_comments_and_trailing_commas(self, mock_file_system):
        path = mock_file_system.create_file(
            "projects.jsonc",
            '// registered projects\n'
            '[\n'
            '  /* main checkout */\n'
            '  {"name": "Demo", "path": "/work/demo",},\n'
            ']\n',
        )

        assert self.service.load_configuration(str(path)) == [
            {"name": "Demo", "path": "/work/demo"}
        ]
        self.logging.error.assert_not_called()

    def test_invalid_json_is_logged(self, mock_file_system):
        path = mock_file_system.create_file("broken.json", "{not json")

        assert self.service.load_configuration(str(path)) is None
        self.logging.error.assert_called_once()

    def test_save_configuration_creates_folders(self, temp_directory):
        path = temp_directory / "deep" / "er" / "out.json"
        self.service.save_configuration(str(path), {"x": 1})
        assert json.loads(path.read_text(encoding="utf-8")) == {"x": 1}


class TestScriptService:
    """Test cases for ScriptService"""

    def setup_method(self):
        self.logging = Mock(spec=LoggingService)
        self.service = ScriptService(
            ConfigurationService(self.logging), self.logging, default_group="Uncategorized"
        )

    def make_project(self, mock_file_system, scripts):
        project_path = mock_file_system.create_project("demo", scripts=scripts)
        return Project(
            name="demo",
            path=str(project_path),
            script_config_path=str(project_path / ".prodash" / "scripts.jsonc"),
        )

    def test_flat_list(self, mock_file_system):
        project = self.make_project(
            mock_file_system,
            [
                {"name": "Build", "script": ["npm run build"]},
                {"name": "Test", "script": "npm test", "group": "QA"},
            ],
        )

        scripts = self.service.get_all_scripts(project)

        assert [s.name for s in scripts] == ["Build", "Test"]
        assert [s.group for s in scripts] == ["Uncategorized", "QA"]

    def test_commented_scripts_file(self, mock_file_system):
        project = self.make_project(mock_file_system, [])
        with open(project.script_config_path, "w", encoding="utf-8") as f:
            f.write(
                "{\n"
                "  // day to day\n"
                '  "Dev": [\n'
                '    {"name": "Build", "script": ["make"]}, // compiles\n'
                "  ],\n"
                "}\n"
            )

        scripts = self.service.get_all_scripts(project)

        assert [(s.group, s.name) for s in scripts] == [("Dev", "Build")]

    def test_grouped_object(self, mock_file_system):
        project = self.make_project(
            mock_file_system,
            {
                "Run": [{"name": "Start", "script": ["npm start"]}],
                "QA": [
                    {"name": "Lint", "script": ["npm run lint"], "hidden": True},
                    {"name": "_private", "script": ["echo"]},
                ],
            },
        )

        scripts = self.service.get_all_scripts(project)

        assert [(s.group, s.name) for s in scripts] == [
            ("Run", "Start"),
            ("QA", "Lint"),
            ("QA", "_private"),
        ]

    def test_all_scripts_include_hidden_ones(self, mock_file_system):
        project = self.make_project(
            mock_file_system,
            [
                {"name": "Visible", "script": "echo"},
                {"name": "Hidden", "script": "echo", "hidden": True},
                {"name": "_underscore", "script": "echo"},
            ],
        )

        assert len(self.service.get_all_scripts(project)) == 3
        assert [s.name for s in self.service.get_visible_scripts(project)] == ["Visible"]

    def test_activation_scripts(self, mock_file_system):
        project = self.make_project(
            mock_file_system,
            [
                {"name": "Setup", "script": "echo", "event": "ON_ACTIVATE"},
                {"name": "Other", "script": "echo"},
            ],
        )
        assert [s.name for s in self.service.get_activation_scripts(project)] == ["Setup"]

    def test_find_script(self, mock_file_system):
        project = self.make_project(mock_file_system, [{"name": "Build", "script": "make"}])

        assert self.service.find_script(project, "Build").commands == ["make"]
        assert self.service.find_script(project, "Nope") is None

    def test_invalid_entries_are_skipped(self, mock_file_system):
        project = self.make_project(
            mock_file_system,
            [
                {"script": "echo nameless"},
                {"name": "Bad", "script": 5},
                {"name": "Good", "script": "echo"},
            ],
        )

        assert [s.name for s in self.service.get_all_scripts(project)] == ["Good"]
        assert self.logging.warning.call_count == 2

    def test_project_without_scripts_file(self):
        project = Project(name="bare", path="/nowhere")
        assert self.service.get_all_scripts(project) == []

    def test_unexpected_document_shape(self, mock_file_system):
        project = self.make_project(mock_file_system, "just a string")

        assert self.service.get_all_scripts(project) == []
        self.logging.warning.assert_called_once()
