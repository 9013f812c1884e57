"""
Pytest configuration and fixtures for ProDash tests
"""

import os
import sys
import asyncio
import tempfile
import shutil
from pathlib import Path
from typing import Dict, List, Optional
import pytest

# Add parent directory to path to import modules
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)


# Configure asyncio for tests
@pytest.fixture(scope="session")
def event_loop_policy():
    """Set event loop policy for tests"""
    from services.platform_service import PlatformService

    if PlatformService.is_windows():
        # Windows requires special handling
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
    return asyncio.get_event_loop_policy()


@pytest.fixture
def temp_directory():
    """Create a temporary directory for tests"""
    temp_dir = tempfile.mkdtemp(prefix="prodash_test_")
    yield Path(temp_dir)
    # Cleanup
    if os.path.exists(temp_dir):
        shutil.rmtree(temp_dir)


@pytest.fixture
def test_config(temp_directory):
    """Configuration whose global home lives in the temp directory"""
    from config.config import UnifiedConfig

    config = UnifiedConfig()
    config.dashboard.home_dir = str(temp_directory / "home" / ".prodash")
    config.terminal.readiness_timeout = 0.5
    return config


@pytest.fixture
def sample_project(temp_directory):
    """Create a sample Project instance"""
    from models.project import Project

    return Project(
        name="sample",
        path=str(temp_directory / "sample"),
        prodash_directory=str(temp_directory / "sample" / ".prodash"),
    )


class FakeRegistry:
    """Script registry holding an in-memory script list"""

    def __init__(self, scripts=None):
        self.scripts = list(scripts or [])
        self.calls = 0

    def get_all_scripts(self, project):
        self.calls += 1
        return list(self.scripts)

    def get_activation_scripts(self, project):
        return [s for s in self.scripts if s.runs_on_activate]


class FakeTarget:
    """
    Command target that records lines and answers with scripted exit codes.
    Commands without a scripted exit code succeed.
    """

    def __init__(
        self,
        kind: str,
        exit_codes: Optional[Dict[str, Optional[int]]] = None,
        ready: bool = True,
    ):
        self.kind = kind
        self.name = f"fake-{kind}"
        self.exit_codes = exit_codes or {}
        self.ready = ready
        self.started = False
        self.terminated = False
        self.executed: List[str] = []
        self.sent: List[str] = []

    async def start(self):
        self.started = True

    async def wait_until_ready(self, timeout):
        return self.ready

    @property
    def supports_completion(self):
        return self.ready

    @property
    def is_terminated(self):
        return self.terminated

    async def send(self, line):
        self.sent.append(line)

    async def execute(self, line):
        self.executed.append(line)
        return self.exit_codes.get(line, 0)

    async def close(self):
        self.terminated = True


@pytest.fixture
def fake_registry():
    return FakeRegistry()


@pytest.fixture
def target_factory():
    """Factory creating FakeTargets and remembering every one of them"""

    class Factory:
        def __init__(self):
            self.created: List[FakeTarget] = []
            self.exit_codes: Dict[str, Optional[int]] = {}
            self.ready = True

        def __call__(self, kind):
            target = FakeTarget(kind, self.exit_codes, self.ready)
            self.created.append(target)
            return target

    return Factory()


@pytest.fixture
def reset_degradation_flag(monkeypatch):
    from services.terminal_service import TerminalService

    monkeypatch.setattr(TerminalService, "_degradation_reported", False)


@pytest.fixture
def async_task_manager():
    """Create and setup an async task manager for tests"""
    from utils.async_utils import ImprovedAsyncTaskManager

    manager = ImprovedAsyncTaskManager()
    manager.setup_event_loop()

    yield manager

    # Cleanup
    manager.shutdown(timeout=2.0)


# Test markers
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# Logging configuration for tests
@pytest.fixture(autouse=True)
def configure_logging():
    """Configure logging for tests"""
    import logging

    # Set log level for tests
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Mock file system helpers
@pytest.fixture
def mock_file_system(temp_directory):
    """Create a mock file system structure"""
    import json

    class MockFileSystem:
        def __init__(self, base_path):
            self.base_path = base_path

        def create_file(self, path, content=""):
            """Create a file with content"""
            file_path = self.base_path / path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
            return file_path

        def create_json(self, path, data):
            return self.create_file(path, json.dumps(data, indent=2))

        def create_project(self, name, scripts=None, with_git=False):
            """Create a project folder, optionally with a scripts file and .git"""
            project_path = self.base_path / name
            project_path.mkdir(parents=True, exist_ok=True)
            if scripts is not None:
                self.create_json(f"{name}/.prodash/scripts.jsonc", scripts)
            if with_git:
                (project_path / ".git" / "info").mkdir(parents=True, exist_ok=True)
            return project_path

    return MockFileSystem(temp_directory)
