"""
Unified Configuration Management System
Centralizes all dashboard settings with validation, type checking, and environment support
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from enum import Enum


class Environment(Enum):
    """Application environments"""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""

    pass


@dataclass
class DashboardConfig:
    """Registry locations and file naming"""

    # Global configuration home (holds the project registry and templates)
    home_dir: str = field(
        default_factory=lambda: os.path.join(os.path.expanduser("~"), ".prodash")
    )

    # Per-project metadata folder
    folder_name: str = ".prodash"

    # File names
    projects_file_name: str = "projects.jsonc"
    scripts_file_name: str = "scripts.jsonc"
    description_file_name: str = "description.md"
    long_description_file_name: str = "long-description.md"
    full_description_file_name: str = "full-description.md"
    templates_folder_name: str = "template"

    default_group: str = "Uncategorized"
    unregistered_description: str = "(Unregistered workspace)"

    # Pattern appended to .git/info/exclude for active projects
    git_exclude_pattern: str = ".prodash/*.*"

    @property
    def projects_file(self) -> Path:
        return Path(self.home_dir) / self.projects_file_name

    @property
    def templates_dir(self) -> Path:
        return Path(self.home_dir) / self.templates_folder_name


@dataclass
class TerminalConfig:
    """Command-execution targets, one per terminal kind"""

    # Display names of the reusable runners
    runner_names: Dict[str, str] = field(
        default_factory=lambda: {
            "default": "ProDash Runner",
            "batch": "ProDash Runner (Batch)",
            "powershell": "ProDash Runner (PowerShell)",
        }
    )

    # Shell invocations by terminal kind and platform.
    # "session" starts a long-lived shell reading commands from stdin,
    # "oneshot" runs a single command and exits.
    shells: Dict[str, Dict[str, Dict[str, Any]]] = field(
        default_factory=lambda: {
            "default": {
                "windows": {
                    "family": "cmd",
                    "session": ["cmd.exe", "/Q", "/K"],
                    "oneshot": ["cmd.exe", "/c", "{command}"],
                },
                "linux": {
                    "family": "posix",
                    "session": ["bash", "--noprofile", "--norc"],
                    "oneshot": ["bash", "-c", "{command}"],
                },
                "darwin": {
                    "family": "posix",
                    "session": ["bash", "--noprofile", "--norc"],
                    "oneshot": ["bash", "-c", "{command}"],
                },
            },
            "batch": {
                "windows": {
                    "family": "cmd",
                    "session": ["cmd.exe", "/Q", "/K"],
                    "oneshot": ["cmd.exe", "/c", "{command}"],
                },
                "linux": {
                    "family": "posix",
                    "session": ["sh"],
                    "oneshot": ["sh", "-c", "{command}"],
                },
                "darwin": {
                    "family": "posix",
                    "session": ["sh"],
                    "oneshot": ["sh", "-c", "{command}"],
                },
            },
            "powershell": {
                "windows": {
                    "family": "powershell",
                    "session": [
                        "powershell.exe",
                        "-NoLogo",
                        "-NoProfile",
                        "-Command",
                        "-",
                    ],
                    "oneshot": [
                        "powershell.exe",
                        "-NoProfile",
                        "-Command",
                        "{command}",
                    ],
                },
                "linux": {
                    "family": "powershell",
                    "session": ["pwsh", "-NoLogo", "-NoProfile", "-Command", "-"],
                    "oneshot": ["pwsh", "-NoProfile", "-Command", "{command}"],
                },
                "darwin": {
                    "family": "powershell",
                    "session": ["pwsh", "-NoLogo", "-NoProfile", "-Command", "-"],
                    "oneshot": ["pwsh", "-NoProfile", "-Command", "{command}"],
                },
            },
        }
    )

    # Line echoed by a session shell after each command; {token} identifies the command
    marker_prefix: str = "__PRODASH_DONE__"
    completion_markers: Dict[str, str] = field(
        default_factory=lambda: {
            "posix": 'echo "{marker} {token} $?"',
            "cmd": "echo {marker} {token} %ERRORLEVEL%",
            "powershell": (
                'Write-Output "{marker} {token} '
                '$(if ($?) {{ 0 }} elseif ($LASTEXITCODE) {{ $LASTEXITCODE }} else {{ 1 }})"'
            ),
        }
    )
    line_endings: Dict[str, str] = field(
        default_factory=lambda: {"posix": "\n", "cmd": "\r\n", "powershell": "\n"}
    )

    # Seconds to wait for a new target to confirm it reports completions
    readiness_timeout: float = 3.0

    # "persistent" (one shell session per kind) or "oneshot" (process per command)
    target_mode: str = "persistent"

    # Characters of terminal output kept per runner
    output_buffer_size: int = 50000


@dataclass
class WebConfig:
    """Web dashboard configuration"""

    host: str = "127.0.0.1"
    port: int = 5000
    secret_key: str = field(
        default_factory=lambda: os.environ.get(
            "SECRET_KEY", "dev-secret-key-change-in-production"
        )
    )


@dataclass
class TemplateConfig:
    """Templates written to the global template folder"""

    projects_template: List[Dict[str, Any]] = field(
        default_factory=lambda: [
            {
                "name": "My Project",
                "path": os.path.join(os.path.expanduser("~"), "projects", "my-project"),
                "description": "A sample project entry",
                "group": "Sample",
            }
        ]
    )

    scripts_template: Dict[str, List[Dict[str, Any]]] = field(
        default_factory=lambda: {
            "Sample": [
                {
                    "name": "Hello",
                    "description": "Hello World",
                    "script": ["echo 'Hello World!'"],
                },
                {
                    "name": "Show Paths",
                    "description": "Print the dashboard paths of this project",
                    "script": [
                        "echo {{PROJECT_PATH}}",
                        "echo {{PRODASH_PATH}}",
                    ],
                },
            ]
        }
    )

    # Used when the global scripts template is missing
    fallback_scripts_template: Dict[str, List[Dict[str, Any]]] = field(
        default_factory=lambda: {
            "Sample Group": [
                {
                    "name": "Sample Script",
                    "script": "echo 'Hello from ProDash!'",
                    "description": "A sample script to get you started.",
                }
            ]
        }
    )


@dataclass
class UnifiedConfig:
    """Main configuration container"""

    # Sub-configurations
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    web: WebConfig = field(default_factory=WebConfig)
    templates: TemplateConfig = field(default_factory=TemplateConfig)

    # Environment settings
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: str = "INFO"

    # Application metadata
    version: str = "1.0.0"
    config_version: str = "1.0"


class ConfigManager:
    """Manages configuration loading, validation, and access"""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path(__file__).parent
        self.config: Optional[UnifiedConfig] = None
        self.logger = logging.getLogger("ConfigManager")

        # Load configuration
        self._load_config()

    def _load_config(self):
        """Load configuration from files and environment"""
        self.config = UnifiedConfig()
        self._apply_user_overrides()
        self._apply_environment_overrides()
        self._validate_config()

    def _apply_user_overrides(self):
        """Apply user settings from user_settings.json"""
        user_settings_file = self.config_dir / "user_settings.json"

        if not user_settings_file.exists():
            return

        try:
            with open(user_settings_file, "r", encoding="utf-8") as f:
                user_settings = json.load(f)

            self._apply_settings_dict(user_settings)
            self.logger.info("Applied user settings overrides")

        except (json.JSONDecodeError, FileNotFoundError) as e:
            self.logger.warning(f"Could not load user settings: {e}")

    def _apply_environment_overrides(self):
        """Apply environment-specific overrides"""
        env_name = os.getenv("PRODASH_ENV", "development").lower()
        try:
            self.config.environment = Environment(env_name)
        except ValueError:
            self.logger.warning(f"Unknown environment '{env_name}', using development")
            self.config.environment = Environment.DEVELOPMENT

        if os.getenv("DEBUG") is not None:
            self.config.debug = os.getenv("DEBUG").lower() in ("true", "1", "yes", "on")

        if os.getenv("LOG_LEVEL"):
            self.config.log_level = os.getenv("LOG_LEVEL").upper()

        if os.getenv("PRODASH_HOME"):
            self.config.dashboard.home_dir = os.getenv("PRODASH_HOME")

        if os.getenv("PRODASH_WEB_PORT"):
            try:
                self.config.web.port = int(os.getenv("PRODASH_WEB_PORT"))
            except ValueError:
                self.logger.warning(
                    f"Ignoring non-numeric PRODASH_WEB_PORT: {os.getenv('PRODASH_WEB_PORT')}"
                )

    def _apply_settings_dict(self, settings: Dict[str, Any]):
        """Apply settings from a dictionary using dot notation"""
        for key, value in settings.items():
            self._set_nested_value(self.config, key, value)

    def _set_nested_value(self, obj: Any, key_path: str, value: Any):
        """Set a nested value using dot notation (e.g., 'terminal.readiness_timeout')"""
        keys = key_path.split(".")
        current = obj

        # Navigate to the parent object
        for index, key in enumerate(keys[:-1]):
            if isinstance(current, dict) and key in current:
                current = current[key]
            elif not isinstance(current, dict) and hasattr(current, key):
                current = getattr(current, key)
            else:
                self.logger.warning(f"Unknown config path: {'.'.join(keys[:index + 1])}")
                return

        final_key = keys[-1]

        if isinstance(current, dict):
            if final_key not in current:
                self.logger.warning(f"Unknown config key: {key_path}")
            elif isinstance(current[final_key], dict) and isinstance(value, dict):
                current[final_key].update(value)
            else:
                current[final_key] = value
        elif hasattr(current, final_key):
            existing = getattr(current, final_key)
            if isinstance(existing, dict) and isinstance(value, dict):
                existing.update(value)
            elif isinstance(existing, Enum):
                setattr(current, final_key, type(existing)(value))
            else:
                setattr(current, final_key, value)
        else:
            self.logger.warning(f"Unknown config key: {key_path}")

    def _validate_config(self):
        """Validate the loaded configuration"""
        terminal = self.config.terminal

        if terminal.readiness_timeout <= 0:
            raise ConfigValidationError("Terminal readiness timeout must be positive")

        if terminal.target_mode not in ("persistent", "oneshot"):
            raise ConfigValidationError(
                f"Unknown terminal target mode: {terminal.target_mode}"
            )

        if "default" not in terminal.shells:
            raise ConfigValidationError("A shell for the 'default' terminal is required")

        for kind, platforms in terminal.shells.items():
            for platform_name, shell in platforms.items():
                if shell.get("family") not in terminal.completion_markers:
                    raise ConfigValidationError(
                        f"Shell '{kind}' on {platform_name} has no completion marker "
                        f"for family '{shell.get('family')}'"
                    )

        if not (0 < self.config.web.port < 65536):
            raise ConfigValidationError(f"Invalid web port: {self.config.web.port}")

        self.logger.debug("Configuration validation completed")

    def get_config(self) -> UnifiedConfig:
        """Get the current configuration"""
        if self.config is None:
            raise RuntimeError("Configuration not loaded")
        return self.config

    def reload_config(self):
        """Reload configuration from files"""
        self._load_config()

    def save_user_settings(self, settings: Dict[str, Any]):
        """Save user settings to user_settings.json"""
        user_settings_file = self.config_dir / "user_settings.json"

        try:
            with open(user_settings_file, "w", encoding="utf-8") as f:
                json.dump(settings, f, indent=2)

            self.reload_config()
            self.logger.info("User settings saved and configuration reloaded")

        except Exception as e:
            self.logger.error(f"Failed to save user settings: {e}")
            raise


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def initialize_config(config_dir: Optional[Path] = None) -> ConfigManager:
    """Initialize the global configuration manager"""
    global _config_manager
    _config_manager = ConfigManager(config_dir)
    return _config_manager


def get_config() -> UnifiedConfig:
    """Get the current configuration"""
    if _config_manager is None:
        initialize_config()
    return _config_manager.get_config()


def get_config_manager() -> ConfigManager:
    """Get the configuration manager"""
    if _config_manager is None:
        initialize_config()
    return _config_manager


def reload_config():
    """Reload configuration from files"""
    if _config_manager is not None:
        _config_manager.reload_config()


# Convenience functions for common access patterns
def get_dashboard_config() -> DashboardConfig:
    """Get dashboard configuration"""
    return get_config().dashboard


def get_terminal_config() -> TerminalConfig:
    """Get terminal configuration"""
    return get_config().terminal


def get_web_config() -> WebConfig:
    """Get web dashboard configuration"""
    return get_config().web
