"""
Platform-specific shell selection for the terminal runners
"""

import platform
from typing import Any, Dict, List, Optional

from config.config import TerminalConfig, get_config
from models.project import TerminalKind
from utils.async_base import ValidationError


class PlatformService:
    """Service for picking the shell invocation of each terminal kind"""

    def __init__(self, terminal_config: Optional[TerminalConfig] = None):
        self.terminal_config = terminal_config or get_config().terminal

    @staticmethod
    def get_platform() -> str:
        """Get the current platform (windows, linux, darwin)"""
        return platform.system().lower()

    @staticmethod
    def is_windows() -> bool:
        """Check if running on Windows"""
        return PlatformService.get_platform() == "windows"

    def get_shell_spec(self, kind: Optional[str]) -> Dict[str, Any]:
        """
        Shell definition for a terminal kind on this platform.
        Unknown platforms fall back to the linux definition.
        """
        kind = TerminalKind.normalize(kind)
        shells = self.terminal_config.shells
        if kind not in shells:
            raise ValidationError(f"Unknown terminal kind: {kind}", "terminal")

        by_platform = shells[kind]
        current_platform = self.get_platform()
        if current_platform not in by_platform:
            current_platform = "linux"  # Default fallback
        return by_platform[current_platform]

    def get_shell_family(self, kind: Optional[str]) -> str:
        return self.get_shell_spec(kind)["family"]

    def build_session_argv(self, kind: Optional[str]) -> List[str]:
        """Command line that starts a long-lived shell reading stdin"""
        return list(self.get_shell_spec(kind)["session"])

    def build_oneshot_command(self, kind: Optional[str], command: str) -> List[str]:
        """Command line that runs a single command and exits"""
        return [
            part.format(command=command) if "{command}" in part else part
            for part in self.get_shell_spec(kind)["oneshot"]
        ]

    def completion_marker(self, kind: Optional[str], token: str) -> str:
        """Shell line that echoes the exit status of the previous command"""
        template = self.terminal_config.completion_markers[self.get_shell_family(kind)]
        return template.format(marker=self.terminal_config.marker_prefix, token=token)

    def line_ending(self, kind: Optional[str]) -> str:
        return self.terminal_config.line_endings.get(self.get_shell_family(kind), "\n")
