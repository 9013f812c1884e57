"""
Data models for the project dashboard
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class TerminalKind(str, Enum):
    """Kinds of command-execution targets a script can require"""

    DEFAULT = "default"
    BATCH = "batch"
    POWERSHELL = "powershell"

    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        """Map an absent or empty terminal to 'default'"""
        return value or cls.DEFAULT.value


ON_ACTIVATE_EVENT = "ON_ACTIVATE"


@dataclass
class Script:
    """A named sequence of command lines owned by one project"""

    name: str
    script: Union[str, List[str]] = field(default_factory=list)
    description: Optional[str] = None
    group: Optional[str] = None
    terminal: Optional[str] = None
    hidden: bool = False
    event: Optional[str] = None

    @property
    def commands(self) -> List[str]:
        """The script body as a list of command lines"""
        if isinstance(self.script, str):
            return [self.script]
        return list(self.script)

    @property
    def terminal_kind(self) -> str:
        return TerminalKind.normalize(self.terminal)

    @property
    def is_visible(self) -> bool:
        """Whether the script is shown in the dashboard tree"""
        return not self.hidden and not self.name.startswith("_")

    @property
    def runs_on_activate(self) -> bool:
        return self.event == ON_ACTIVATE_EVENT

    @classmethod
    def from_dict(cls, data: Dict[str, Any], group: Optional[str] = None) -> "Script":
        """Build a script from a parsed scripts-file entry"""
        if "name" not in data:
            raise ValueError(f"Script entry without a name: {data!r}")

        body = data.get("script", [])
        if not isinstance(body, (str, list)):
            raise ValueError(f"Script '{data['name']}' has an invalid body: {body!r}")

        return cls(
            name=data["name"],
            script=body,
            description=data.get("description"),
            group=data.get("group", group),
            terminal=data.get("terminal") or None,
            hidden=bool(data.get("hidden", False)),
            event=data.get("event"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "group": self.group,
            "script": self.script,
            "terminal": self.terminal,
            "hidden": self.hidden,
            "event": self.event,
        }


def normalize_project_path(path: str) -> str:
    """Absolute, normalized form used as project identity"""
    return os.path.normpath(os.path.abspath(os.path.expanduser(path)))


@dataclass
class Project:
    """Represents a registered (or temporary workspace) project"""

    name: str
    path: str
    group: Optional[str] = None
    description: Optional[str] = None
    description_file: Optional[str] = None
    long_description_file: Optional[str] = None
    full_description_file: Optional[str] = None
    is_active: bool = False
    prodash_directory: Optional[str] = None
    git_directory: Optional[str] = None
    script_config_path: Optional[str] = None

    def __post_init__(self):
        self.path = normalize_project_path(self.path)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Project):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    @property
    def display_name(self) -> str:
        """Get the display name for the project"""
        return f"★★★ {self.name} ★★★" if self.is_active else self.name

    @classmethod
    def from_dict(cls, data: Dict[str, Any], group: Optional[str] = None) -> "Project":
        """Build a project from a parsed registry entry"""
        if not data.get("name") or not data.get("path"):
            raise ValueError(f"Project entry needs a name and a path: {data!r}")

        return cls(
            name=data["name"],
            path=data["path"],
            group=data.get("group", group),
            description=data.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "group": self.group,
            "description": self.description,
            "descriptionFile": self.description_file,
            "longDescriptionFile": self.long_description_file,
            "fullDescriptionFile": self.full_description_file,
            "isActive": self.is_active,
            "proDashDirectory": self.prodash_directory,
            "gitDirectory": self.git_directory,
            "scriptConfigPath": self.script_config_path,
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.path})"
