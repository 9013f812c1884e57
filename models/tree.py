"""
Tree nodes shown by the dashboard: groups, projects and scripts
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from models.project import Project, Script

GROUP_NODE = "group"
PROJECT_NODE = "project"
SCRIPT_NODE = "script"


@dataclass
class ScriptNode:
    script: Script
    project: Project
    tooltip: str
    kind: str = SCRIPT_NODE

    @property
    def label(self) -> str:
        return self.script.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "label": self.label,
            "tooltip": self.tooltip,
            "project": self.project.name,
            "terminal": self.script.terminal_kind,
        }


@dataclass
class GroupNode:
    """A project group (root level) or a script group (inside a project)"""

    label: str
    expanded: bool = False
    project: Optional[Project] = None
    children: List[Union["ProjectNode", ScriptNode]] = field(default_factory=list)
    kind: str = GROUP_NODE

    @property
    def is_script_group(self) -> bool:
        return self.project is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "label": self.label,
            "expanded": self.expanded,
            "scriptGroup": self.is_script_group,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class ProjectNode:
    project: Project
    description: str = ""
    tooltip: str = ""
    children: List[GroupNode] = field(default_factory=list)
    kind: str = PROJECT_NODE

    @property
    def label(self) -> str:
        return self.project.display_name

    @property
    def expanded(self) -> bool:
        return self.project.is_active

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "label": self.label,
            "path": self.project.path,
            "active": self.project.is_active,
            "expanded": self.expanded,
            "description": self.description,
            "tooltip": self.tooltip,
            "children": [child.to_dict() for child in self.children],
        }


TreeNode = Union[GroupNode, ProjectNode, ScriptNode]
