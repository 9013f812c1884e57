"""
Builds the dashboard tree: project groups, projects, script groups, scripts
"""

from typing import Dict, List, Optional

from config.config import get_config
from models.project import Project
from models.tree import GroupNode, ProjectNode, ScriptNode
from services.project_service import ProjectService
from services.script_service import ScriptService
from utils.file_utils import read_file_contents


class TreeService:
    """Turns the loaded registry into display nodes"""

    def __init__(
        self,
        project_service: ProjectService,
        script_service: ScriptService,
        default_group: Optional[str] = None,
    ):
        self.project_service = project_service
        self.script_service = script_service
        self.default_group = default_group or get_config().dashboard.default_group

    def build_tree(self) -> List[GroupNode]:
        """Project groups in registry order; a group is expanded when it holds an active project"""
        groups: Dict[str, List[Project]] = {}
        for project in self.project_service.get_projects():
            groups.setdefault(project.group or self.default_group, []).append(project)

        return [
            GroupNode(
                label=group_name,
                expanded=any(p.is_active for p in projects),
                children=[self.build_project_node(p) for p in projects],
            )
            for group_name, projects in groups.items()
        ]

    def build_project_node(self, project: Project) -> ProjectNode:
        static_description = project.description or ""
        description = read_file_contents(project.description_file) or static_description
        long_description = read_file_contents(project.long_description_file)

        if long_description:
            tooltip = long_description
        elif description:
            tooltip = f"**{project.name}**\n\n---\n\n{description}"
        else:
            tooltip = project.name

        return ProjectNode(
            project=project,
            description=description,
            tooltip=tooltip,
            children=self.build_script_groups(project),
        )

    def build_script_groups(self, project: Project) -> List[GroupNode]:
        # Hidden scripts and "_" groups never show up in the tree
        nodes: Dict[str, GroupNode] = {}
        for script in self.script_service.get_visible_scripts(project):
            group_name = script.group or self.default_group
            if group_name.startswith("_"):
                continue
            if group_name not in nodes:
                nodes[group_name] = GroupNode(
                    label=group_name, expanded=project.is_active, project=project
                )
            nodes[group_name].children.append(
                ScriptNode(
                    script=script,
                    project=project,
                    tooltip=script.description or script.name,
                )
            )
        return list(nodes.values())
