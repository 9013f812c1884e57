"""
ProDash - project and script dashboard
Wires the registry, script engine, file monitor and web API together
"""

import argparse
import json
import logging
import os
import sys
from typing import Iterable, List, Optional, Sequence

from commands.script_commands import (
    ExpandScriptCommand,
    RunActivationScriptsCommand,
    RunScriptCommand,
)
from config.config import UnifiedConfig, get_config
from models.project import Project
from services.file_monitor_service import FileMonitorService
from services.logging_service import LoggingService, configure_logging
from services.project_service import ProjectService
from services.script_execution_service import ScriptExecutionService
from services.script_expander import ScriptExpander
from services.script_service import ScriptService
from services.template_service import TemplateService
from services.terminal_service import TerminalService
from services.tree_service import TreeService
from services.variable_resolver import VariableResolver
from services.web_integration_service import WebIntegration
from utils.async_utils import shutdown_all, task_manager

logger = logging.getLogger(__name__)


class ProDashboard:
    """Main dashboard application"""

    def __init__(
        self,
        workspace_roots: Optional[Iterable[str]] = None,
        config: Optional[UnifiedConfig] = None,
        run_activation: bool = False,
        watch_files: bool = False,
    ):
        self.config = config or get_config()
        self.logging = LoggingService()

        # Registry
        self.template_service = TemplateService(self.config, self.logging)
        self.project_service = ProjectService(
            self.config, logging_service=self.logging, workspace_roots=workspace_roots
        )
        self.script_service = ScriptService(
            self.project_service.configuration_service,
            self.logging,
            self.config.dashboard.default_group,
        )
        self.tree_service = TreeService(self.project_service, self.script_service)

        # Script engine
        self.resolver = VariableResolver(
            lambda: self.project_service.global_configuration_path, self.logging
        )
        self.expander = ScriptExpander(self.script_service, self.resolver, self.logging)
        self.terminal_service = TerminalService(
            self.config.terminal, logging_service=self.logging
        )
        self.execution_service = ScriptExecutionService(
            self.expander, self.terminal_service, self.script_service, self.logging
        )

        self.file_monitor = FileMonitorService() if watch_files else None
        if run_activation:
            self.project_service.add_activation_callback(self._on_project_activated)

        self.template_service.copy_templates(force=False)
        self.refresh_projects()

    def _on_project_activated(self, project: Project):
        command = RunActivationScriptsCommand(project, self.execution_service)
        task_manager.run_task(
            command.run_with_progress(), task_name=f"activate:{project.name}"
        )

    def refresh_projects(self) -> List[Project]:
        """Reload the registry and watch the files it was built from"""
        projects = self.project_service.refresh()
        if self.file_monitor is not None:
            self._watch_registry_files(projects)
        return projects

    def _watch_registry_files(self, projects: List[Project]):
        self.file_monitor.clear()
        self.file_monitor.watch(
            self.project_service.global_configuration_file, self._on_file_changed
        )
        for project in projects:
            for path in (
                project.script_config_path,
                project.description_file,
                project.long_description_file,
            ):
                self.file_monitor.watch(path, self._on_file_changed)

    def _on_file_changed(self, path: str):
        self.logging.info(f"Detected change in {path}, refreshing projects")
        self.refresh_projects()

    def find_script(self, project_name: str, script_name: str):
        project = self.project_service.find_project(project_name)
        if project is None:
            raise LookupError(f'Project "{project_name}" not found')
        script = self.script_service.find_script(project, script_name)
        if script is None:
            raise LookupError(
                f'Script "{script_name}" not found in project "{project_name}".'
            )
        return project, script

    def shutdown(self):
        if self.file_monitor is not None:
            self.file_monitor.clear()
        try:
            task_manager.run_sync(self.terminal_service.close_all(), timeout=5.0)
        except RuntimeError as e:
            logger.debug(f"Terminals not closed: {e}")
        shutdown_all()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prodash", description="Project and script dashboard."
    )
    parser.add_argument(
        "-w",
        "--workspace",
        action="append",
        help="Workspace root (repeatable, defaults to the current directory).",
    )
    parser.add_argument("--log-level", help="Override the configured log level.")
    subparsers = parser.add_subparsers(dest="command")

    listing = subparsers.add_parser("list", help="Show projects and their visible scripts.")
    listing.add_argument("--json", action="store_true", help="Emit the tree as JSON.")

    expand = subparsers.add_parser("expand", help="Print the commands a script would run.")
    expand.add_argument("project")
    expand.add_argument("script")

    run = subparsers.add_parser("run", help="Run a script of a project.")
    run.add_argument("project")
    run.add_argument("script")

    subparsers.add_parser("reset-templates", help="Overwrite the global templates.")

    serve = subparsers.add_parser("serve", help="Start the web dashboard.")
    serve.add_argument("--host", help="Bind address.")
    serve.add_argument("--port", type=int, help="Port.")
    return parser


def _print_tree(dashboard: ProDashboard):
    for group in dashboard.tree_service.build_tree():
        print(group.label)
        for project_node in group.children:
            print(f"  {project_node.label}  {project_node.description}".rstrip())
            for script_group in project_node.children:
                print(f"    [{script_group.label}]")
                for script_node in script_group.children:
                    print(f"      {script_node.label}")


def _serve(dashboard: ProDashboard, host: Optional[str], port: Optional[int]) -> int:
    web_config = dashboard.config.web
    web = WebIntegration(dashboard)
    web.setup_flask_app(web_config.secret_key)
    print(f"Serving ProDash on http://{host or web_config.host}:{port or web_config.port}")
    web.app.run(
        host=host or web_config.host,
        port=port or web_config.port,
        debug=dashboard.config.debug,
        use_reloader=False,
    )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    config = get_config()
    configure_logging(args.log_level or config.log_level)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "reset-templates":
        written = TemplateService(config).copy_templates(force=True)
        print(f"Reset {sum(written.values())} templates in {config.dashboard.templates_dir}")
        return 0

    serving = args.command == "serve"
    dashboard = ProDashboard(
        workspace_roots=args.workspace or [os.getcwd()],
        config=config,
        run_activation=serving,
        watch_files=serving,
    )

    try:
        if args.command == "list":
            if args.json:
                tree = [node.to_dict() for node in dashboard.tree_service.build_tree()]
                print(json.dumps(tree, indent=2, ensure_ascii=False))
            else:
                _print_tree(dashboard)
            return 0

        if serving:
            return _serve(dashboard, args.host, args.port)

        try:
            project, script = dashboard.find_script(args.project, args.script)
        except LookupError as e:
            print(e, file=sys.stderr)
            return 2

        if args.command == "expand":
            command = ExpandScriptCommand(script, project, dashboard.execution_service)
        else:
            command = RunScriptCommand(script, project, dashboard.execution_service)

        result = task_manager.run_sync(command.run_with_progress())
        if result.is_error:
            print(result.error.message, file=sys.stderr)
            return 1

        if args.command == "expand":
            print("\n".join(result.data["commands"]))
        else:
            print(result.message)
            print(dashboard.terminal_service.get_output(script.terminal_kind), end="")
        return 0
    finally:
        dashboard.shutdown()


if __name__ == "__main__":
    sys.exit(main())
