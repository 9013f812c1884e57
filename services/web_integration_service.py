"""
Web Integration Module for ProDash
JSON API over the dashboard: tree, projects, scripts and script runs
"""

import logging
import threading
import time
import uuid
from typing import Dict, Optional

from flask import Flask, jsonify, request

from commands.script_commands import RunScriptCommand
from services.script_execution_service import ExecutionReport
from utils.async_base import AsyncError
from utils.async_utils import task_manager as default_task_manager

logger = logging.getLogger(__name__)

# Suppress Flask's default info level logging
log = logging.getLogger("werkzeug")
log.setLevel(logging.ERROR)


class WebIntegration:
    """Web interface integration for the dashboard"""

    def __init__(self, dashboard, task_manager=None, max_runs: int = 100):
        """Initialize web integration with reference to the dashboard"""
        self.dashboard = dashboard
        self.task_manager = task_manager or default_task_manager
        self.app = None
        self.max_runs = max_runs
        self.runs: Dict[str, ExecutionReport] = {}
        self._runs_lock = threading.Lock()

    def setup_flask_app(self, secret_key: Optional[str] = None):
        """Set up Flask application with routes"""
        self.app = Flask(__name__)
        self.app.secret_key = secret_key or "dev-secret-key-change-in-production"

        # Set up routes
        self._setup_routes()

        return self.app

    def _lookup(self, project_name: Optional[str], script_name: Optional[str]):
        """Resolve names from a request; returns (project, script, error_message)"""
        if not project_name or not script_name:
            return None, None, "Missing project or script name"

        project = self.dashboard.project_service.find_project(project_name)
        if project is None:
            return None, None, f'Project "{project_name}" not found'

        script = self.dashboard.script_service.find_script(project, script_name)
        if script is None:
            return project, None, f'Script "{script_name}" not found in project "{project_name}".'

        return project, script, None

    def start_run(self, project, script) -> str:
        """Schedule a script run on the background loop; returns its run id"""
        run_id = uuid.uuid4().hex
        report = ExecutionReport(script.name, project.name)
        with self._runs_lock:
            self._evict_finished_runs()
            self.runs[run_id] = report

        command = RunScriptCommand(
            script, project, self.dashboard.execution_service, report=report
        )
        self.task_manager.run_task(command.run_with_progress(), task_name=f"run:{script.name}")
        return run_id

    def _evict_finished_runs(self):
        """Drop the oldest finished runs once the history is full"""
        excess = len(self.runs) - self.max_runs + 1
        if excess <= 0:
            return
        finished = [run_id for run_id, report in self.runs.items() if report.finished]
        for run_id in finished[:excess]:
            del self.runs[run_id]

    def _setup_routes(self):
        """Set up all Flask routes"""

        @self.app.route("/api/tree")
        def api_tree():
            """Full dashboard tree"""
            try:
                tree = self.dashboard.tree_service.build_tree()
                return jsonify(
                    {"success": True, "tree": [node.to_dict() for node in tree]}
                )
            except Exception as e:
                logger.error(f"Error building tree: {e}")
                return jsonify({"success": False, "message": str(e)})

        @self.app.route("/api/projects")
        def api_projects():
            try:
                project_service = self.dashboard.project_service
                current = project_service.current_project
                return jsonify(
                    {
                        "success": True,
                        "projects": [p.to_dict() for p in project_service.get_projects()],
                        "current": current.name if current else None,
                    }
                )
            except Exception as e:
                logger.error(f"Error getting projects: {e}")
                return jsonify({"success": False, "message": str(e)})

        @self.app.route("/api/projects/<project_name>/scripts")
        def api_project_scripts(project_name):
            """Visible scripts of one project"""
            try:
                project = self.dashboard.project_service.find_project(project_name)
                if project is None:
                    return jsonify(
                        {"success": False, "message": f'Project "{project_name}" not found'}
                    )

                scripts = self.dashboard.script_service.get_visible_scripts(project)
                return jsonify(
                    {
                        "success": True,
                        "project": project.name,
                        "scripts": [s.to_dict() for s in scripts],
                    }
                )
            except Exception as e:
                logger.error(f"Error getting scripts of {project_name}: {e}")
                return jsonify({"success": False, "message": str(e)})

        @self.app.route("/api/expand", methods=["POST"])
        def api_expand():
            """Command lines a script would run, without running them"""
            try:
                data = request.get_json(silent=True) or {}
                project, script, message = self._lookup(
                    data.get("project"), data.get("script")
                )
                if message:
                    return jsonify({"success": False, "message": message})

                commands = self.dashboard.execution_service.resolve(script, project)
                return jsonify(
                    {
                        "success": True,
                        "terminal": script.terminal_kind,
                        "commands": commands,
                    }
                )
            except AsyncError as e:
                return jsonify({"success": False, "message": e.message, "error": e.to_dict()})
            except Exception as e:
                logger.error(f"Error expanding script: {e}")
                return jsonify({"success": False, "message": str(e)})

        @self.app.route("/api/run-script", methods=["POST"])
        def api_run_script():
            """Start a script run; poll /api/runs/<run_id> for its state"""
            try:
                data = request.get_json(silent=True) or {}
                project, script, message = self._lookup(
                    data.get("project"), data.get("script")
                )
                if message:
                    return jsonify({"success": False, "message": message})

                run_id = self.start_run(project, script)
                return jsonify(
                    {
                        "success": True,
                        "run_id": run_id,
                        "message": f'Started script "{script.name}"',
                    }
                )
            except Exception as e:
                logger.error(f"Error starting script: {e}")
                return jsonify({"success": False, "message": str(e)})

        @self.app.route("/api/runs/<run_id>")
        def api_run_status(run_id):
            with self._runs_lock:
                report = self.runs.get(run_id)
            if report is None:
                return jsonify({"success": False, "message": "Run not found"})
            return jsonify(
                {"success": True, "finished": report.finished, "run": report.to_dict()}
            )

        @self.app.route("/api/refresh", methods=["POST"])
        def api_refresh():
            """Reload the registry from disk"""
            try:
                self.dashboard.refresh_projects()
                return jsonify(
                    {"success": True, "message": "Projects refreshed successfully"}
                )
            except Exception as e:
                logger.error(f"Error refreshing projects: {e}")
                return jsonify({"success": False, "message": str(e)})

        @self.app.route("/api/terminal-output/<kind>")
        def api_terminal_output(kind):
            """Captured output of one terminal runner"""
            try:
                output = self.dashboard.terminal_service.get_output(kind)
                return jsonify(
                    {"success": True, "output": output, "timestamp": time.time()}
                )
            except Exception as e:
                logger.error(f"Error getting terminal output: {e}")
                return jsonify({"success": False, "message": str(e)})

        @self.app.route("/api/terminal-output/<kind>/clear", methods=["POST"])
        def api_clear_terminal(kind):
            try:
                self.dashboard.terminal_service.clear_output(kind)
                return jsonify({"success": True, "message": "Terminal cleared"})
            except Exception as e:
                logger.error(f"Error clearing terminal: {e}")
                return jsonify({"success": False, "message": str(e)})
