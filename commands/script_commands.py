"""
Script command implementations
Wraps script expansion and execution for the CLI and the web dashboard
"""

from typing import Any, Dict

from models.project import Project, Script
from services.script_execution_service import ExecutionReport, ScriptExecutionService
from utils.async_base import AsyncCommand, AsyncError, AsyncResult, ProcessError


class RunScriptCommand(AsyncCommand):
    """Command that executes one script and reports its execution state"""

    def __init__(
        self,
        script: Script,
        project: Project,
        execution_service: ScriptExecutionService,
        report: ExecutionReport = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.script = script
        self.project = project
        self.execution_service = execution_service
        self.report = report or ExecutionReport(script.name, project.name)

    async def execute(self) -> AsyncResult[Dict[str, Any]]:
        """Execute the script"""
        self._update_progress(f"Running {self.script.name}...", "info")
        try:
            await self.execution_service.execute(self.script, self.project, self.report)
        except AsyncError as e:
            self._update_progress(f"{self.script.name} failed: {e.message}", "error")
            return AsyncResult.error_result(e, metadata=self.report.to_dict())

        self._update_progress(f"{self.script.name} completed", "success")
        return AsyncResult.success_result(
            self.report.to_dict(),
            message=f'Script "{self.script.name}" completed',
        )


class ExpandScriptCommand(AsyncCommand):
    """Dry run: the command lines a script would send, without sending them"""

    def __init__(
        self,
        script: Script,
        project: Project,
        execution_service: ScriptExecutionService,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.script = script
        self.project = project
        self.execution_service = execution_service

    async def execute(self) -> AsyncResult[Dict[str, Any]]:
        try:
            commands = self.execution_service.resolve(self.script, self.project)
        except AsyncError as e:
            return AsyncResult.error_result(e)

        return AsyncResult.success_result(
            {
                "script": self.script.name,
                "project": self.project.name,
                "terminal": self.script.terminal_kind,
                "commands": commands,
            }
        )


class RunActivationScriptsCommand(AsyncCommand):
    """Command that runs the ON_ACTIVATE scripts of a project"""

    def __init__(
        self, project: Project, execution_service: ScriptExecutionService, **kwargs
    ):
        super().__init__(**kwargs)
        self.project = project
        self.execution_service = execution_service

    async def execute(self) -> AsyncResult[Dict[str, Any]]:
        reports = await self.execution_service.run_activation_scripts(self.project)
        failed = [r for r in reports if r.error is not None]
        data = {
            "project": self.project.name,
            "runs": [report.to_dict() for report in reports],
        }

        if failed:
            return AsyncResult.error_result(
                ProcessError(
                    f'Activation of "{self.project.name}" stopped at "{failed[0].script_name}"',
                    error_code="ACTIVATION_FAILED",
                ),
                metadata=data,
            )
        return AsyncResult.success_result(
            data, message=f"Ran {len(reports)} activation scripts"
        )
