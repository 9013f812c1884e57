"""
Top-level script execution: expansion, then delivery to a terminal runner
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models.project import Project, Script
from services.logging_service import LoggingService
from services.script_expander import ScriptExpander
from services.script_service import ScriptService
from services.terminal_service import ExecutionOutcome, TerminalService
from utils.async_base import AsyncError, AsyncResult, AsyncServiceInterface
from utils.script_errors import CommandFailure


class ExecutionState(Enum):
    IDLE = "idle"
    EXPANDING = "expanding"
    EXPANSION_FAILED = "expansion_failed"
    EXPANDED = "expanded"
    EXECUTING = "executing"
    EXECUTION_FAILED = "execution_failed"
    COMPLETED = "completed"


TERMINAL_STATES = (
    ExecutionState.EXPANSION_FAILED,
    ExecutionState.EXECUTION_FAILED,
    ExecutionState.COMPLETED,
)


@dataclass
class ExecutionReport:
    """Progress and result of one top-level execution"""

    script_name: str
    project_name: str
    state: ExecutionState = ExecutionState.IDLE
    commands: List[str] = field(default_factory=list)
    outcome: Optional[ExecutionOutcome] = None
    error: Optional[AsyncError] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "script": self.script_name,
            "project": self.project_name,
            "state": self.state.value,
            "commands": self.commands,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "error": self.error.to_dict() if self.error else None,
        }


class ScriptExecutionService(AsyncServiceInterface):
    """Runs scripts of a project and reports every failure twice: logged and raised"""

    def __init__(
        self,
        expander: ScriptExpander,
        terminal_service: TerminalService,
        script_service: ScriptService,
        logging_service: Optional[LoggingService] = None,
    ):
        super().__init__("ScriptExecutionService")
        self.expander = expander
        self.terminal_service = terminal_service
        self.script_service = script_service
        self.logging = logging_service or LoggingService()

    def resolve(self, script: Script, project: Project) -> List[str]:
        """Expanded command list of script, without running anything"""
        return self.expander.expand(script, project, [])

    async def execute(
        self, script: Script, project: Project, report: Optional[ExecutionReport] = None
    ) -> ExecutionReport:
        """
        Expand script and send its commands to the runner of its terminal kind.

        A caller-supplied report is updated in place as the execution moves
        through its states, so it can be polled while commands run.

        Raises:
            CycleError, ScriptNotFoundError, TerminalMismatchError: expansion failed
            CommandFailure: a command exited nonzero or with an unknown code
            ProcessError: the runner could not be started
        """
        report = report or ExecutionReport(script.name, project.name)
        self.logging.info(f'Executing script "{script.name}" for project "{project.name}"...')

        async with self.operation_context("execute"):
            report.state = ExecutionState.EXPANDING
            try:
                report.commands = self.resolve(script, project)
            except AsyncError as e:
                self._fail(report, ExecutionState.EXPANSION_FAILED, e)
                raise
            report.state = ExecutionState.EXPANDED

            report.state = ExecutionState.EXECUTING
            try:
                outcome = await self.terminal_service.run(
                    report.commands, script.terminal_kind
                )
            except AsyncError as e:
                self._fail(report, ExecutionState.EXECUTION_FAILED, e)
                raise
            report.outcome = outcome

            if not outcome.success:
                failure = CommandFailure(
                    outcome.failed_index, outcome.failed_command, outcome.exit_code
                )
                self._fail(report, ExecutionState.EXECUTION_FAILED, failure)
                raise failure

            report.state = ExecutionState.COMPLETED
            self.logging.info(
                f'Script "{script.name}" completed ({outcome.commands_sent} commands'
                f'{", unchecked" if outcome.degraded else ""})'
            )
            return report

    def _fail(self, report: ExecutionReport, state: ExecutionState, error: AsyncError):
        report.state = state
        report.error = error
        self.logging.error(
            f'Failed to execute script "{report.script_name}" of project '
            f'"{report.project_name}" [{state.value}, {error.error_code}]',
            error,
        )

    async def run_activation_scripts(self, project: Project) -> List[ExecutionReport]:
        """
        Run the ON_ACTIVATE scripts of project in declaration order.
        The first failure stops the rest; it is logged, not raised.
        """
        reports = []
        for script in self.script_service.get_activation_scripts(project):
            self.logging.info(f'Running activation script "{script.name}"')
            report = ExecutionReport(script.name, project.name)
            reports.append(report)
            try:
                await self.execute(script, project, report)
            except AsyncError as e:
                self.logging.error(
                    f'Activation of project "{project.name}" stopped at "{script.name}"', e
                )
                break
        return reports

    async def health_check(self) -> AsyncResult[Dict[str, Any]]:
        terminal_health = await self.terminal_service.health_check()
        return AsyncResult.success_result(
            {"service": self.service_name, "terminal": terminal_health.data}
        )
