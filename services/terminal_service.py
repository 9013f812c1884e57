"""
Terminal runners: sequential, exit-code-gated delivery of command lines
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.config import TerminalConfig, get_config
from models.project import TerminalKind
from models.terminal_buffer import TerminalBufferRegistry
from services.logging_service import LoggingService
from services.platform_service import PlatformService
from services.shell_targets import CommandTarget, OneShotTarget, ShellSessionTarget
from utils.async_base import AsyncResult, AsyncServiceInterface, ProcessError
from utils.script_errors import SinkDegradedWarning

TargetFactory = Callable[[str], CommandTarget]


@dataclass
class ExecutionOutcome:
    """Result of sending one command batch; failed_index is 1-based"""

    success: bool
    terminal_kind: str
    commands_sent: int = 0
    failed_index: Optional[int] = None
    failed_command: Optional[str] = None
    exit_code: Optional[int] = None
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "terminal": self.terminal_kind,
            "commands_sent": self.commands_sent,
            "failed_index": self.failed_index,
            "failed_command": self.failed_command,
            "exit_code": self.exit_code,
            "degraded": self.degraded,
        }


class TerminalService(AsyncServiceInterface):
    """
    Keeps one reusable target per terminal kind and streams command
    batches to it.

    Batches from independent executions are not serialized against each
    other; two scripts sent to the same kind at once may interleave.
    """

    # Degradation is reported once per process
    _degradation_reported = False

    def __init__(
        self,
        terminal_config: Optional[TerminalConfig] = None,
        target_factory: Optional[TargetFactory] = None,
        buffers: Optional[TerminalBufferRegistry] = None,
        logging_service: Optional[LoggingService] = None,
        cwd: Optional[str] = None,
    ):
        super().__init__("TerminalService")
        self.terminal_config = terminal_config or get_config().terminal
        self.platform_service = PlatformService(self.terminal_config)
        self.buffers = buffers or TerminalBufferRegistry(
            self.terminal_config.output_buffer_size
        )
        self.logging = logging_service or LoggingService()
        self.cwd = cwd
        self.target_factory = target_factory or self._create_target
        self.targets: Dict[str, CommandTarget] = {}

    def _create_target(self, kind: str) -> CommandTarget:
        name = self.terminal_config.runner_names.get(kind, f"ProDash Runner ({kind})")
        target_class = (
            OneShotTarget
            if self.terminal_config.target_mode == "oneshot"
            else ShellSessionTarget
        )
        return target_class(
            kind,
            name,
            self.platform_service,
            buffer=self.buffers.for_kind(kind),
            cwd=self.cwd,
        )

    async def get_target(self, terminal_kind: Optional[str]) -> CommandTarget:
        """Reuse the live target of this kind or start a new one"""
        kind = TerminalKind.normalize(terminal_kind)
        target = self.targets.get(kind)
        if target is not None and not target.is_terminated:
            return target

        target = self.target_factory(kind)
        try:
            await target.start()
        except OSError as e:
            raise ProcessError(
                f"Could not start terminal '{kind}': {e}", error_code="TERMINAL_START_FAILED"
            ) from e

        if not await target.wait_until_ready(self.terminal_config.readiness_timeout):
            self._report_degradation(kind)

        self.targets[kind] = target
        return target

    def _report_degradation(self, kind: str):
        if TerminalService._degradation_reported:
            return
        TerminalService._degradation_reported = True
        self.logging.warning(str(SinkDegradedWarning(kind)))

    async def run(
        self, commands: Sequence[str], terminal_kind: Optional[str] = None
    ) -> ExecutionOutcome:
        """
        Send commands in order, each after the previous one succeeded.

        A nonzero or unknown exit code stops the batch; the outcome names
        the failing command. Targets without completion reporting get every
        command at once and the outcome is marked degraded.
        """
        kind = TerminalKind.normalize(terminal_kind)
        async with self.operation_context("run"):
            target = await self.get_target(kind)

            if not target.supports_completion:
                for line in commands:
                    await target.send(line)
                return ExecutionOutcome(
                    success=True,
                    terminal_kind=kind,
                    commands_sent=len(commands),
                    degraded=True,
                )

            for index, line in enumerate(commands, start=1):
                exit_code = await target.execute(line)
                if exit_code != 0:
                    return ExecutionOutcome(
                        success=False,
                        terminal_kind=kind,
                        commands_sent=index,
                        failed_index=index,
                        failed_command=line,
                        exit_code=exit_code,
                    )

            return ExecutionOutcome(
                success=True, terminal_kind=kind, commands_sent=len(commands)
            )

    def get_output(self, terminal_kind: Optional[str]) -> str:
        return self.buffers.for_kind(TerminalKind.normalize(terminal_kind)).get()

    def clear_output(self, terminal_kind: Optional[str]):
        self.buffers.for_kind(TerminalKind.normalize(terminal_kind)).clear()

    async def close_all(self):
        targets: List[CommandTarget] = list(self.targets.values())
        self.targets.clear()
        for target in targets:
            await target.close()

    async def health_check(self) -> AsyncResult[Dict[str, Any]]:
        return AsyncResult.success_result(
            {
                "service": self.service_name,
                "target_mode": self.terminal_config.target_mode,
                "targets": {
                    kind: {
                        "name": target.name,
                        "terminated": target.is_terminated,
                        "supports_completion": target.supports_completion,
                    }
                    for kind, target in self.targets.items()
                },
            }
        )
