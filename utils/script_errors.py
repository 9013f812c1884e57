"""
Errors and warnings raised while resolving and running scripts
"""

from typing import List, Optional

from utils.async_base import AsyncError, ProcessError


class ScriptError(AsyncError):
    """Base class for failures that abort one script execution"""


class CycleError(ScriptError):
    """A composition directive re-entered a script already being expanded"""

    def __init__(self, chain: List[str]):
        self.chain = list(chain)
        super().__init__(
            f"Recursive script execution detected: {' -> '.join(self.chain)}",
            "SCRIPT_CYCLE",
            {"chain": self.chain},
        )


class ScriptNotFoundError(ScriptError):
    """A composition directive names a script the project does not define"""

    def __init__(self, script_name: str, project_name: str):
        self.script_name = script_name
        self.project_name = project_name
        super().__init__(
            f'Script "{script_name}" not found in project "{project_name}".',
            "SCRIPT_NOT_FOUND",
            {"script": script_name, "project": project_name},
        )


class TerminalMismatchError(ScriptError):
    """Composed scripts declare different terminal kinds"""

    def __init__(
        self,
        caller_name: str,
        caller_terminal: str,
        callee_name: str,
        callee_terminal: str,
    ):
        self.caller_name = caller_name
        self.caller_terminal = caller_terminal
        self.callee_name = callee_name
        self.callee_terminal = callee_terminal
        super().__init__(
            f'Script "{caller_name}" (terminal: {caller_terminal}) cannot call script '
            f'"{callee_name}" (terminal: {callee_terminal}). Terminal types must match.',
            "TERMINAL_MISMATCH",
            {
                "caller": caller_name,
                "caller_terminal": caller_terminal,
                "callee": callee_name,
                "callee_terminal": callee_terminal,
            },
        )


class CommandFailure(ProcessError):
    """A command sent to a terminal reported a nonzero or unknown exit code"""

    def __init__(self, index: int, command: str, return_code: Optional[int]):
        self.index = index
        self.command = command
        exit_text = "an unknown exit code" if return_code is None else f"exit code {return_code}"
        super().__init__(
            f'Command {index} ("{command}") failed with {exit_text}.',
            return_code=return_code,
            error_code="COMMAND_FAILED",
        )
        self.details.update({"index": index, "command": command})


class UnresolvedVariableWarning(UserWarning):
    """A {{NAME}} placeholder has no known value and was left in place"""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Could not resolve variable '{token}'")


class SinkDegradedWarning(UserWarning):
    """A terminal cannot report command completion; commands are sent unchecked"""

    def __init__(self, terminal_kind: str):
        self.terminal_kind = terminal_kind
        super().__init__(
            f"Terminal '{terminal_kind}' does not report command completion; "
            "commands are sent without waiting and failures go undetected."
        )
