"""
Expansion of {{RUN_SCRIPT:Name}} directives into a flat command list
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from models.project import Project, Script
from services.logging_service import LoggingService
from services.script_service import ScriptService
from services.variable_resolver import VariableResolver
from utils.script_errors import CycleError, ScriptNotFoundError, TerminalMismatchError

logger = logging.getLogger(__name__)

RUN_SCRIPT_PATTERN = re.compile(r"\{\{RUN_SCRIPT:([^}]*)\}\}")


class ScriptExpander:
    """
    Turns a script and the scripts it composes into one ordered,
    directive-free list of command lines.

    Each recursive call receives its own copy of the call stack, so two
    sibling directives naming the same script are not mistaken for a cycle.
    """

    def __init__(
        self,
        registry: ScriptService,
        resolver: VariableResolver,
        logging_service: Optional[LoggingService] = None,
    ):
        self.registry = registry
        self.resolver = resolver
        self.logging = logging_service or LoggingService()

    def expand(
        self, script: Script, project: Project, call_stack: Sequence[str] = ()
    ) -> List[str]:
        """
        Expand script for project.

        Raises:
            CycleError: script is already on the call stack
            ScriptNotFoundError: a directive names an unknown script
            TerminalMismatchError: a directive crosses terminal kinds
        """
        if script.name in call_stack:
            raise CycleError([*call_stack, script.name])

        stack: Tuple[str, ...] = (*call_stack, script.name)
        commands: List[str] = []

        for line in script.commands:
            match = RUN_SCRIPT_PATTERN.search(line)
            if match is None:
                commands.append(self.resolver.substitute(line, project))
                continue

            if line.strip() != match.group(0):
                logger.debug(f"Ignoring text around directive in line: {line!r}")

            target = self._find_target(match.group(1).strip(), project)
            if target.terminal_kind != script.terminal_kind:
                raise TerminalMismatchError(
                    script.name, script.terminal_kind, target.name, target.terminal_kind
                )
            commands.extend(self.expand(target, project, stack))

        return commands

    def _find_target(self, name: str, project: Project) -> Script:
        # Hidden scripts are valid composition targets
        target = next(
            (s for s in self.registry.get_all_scripts(project) if s.name == name), None
        )
        if target is None:
            raise ScriptNotFoundError(name, project.name)
        return target
