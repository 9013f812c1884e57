"""
Command Modules
Async commands triggered from the CLI and the web dashboard
"""

from .script_commands import (
    ExpandScriptCommand,
    RunActivationScriptsCommand,
    RunScriptCommand,
)

__all__ = [
    "ExpandScriptCommand",
    "RunActivationScriptsCommand",
    "RunScriptCommand",
]
