"""Shell command execution.

Every provisioning step talks to the host through :class:`CommandRunner`.
A command is a ``%s``-style template plus positional values; it is rendered
to one line and executed with ``bash -c`` so pipes, ``&&`` chains and
redirections behave exactly as they would in an operator's terminal.
"""
import logging
import subprocess
from dataclasses import dataclass
from typing import Any, Tuple

from ..exceptions import ShellError
from ..logs import COMMAND_LOGGER, ERROR_LOGGER

logger = logging.getLogger("easy_openyurt.shell")
command_log = logging.getLogger(COMMAND_LOGGER)
error_log = logging.getLogger(ERROR_LOGGER)


def _strip_newline(text: str) -> str:
    """Drop a single trailing line terminator."""
    if text.endswith("\n"):
        return text[:-1]
    return text


@dataclass(frozen=True)
class ShellInvocation:
    """A command line template and the values substituted into it."""
    template: str
    params: Tuple[Any, ...] = ()

    def render(self) -> str:
        """Build the command line.

        Raises:
            TypeError: If the number of values does not match the placeholders
        """
        return self.template % tuple(str(p) for p in self.params)


@dataclass(frozen=True)
class ShellResult:
    """Captured outcome of one command."""
    stdout: str
    stderr: str
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """Runs commands in a subshell and mirrors them to the command logs."""

    def __init__(self, shell: str = "bash"):
        self.shell = shell

    def execute(self, invocation: ShellInvocation) -> ShellResult:
        """Run an invocation and return its captured streams without judging them."""
        command = invocation.render()
        logger.debug(f"💻 Running: {command}")
        completed = subprocess.run(
            [self.shell, "-c", command],
            capture_output=True,
            text=True,
            errors="replace",
        )
        return ShellResult(
            stdout=_strip_newline(completed.stdout or ""),
            stderr=_strip_newline(completed.stderr or ""),
            exit_code=completed.returncode,
        )

    def run(self, template: str, *params: Any) -> str:
        """Run a command and return its stdout.

        Raises:
            ShellError: If the command exits non-zero; the message is its stderr
        """
        invocation = ShellInvocation(template, params)
        command = invocation.render()
        result = self.execute(invocation)

        command_log.info("Executing shell command: %s", command)
        command_log.info("Stdout from shell:\n%s", result.stdout)
        command_log.info("Stderr from shell:\n%s", result.stderr)

        if not result.succeeded:
            error_log.error("Executing shell command: %s", command)
            error_log.error("Exit code: %d, stderr from shell:\n%s", result.exit_code, result.stderr)
            raise ShellError(result.stderr, result.exit_code, command)

        return result.stdout
