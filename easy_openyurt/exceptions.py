"""Exceptions raised while provisioning a node."""
from typing import Optional


class ProvisionError(Exception):
    """Base class for every failure that aborts a provisioning operation."""


class ShellError(ProvisionError):
    """An external command exited with a non-zero status."""

    def __init__(self, msg: str, exit_code: int, command: Optional[str] = None):
        self.msg = msg
        self.exit_code = exit_code
        self.command = command
        super().__init__(f"[exit {exit_code}] -> {msg}")


class ExtractionError(ProvisionError):
    """Installer output did not have the expected shape."""


class CredentialError(ProvisionError):
    """Join credentials are missing or malformed."""


class ConvergenceTimeout(ProvisionError):
    """A polled resource did not reach its target state within the bound."""

    def __init__(self, description: str, attempts: int, last_observed: str):
        self.description = description
        self.attempts = attempts
        self.last_observed = last_observed
        super().__init__(
            f"{description} not ready after {attempts} attempts (last seen: {last_observed!r})"
        )


class UnsupportedDistroError(ProvisionError):
    """The host runs a Linux distribution the installers do not cover."""


class StepFailed(ProvisionError):
    """A named pipeline step failed; the operation was aborted."""

    def __init__(self, pipeline: str, step: str, cause: BaseException):
        self.pipeline = pipeline
        self.step = step
        self.cause = cause
        super().__init__(f"{pipeline}: step '{step}' failed: {cause}")
