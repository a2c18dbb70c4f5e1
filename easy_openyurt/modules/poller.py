"""Wait for externally reconciled resources to converge."""
import logging
import time
from typing import Callable, Optional, Union

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, stop_never, wait_fixed

from ..exceptions import ConvergenceTimeout
from .shell import CommandRunner, ShellInvocation

logger = logging.getLogger("easy_openyurt.poller")


def poll_until(
    runner: CommandRunner,
    command: Union[str, ShellInvocation],
    target: str,
    *,
    parse: Optional[Callable[[str], str]] = None,
    interval: float = 1.0,
    max_attempts: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "resource",
) -> int:
    """Run a status command until its output equals ``target``.

    Only a mismatch is retried. A failing status command raises its
    ``ShellError`` on the first occurrence.

    Args:
        runner: Command runner used for the status command
        command: Command line or invocation reporting the current status
        target: Expected status after ``parse``
        parse: Turns raw stdout into the status (default: strip whitespace)
        interval: Seconds between attempts
        max_attempts: Upper bound on attempts, ``None`` polls indefinitely
        sleep: Sleep function, replaced in tests
        description: Name shown in progress messages

    Returns:
        The number of status checks that were run

    Raises:
        ShellError: If the status command fails
        ConvergenceTimeout: If ``max_attempts`` checks did not converge
    """
    invocation = command if isinstance(command, ShellInvocation) else ShellInvocation(command)
    parse = parse or str.strip
    attempts = 0

    def observe() -> str:
        nonlocal attempts
        attempts += 1
        return parse(runner.run(invocation.template, *invocation.params))

    def report(retry_state) -> None:
        logger.warning(
            f"⏳ Waiting for {description} to be ready [attempt {retry_state.attempt_number}] "
            f"(current: {retry_state.outcome.result()!r})"
        )

    retryer = Retrying(
        retry=retry_if_result(lambda observed: observed != target),
        wait=wait_fixed(interval),
        stop=stop_after_attempt(max_attempts) if max_attempts else stop_never,
        sleep=sleep,
        before_sleep=report,
    )

    try:
        retryer(observe)
    except RetryError as e:
        last = e.last_attempt.result()
        raise ConvergenceTimeout(description, attempts, last) from None

    logger.info(f"✅ {description} is ready")
    return attempts
