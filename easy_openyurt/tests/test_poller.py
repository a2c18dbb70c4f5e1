import pytest

from easy_openyurt.exceptions import ConvergenceTimeout, ShellError
from easy_openyurt.modules.poller import poll_until
from easy_openyurt.modules.shell import ShellInvocation


class Sleeps(list):
    def __call__(self, seconds):
        self.append(seconds)


def test_converges_after_pending_observations(runner):
    runner.on("get pod", "Pending", "Pending", "Pending", "Running")
    sleeps = Sleeps()

    attempts = poll_until(runner, "kubectl get pod x", "Running", interval=2, sleep=sleeps)

    assert attempts == 4
    assert len(runner.commands) == 4
    assert sleeps == [2, 2, 2]


def test_already_converged_does_not_sleep(runner):
    runner.on("status", "  ready\n")
    sleeps = Sleeps()
    assert poll_until(runner, "status", "ready", sleep=sleeps) == 1
    assert sleeps == []


def test_status_command_failure_is_not_retried(runner):
    runner.fail("kubectl", stderr="connection refused")
    sleeps = Sleeps()
    with pytest.raises(ShellError, match="connection refused"):
        poll_until(runner, "kubectl get node", "Ready", sleep=sleeps)
    assert len(runner.commands) == 1
    assert sleeps == []


def test_bounded_poll_times_out(runner):
    runner.on("get node", "edge-1 NotReady")
    sleeps = Sleeps()
    with pytest.raises(ConvergenceTimeout) as excinfo:
        poll_until(
            runner,
            "kubectl get node edge-1",
            "Ready",
            parse=lambda out: out.split()[1],
            max_attempts=3,
            sleep=sleeps,
            description="node edge-1",
        )
    assert excinfo.value.attempts == 3
    assert excinfo.value.last_observed == "NotReady"
    assert len(runner.commands) == 3
    assert len(sleeps) == 2


def test_invocation_with_params(runner):
    runner.on("edge-2", "Ready")
    poll_until(runner, ShellInvocation("kubectl get node %s", ("edge-2",)), "Ready", sleep=Sleeps())
    assert runner.commands == ["kubectl get node edge-2"]
