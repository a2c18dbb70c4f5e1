import shutil

import pytest

from easy_openyurt.exceptions import CredentialError, ShellError, StepFailed
from easy_openyurt.modules.pipeline import Pipeline, Step


def _command_step(name):
    return Step(name, lambda ctx: ctx.runner.run("echo %s", name))


STEPS = [_command_step(f"step-{i}") for i in range(4)]


def test_steps_run_in_order(runner, host, workspace):
    ctx = Pipeline("demo", STEPS).run(runner, host, workspace=workspace)
    assert runner.commands == ["echo step-0", "echo step-1", "echo step-2", "echo step-3"]
    assert ctx.workspace == workspace.last_path
    assert workspace.created == workspace.destroyed == 1
    assert not workspace.last_path.exists()


@pytest.mark.parametrize("failing", range(4))
def test_failure_stops_and_cleans_up(runner, host, workspace, failing):
    runner.fail(f"echo step-{failing}$", stderr="nope", exit_code=7)

    with pytest.raises(StepFailed) as excinfo:
        Pipeline("demo", STEPS).run(runner, host, workspace=workspace)

    assert excinfo.value.step == f"step-{failing}"
    assert isinstance(excinfo.value.cause, ShellError)
    assert excinfo.value.cause.exit_code == 7
    assert len(runner.commands) == failing + 1
    assert workspace.destroyed == 1
    assert not workspace.last_path.exists()


def test_when_false_skips_step(runner, host, workspace):
    steps = [
        _command_step("first"),
        Step("skipped", lambda ctx: ctx.runner.run("echo skipped"), when=lambda ctx: False),
        _command_step("last"),
    ]
    Pipeline("demo", steps).run(runner, host, workspace=workspace)
    assert runner.commands == ["echo first", "echo last"]


def test_data_flows_between_steps(runner, host, workspace):
    def produce(ctx):
        ctx.data["value"] = "42"

    def consume(ctx):
        ctx.runner.run("echo %s", ctx.data["value"])

    Pipeline("demo", [Step("produce", produce), Step("consume", consume)]).run(runner, host, workspace=workspace)
    assert runner.commands == ["echo 42"]


def test_preflight_failure_runs_nothing(runner, host, workspace):
    def reject():
        raise CredentialError("apiserver token required")

    with pytest.raises(CredentialError):
        Pipeline("demo", STEPS, preflight=[reject]).run(runner, host, workspace=workspace)

    assert runner.commands == []
    assert workspace.created == 0


def test_cleanup_failure_does_not_mask_step_failure(runner, host, workspace, monkeypatch):
    def broken_rmtree(path):
        raise OSError("device busy")

    runner.fail("echo step-1$")
    monkeypatch.setattr(shutil, "rmtree", broken_rmtree)

    with pytest.raises(StepFailed) as excinfo:
        Pipeline("demo", STEPS).run(runner, host, workspace=workspace)

    assert excinfo.value.step == "step-1"
    monkeypatch.undo()
    shutil.rmtree(workspace.last_path)


def test_unexpected_error_is_not_wrapped(runner, host, workspace):
    def buggy(ctx):
        raise KeyError("missing")

    with pytest.raises(KeyError):
        Pipeline("demo", [Step("buggy", buggy)]).run(runner, host, workspace=workspace)
    assert workspace.destroyed == 1
