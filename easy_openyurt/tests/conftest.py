import re

import pytest

from easy_openyurt.config import HostContext
from easy_openyurt.modules.shell import CommandRunner, ShellResult
from easy_openyurt.modules.workspace import ScopedWorkspace


class FakeRunner(CommandRunner):
    """Records commands instead of running them and replays scripted results.

    ``on(pattern, *results)`` answers commands matching ``pattern``: results
    are consumed in order and the last one repeats. A result is stdout text,
    a ShellResult, or a callable receiving the command line.
    """

    def __init__(self):
        super().__init__()
        self.commands = []
        self._rules = []

    def on(self, pattern, *results):
        self._rules.append((re.compile(pattern), list(results) or [""]))
        return self

    def fail(self, pattern, stderr="boom", exit_code=1):
        return self.on(pattern, ShellResult("", stderr, exit_code))

    def execute(self, invocation):
        command = invocation.render()
        self.commands.append(command)
        for regex, results in self._rules:
            if regex.search(command):
                result = results.pop(0) if len(results) > 1 else results[0]
                if callable(result):
                    result = result(command)
                if result is None:
                    result = ""
                if isinstance(result, str):
                    result = ShellResult(result, "", 0)
                return result
        return ShellResult("", "", 0)

    def ran(self, pattern):
        return [c for c in self.commands if re.search(pattern, c)]


class SpyWorkspace(ScopedWorkspace):
    """Counts create/destroy calls."""

    def __init__(self, base_dir):
        super().__init__(base_dir=str(base_dir))
        self.created = 0
        self.destroyed = 0
        self.last_path = None

    def create(self):
        self.created += 1
        self.last_path = super().create()
        return self.last_path

    def destroy(self):
        if self.path is not None:
            self.destroyed += 1
        super().destroy()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def workspace(tmp_path):
    base = tmp_path / "scratch"
    base.mkdir()
    return SpyWorkspace(base)


@pytest.fixture
def host(tmp_path):
    home = tmp_path / "home"
    cwd = tmp_path / "cwd"
    home.mkdir()
    cwd.mkdir()
    return HostContext(distro="ubuntu", arch="amd64", home_dir=home, current_dir=cwd)
