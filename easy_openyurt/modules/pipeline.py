"""Ordered provisioning steps run inside a scoped workspace.

A pipeline is a fixed sequence of named steps. Each step either succeeds and
the next one starts, or fails and the whole operation stops with
:class:`StepFailed` naming it. Nothing is rolled back: effects of the steps
that already ran stay on the host and re-running the operation is the way to
recover, so every step has to be safe to repeat.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from ..config import HostContext, PollSettings
from ..exceptions import ProvisionError, StepFailed
from .credentials import ClusterJoinCredential
from .environment import InstalledComponentFlags
from .fetch import ArtifactFetcher
from .shell import CommandRunner
from .workspace import ScopedWorkspace

logger = logging.getLogger("easy_openyurt.pipeline")


@dataclass
class StepContext:
    """Everything a step may use; ``data`` carries values between steps."""
    runner: CommandRunner
    host: HostContext
    settings: Any
    workspace: Path
    fetcher: ArtifactFetcher
    flags: InstalledComponentFlags = field(default_factory=InstalledComponentFlags)
    poll: PollSettings = field(default_factory=PollSettings)
    credential: Optional[ClusterJoinCredential] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Step:
    """A named unit of work; ``when`` returning False skips it."""
    name: str
    action: Callable[[StepContext], None]
    when: Optional[Callable[[StepContext], bool]] = None


class Pipeline:
    """A linear sequence of steps with fail-fast semantics."""

    def __init__(self, name: str, steps: Sequence[Step], preflight: Iterable[Callable[[], None]] = ()):
        self.name = name
        self.steps = tuple(steps)
        self.preflight = tuple(preflight)

    def run(
        self,
        runner: CommandRunner,
        host: HostContext,
        settings: Any = None,
        *,
        flags: Optional[InstalledComponentFlags] = None,
        poll: Optional[PollSettings] = None,
        credential: Optional[ClusterJoinCredential] = None,
        workspace: Optional[ScopedWorkspace] = None,
    ) -> StepContext:
        """Run every step in order.

        Preflight checks run before the workspace exists and before any
        command is issued.

        Raises:
            ProvisionError: From a preflight check
            StepFailed: If a step fails
        """
        for check in self.preflight:
            check()

        workspace = workspace or ScopedWorkspace()
        with workspace as path:
            ctx = StepContext(
                runner=runner,
                host=host,
                settings=settings,
                workspace=path,
                fetcher=ArtifactFetcher(runner, path),
                flags=flags or InstalledComponentFlags(),
                poll=poll or PollSettings(),
                credential=credential,
            )
            total = len(self.steps)
            for index, step in enumerate(self.steps, 1):
                if step.when is not None and not step.when(ctx):
                    logger.info(f"⏭️  [{index}/{total}] Skipping: {step.name}")
                    continue
                logger.info(f"⏳ [{index}/{total}] {step.name}")
                try:
                    step.action(ctx)
                except (ProvisionError, OSError, ValueError) as e:
                    logger.error(f"❌ {step.name} failed: {e}")
                    raise StepFailed(self.name, step.name, e) from e
                logger.debug(f"✅ {step.name}")
        return ctx
