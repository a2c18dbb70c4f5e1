"""Command groups for the easy-openyurt CLI."""
import logging
from contextlib import contextmanager

import typer

from ..exceptions import ProvisionError

logger = logging.getLogger("easy_openyurt.commands.cli")


@contextmanager
def abort_on_failure(action: str):
    """Turn a provisioning failure into a logged error and exit status 1."""
    try:
        yield
    except ProvisionError as e:
        logger.error(f"❌ Failed to {action}: {e}")
        logger.debug("Traceback:", exc_info=True)
        raise typer.Exit(code=1)


from . import kube, system, yurt  # noqa: E402

__all__ = ['abort_on_failure', 'kube', 'system', 'yurt']
