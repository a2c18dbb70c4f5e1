"""Scratch directory owned by one provisioning operation."""
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger("easy_openyurt.workspace")


class ScopedWorkspace:
    """Temporary directory created before a run and removed after it.

    Use it as a context manager; the directory is removed on every exit path,
    including a failing step.
    """

    def __init__(self, prefix: str = "yurt_tmp", base_dir: Optional[str] = None):
        self.prefix = prefix
        self.base_dir = base_dir
        self.path: Optional[Path] = None

    def create(self) -> Path:
        logger.debug("Creating temporary directory")
        self.path = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.base_dir)).resolve()
        return self.path

    def destroy(self) -> None:
        """Remove the directory; a failure is logged, never raised."""
        if self.path is None:
            return
        logger.debug(f"Cleaning up temporary directory {self.path}")
        try:
            shutil.rmtree(self.path)
        except OSError as e:
            logger.error(f"⚠️  Failed to clean up temporary directory {self.path}: {e}")
        finally:
            self.path = None

    def __enter__(self) -> Path:
        return self.create()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.destroy()
        return False
