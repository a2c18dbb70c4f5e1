"""Download installer artifacts into the operation's workspace."""
import logging
import posixpath
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .shell import CommandRunner

logger = logging.getLogger("easy_openyurt.fetch")


class ArtifactFetcher:
    """Fetches remote files with curl into a workspace directory."""

    def __init__(self, runner: CommandRunner, workspace: Path):
        self.runner = runner
        self.workspace = Path(workspace)

    def fetch(self, url_template: str, *params: Any) -> Path:
        """Download a file and return its absolute local path.

        Args:
            url_template: URL with ``%s`` placeholders
            *params: Values substituted into the template

        Raises:
            ShellError: If curl fails or the server answers with an error status
            TypeError: If the number of values does not match the placeholders
        """
        url = url_template % tuple(str(p) for p in params)
        file_name = posixpath.basename(urlparse(url).path)
        if not file_name:
            raise ValueError(f"Cannot derive a file name from URL: {url}")
        file_path = self.workspace / file_name
        logger.debug(f"📥 Downloading {url} -> {file_path}")
        self.runner.run("curl -fsSL --output %s %s", file_path, url)
        return file_path.absolute()
