"""Logging configuration for the easy_openyurt package."""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .config import Config

COMMAND_LOGGER = "easy_openyurt.audit.commands"
ERROR_LOGGER = "easy_openyurt.audit.errors"

COMMAND_LOG_FILE = "easy_openyurt-common.log"
ERROR_LOG_FILE = "easy_openyurt-error.log"


def setup_logging(debug_mode: bool = False) -> None:
    """Configure console logging based on debug mode."""
    log_level = logging.DEBUG if debug_mode else getattr(logging, Config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=log_level,
        format=Config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )
    logging.getLogger().setLevel(log_level)


def _attach_file(logger: logging.Logger, path: Path) -> None:
    for handler in logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            if Path(handler.baseFilename) == path:
                return
            logger.removeHandler(handler)
            handler.close()
    handler = logging.FileHandler(path)
    handler.setFormatter(logging.Formatter('%(asctime)s %(message)s'))
    logger.addHandler(handler)


def setup_command_logs(log_dir: Optional[Union[str, Path]] = None) -> Path:
    """Route every shell invocation and every failure to their own log files.

    The command logger receives each executed line with its captured streams,
    the error logger only the failed ones. Neither propagates to the console.

    Returns:
        The directory holding both log files
    """
    directory = Path(log_dir or Config.LOG_DIR).expanduser().resolve()
    directory.mkdir(parents=True, exist_ok=True)

    for name, file_name in ((COMMAND_LOGGER, COMMAND_LOG_FILE), (ERROR_LOGGER, ERROR_LOG_FILE)):
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        _attach_file(logger, directory / file_name)

    return directory
