"""File logging for the CLI and the daemon.

Both processes append to ``daemon.log`` in the data directory, so every record
carries the pid of the process that wrote it. Nothing is logged to the terminal.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_MAX_BYTES = 1_000_000
LOG_BACKUPS = 3


def setup_logging(log_path: Path, level: int = logging.DEBUG) -> None:
    """Attach a rotating file handler for ``log_path`` to the ``wa_link`` logger.

    Idempotent: a second call in the same process keeps the first handler.
    """
    package_logger = logging.getLogger("wa_link")
    if package_logger.handlers:
        return

    handler = RotatingFileHandler(log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS)
    handler.setFormatter(
        logging.Formatter(fmt="%(asctime)s [%(process)d] %(levelname)-8s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    package_logger.setLevel(level)
    package_logger.addHandler(handler)
    package_logger.propagate = False
