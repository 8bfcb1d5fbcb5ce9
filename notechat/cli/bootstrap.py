"""Logging setup for the notechat CLI."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from notechat.core.constants import get_log_dir
from notechat.core.secure_io import secure_mkdir

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console_level: int = logging.WARNING,
) -> Path:
    """Configure file and console logging for the notechat namespace.

    Logs are written to ``{log_dir}/notechat.log`` with automatic rotation
    (max 5MB per file, 3 backup files). Only warnings and errors reach the
    terminal so they do not interleave with streamed replies.

    Args:
        log_dir: Directory for notechat.log. Defaults to ~/.notechat/logs.
        level: Logging level for file output (default INFO).
        console_level: Logging level for console output (default WARNING).

    Returns:
        Path to the log file.
    """
    log_dir = log_dir or get_log_dir()
    secure_mkdir(log_dir)
    log_file = log_dir / "notechat.log"

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))

    notechat_logger = logging.getLogger("notechat")
    notechat_logger.setLevel(min(level, console_level))

    # Remove any existing handlers to avoid duplicates on reconfigure
    for handler in notechat_logger.handlers[:]:
        notechat_logger.removeHandler(handler)
        handler.close()

    notechat_logger.addHandler(file_handler)
    notechat_logger.addHandler(console_handler)
    notechat_logger.propagate = False

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    notechat_logger.debug("Logging configured: %s", log_file)
    return log_file
