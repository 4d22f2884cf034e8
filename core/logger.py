"""
==============================================
Logging setup for test database provisioning.
==============================================

Console and optional file logging shared by the provisioning modules and the
command-line entry point.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed here, either explicitly through setup_logging() or by the default
initialisation on import when nothing else configured the root logger.

Example:
    >>> from core.logger import get_logger, setup_logging
    >>>
    >>> setup_logging(log_level='DEBUG', log_file='provisioning.log')
    >>> logger = get_logger(__name__)
    >>> logger.info("Resetting test database")
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Environment variable consulted for the default level
LOG_LEVEL_ENV = 'TESTDB_LOG_LEVEL'


class ColoredFormatter(logging.Formatter):
    """Console formatter adding ANSI colours and an emoji per level.

    The record is copied before decoration so that other handlers (the log
    file in particular) still see the plain level name.
    """

    STYLES = {
        'DEBUG': ('\033[36m', '🔍'),
        'INFO': ('\033[32m', 'ℹ️ '),
        'WARNING': ('\033[33m', '⚠️ '),
        'ERROR': ('\033[31m', '❌'),
        'CRITICAL': ('\033[35m', '🔥'),
    }
    RESET = '\033[0m'

    def format(self, record):
        decorated = logging.makeLogRecord(record.__dict__)
        color, emoji = self.STYLES.get(record.levelname, ('', ''))
        if color:
            decorated.levelname = f"{color}{record.levelname}{self.RESET}"
        decorated.emoji = emoji
        return super().format(decorated)


def _resolve_level(log_level: Optional[str]) -> int:
    name = (log_level or os.getenv(LOG_LEVEL_ENV) or 'INFO').upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")
    return level


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger, optionally overriding its level.

    Args:
        name: Logger name (typically __name__ of the calling module)
        level: Optional level name (DEBUG/INFO/WARNING/ERROR/CRITICAL)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(_resolve_level(level))
    return logger


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True,
    use_colors: bool = True
) -> None:
    """Configure the root logger.

    Replaces any handlers already installed on the root logger.

    Args:
        log_level: Level name; defaults to $TESTDB_LOG_LEVEL, then INFO
        log_file: Optional log file name (e.g. 'provisioning.log')
        log_dir: Directory for log_file (defaults to 'logs/')
        console_output: If True, log to stdout
        use_colors: If True, colour console output

    Raises:
        ValueError: If the level name is unknown
    """
    level = _resolve_level(log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if use_colors:
            console_handler.setFormatter(
                ColoredFormatter('%(emoji)s ' + LOG_FORMAT, datefmt=DATE_FORMAT)
            )
        else:
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir) if log_dir else Path('logs')
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)


def _init_default_logging():
    """Install console logging if the root logger has no handlers yet.

    Test runners install their own capture handlers first, in which case
    nothing is changed.
    """
    if not logging.getLogger().handlers:
        setup_logging(console_output=True, use_colors=True)


# Auto-initialize on import
_init_default_logging()
