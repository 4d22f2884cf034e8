"""
===================================================
Core infrastructure for test database provisioning.
===================================================

Configuration loading and logging shared by every other package.

Modules:
    config: Typed connection settings read from the environment
    logger: Console/file logging setup

Example:
    >>> from core.config import config
    >>> from core.logger import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info(f"Test driver: {config.test.driver}")
"""

__version__ = "0.1.0"
__all__ = [
    'get_logger',
    'setup_logging',
    'config',
    'ConfigurationError',
    'ConnectionParameters',
    'DatabaseTestConfig',
]

from core.config import ConfigurationError, ConnectionParameters, DatabaseTestConfig, config
from core.logger import get_logger, setup_logging
