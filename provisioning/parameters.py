"""
====================================================
Connection parameter resolution for test databases.
====================================================

Decides which parameter set a connection request uses:

    - scoped:     the db_* family, bound to the test database
    - privileged: the tmpdb_* family when configured, otherwise the db_*
                  family without dbname, so that the account can drop and
                  recreate the test database without being connected to it
    - fallback:   an embedded SQLite database when no db_driver is set

Example:
    >>> from core.config import DatabaseTestConfig
    >>> from provisioning.parameters import resolve_privileged_parameters
    >>>
    >>> cfg = DatabaseTestConfig.from_mapping({'db_driver': 'X', 'db_dbname': 'D'})
    >>> resolve_privileged_parameters(cfg).to_dict()
    {'driver': 'X'}
"""

import logging
from importlib.util import find_spec
from pathlib import Path

import pytest

from core.config import ConnectionParameters, DatabaseTestConfig

logger = logging.getLogger(__name__)

FALLBACK_DRIVER = 'sqlite'


def has_explicit_configuration(config: DatabaseTestConfig) -> bool:
    """Tell whether a test backend is configured (db_driver is set)."""
    return config.test.driver is not None


def resolve_test_parameters(config: DatabaseTestConfig) -> ConnectionParameters:
    """Return the scoped test account parameters (db_* family)."""
    return config.test


def resolve_privileged_parameters(config: DatabaseTestConfig) -> ConnectionParameters:
    """Return the parameters of the account allowed to create/drop databases.

    The tmpdb_* family is used verbatim when tmpdb_driver is configured, its
    dbname included. Otherwise the scoped parameters are reused with dbname
    removed.

    Args:
        config: Test database configuration

    Returns:
        Privileged ConnectionParameters
    """
    if config.privileged is not None:
        return config.privileged
    return config.test.without_dbname()


def fallback_parameters(config: DatabaseTestConfig) -> ConnectionParameters:
    """Return parameters for the embedded SQLite database.

    When db_path is configured the database lives in that file, and any file
    already there is deleted first so every run starts empty.

    Args:
        config: Test database configuration

    Returns:
        SQLite ConnectionParameters

    Raises:
        pytest.skip.Exception: If the sqlite3 module is not available; tests
            without a usable backend are skipped, not failed
    """
    if find_spec('_sqlite3') is None:
        pytest.skip("SQLite support (_sqlite3 extension) is not available")

    path = config.test.path
    if path is None:
        return ConnectionParameters(driver=FALLBACK_DRIVER, memory=True)

    db_file = Path(path)
    if db_file.exists():
        logger.debug(f"Removing previous fallback database file {db_file}")
        db_file.unlink()
    return ConnectionParameters(driver=FALLBACK_DRIVER, memory=True, path=path)


def connection_parameters(config: DatabaseTestConfig) -> ConnectionParameters:
    """Return the parameters of a regular test connection.

    Uses the scoped parameters when a backend is configured and the embedded
    fallback otherwise.
    """
    if has_explicit_configuration(config):
        return resolve_test_parameters(config)
    return fallback_parameters(config)
