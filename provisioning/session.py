"""
=========================================
Test session: the entry point for tests.
=========================================

DatabaseTestSession ties configuration, lifecycle and provisioning together.
One session owns one DatabaseLifecycleManager, so the database is reset the
first time the session hands out a connection and never again for that
session.

Example:
    >>> from provisioning.session import DatabaseTestSession
    >>>
    >>> session = DatabaseTestSession()
    >>> with session.connection() as conn:
    ...     conn.exec_driver_sql("CREATE TABLE t (id INTEGER PRIMARY KEY)")
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.engine import Connection

from core.config import ConfigurationError, ConnectionParameters, DatabaseTestConfig
from provisioning.connection import ConnectionProvisioner
from provisioning.events import SubscriberRegistry
from provisioning.lifecycle import DatabaseLifecycleManager
from provisioning.parameters import (
    connection_parameters,
    has_explicit_configuration,
    resolve_privileged_parameters,
)

logger = logging.getLogger(__name__)


class DatabaseTestSession:
    """Hands out test connections, resetting the database on first use.

    Attributes:
        config: Test database configuration
        provisioner: Opens and releases connections
        lifecycle: Lifecycle manager owning the initialization flag

    Example:
        >>> session = DatabaseTestSession(DatabaseTestConfig.from_mapping({
        ...     'db_driver': 'postgresql+psycopg2',
        ...     'db_host': 'localhost',
        ...     'db_dbname': 'dbal_tests',
        ... }))
        >>> conn = session.get_connection()
        >>> try:
        ...     ...
        ... finally:
        ...     session.release(conn)
    """

    def __init__(
        self,
        config: Optional[DatabaseTestConfig] = None,
        registry: Optional[SubscriberRegistry] = None,
        provisioner: Optional[ConnectionProvisioner] = None
    ):
        if config is None:
            from core.config import config as default_config
            config = default_config

        self.config = config
        if provisioner is None:
            provisioner = ConnectionProvisioner(
                subscriber_names=config.event_subscribers,
                registry=registry,
            )
        self.provisioner = provisioner
        self.lifecycle = DatabaseLifecycleManager(config, provisioner=provisioner)

    def connection_params(self) -> ConnectionParameters:
        """Parameters of a regular test connection (configured or fallback)."""
        return connection_parameters(self.config)

    def get_connection(self) -> Connection:
        """
        Open a test connection with the configured event subscribers.

        The test database is reset first if this session has not done it yet.

        Returns:
            Open Connection; hand it back with release()

        Raises:
            ConfigurationError: If a subscriber name is unknown
            DatabaseConnectionError: If the backend cannot be reached
            LifecycleError: If the reset fails
        """
        self.lifecycle.ensure_initialized()
        params = self.connection_params()
        logger.debug(f"Opening test connection ({params.driver})")
        return self.provisioner.open(params, attach_subscribers=True)

    def get_privileged_connection(self) -> Connection:
        """
        Open a connection with the privileged account, not bound to the test
        database.

        Raises:
            ConfigurationError: If no test backend is configured
            DatabaseConnectionError: If the backend cannot be reached
        """
        if not has_explicit_configuration(self.config):
            raise ConfigurationError(
                "A privileged connection needs an explicit test database configuration (db_driver)"
            )
        return self.provisioner.open(resolve_privileged_parameters(self.config))

    def release(self, connection: Connection) -> None:
        self.provisioner.release(connection)

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Context manager form of get_connection()."""
        conn = self.get_connection()
        try:
            yield conn
        finally:
            self.release(conn)
