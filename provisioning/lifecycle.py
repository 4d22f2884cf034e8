"""
====================================================
Test database lifecycle: reset before the first use.
====================================================

Brings the configured test database to a known-empty state once per
DatabaseLifecycleManager instance, using whichever strategy the backend
supports:

    - CREATE/DROP DATABASE supported (PostgreSQL, MySQL, MariaDB, SQL Server):
      a privileged connection drops the test database if it exists and
      creates it again.
    - Otherwise (SQLite, Oracle): a scoped connection introspects the schema
      and drops every object in it; no database is created.

The initialization flag is a fast-path skip owned by the manager, not a lock.
Two managers (or two processes) sharing one physical database may both run
the reset; drop-if-exists keeps that harmless for the create/drop strategy,
and nothing coordinates separate processes.

Example:
    >>> from core.config import config
    >>> from provisioning.lifecycle import DatabaseLifecycleManager
    >>>
    >>> manager = DatabaseLifecycleManager(config)
    >>> manager.ensure_initialized()   # resets the database
    True
    >>> manager.ensure_initialized()   # no-op from now on
    False
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from core.config import ConnectionParameters, DatabaseTestConfig
from provisioning.connection import ConnectionProvisioner, database_name
from provisioning.parameters import (
    has_explicit_configuration,
    resolve_privileged_parameters,
    resolve_test_parameters,
)
from provisioning.teardown import collect_drop_statements
from sql.ddl import (
    create_database_sql,
    drop_database_sql,
    supports_create_drop_database,
    terminate_connections_sql,
)

logger = logging.getLogger(__name__)


class LifecycleError(Exception):
    """Exception raised when resetting the test database fails.

    The manager stays uninitialized, so the next call starts over.
    """
    pass


@dataclass
class InitializationState:
    """Whether the test database has been reset by its owning manager."""

    initialized: bool = False


class DatabaseLifecycleManager:
    """Resets the test database the first time it is asked to.

    Attributes:
        config: Test database configuration
        provisioner: Opens and releases the connections used for the reset
        state: Initialization flag owned by this manager
    """

    def __init__(
        self,
        config: DatabaseTestConfig,
        provisioner: Optional[ConnectionProvisioner] = None,
        state: Optional[InitializationState] = None
    ):
        self.config = config
        self.provisioner = provisioner or ConnectionProvisioner()
        self.state = state or InitializationState()

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    def ensure_initialized(self) -> bool:
        """
        Reset the test database unless that already happened.

        Nothing is done without an explicit db_driver: the embedded fallback
        database needs no reset.

        Returns:
            True if a reset ran, False if the call was a no-op

        Raises:
            DatabaseConnectionError: If a connection cannot be opened
            LifecycleError: If the reset statements fail
        """
        if self.state.initialized:
            return False

        if not has_explicit_configuration(self.config):
            logger.debug("No test database configured, skipping reset")
            return False

        test_params = resolve_test_parameters(self.config)
        privileged_params = resolve_privileged_parameters(self.config)

        try:
            self._reset(test_params, privileged_params)
        except SQLAlchemyError as e:
            logger.error(f"Error resetting test database: {e}")
            raise LifecycleError(f"Failed to reset test database: {e}") from e

        self.state.initialized = True
        logger.info("Test database initialized")
        return True

    def _reset(self, test_params: ConnectionParameters, privileged_params: ConnectionParameters) -> None:
        privileged = self.provisioner.open(privileged_params, autocommit=True)
        try:
            dialect_name = privileged.dialect.name
            if supports_create_drop_database(dialect_name):
                target_db = self._target_database_name(test_params)
                self._drop_and_create_database(privileged, target_db)
            else:
                logger.info(f"{dialect_name} cannot drop databases, dropping schema objects instead")
                self._drop_schema_objects(test_params)
        finally:
            self.provisioner.release(privileged)

    def _target_database_name(self, test_params: ConnectionParameters) -> str:
        if test_params.dbname:
            return test_params.dbname

        with self.provisioner.connect(test_params) as conn:
            name = database_name(conn)
        if not name:
            raise LifecycleError("Could not determine the name of the test database")
        return name

    def _drop_and_create_database(self, conn: Connection, target_db: str) -> None:
        dialect_name = conn.dialect.name

        if dialect_name == 'postgresql':
            conn.execute(text(terminate_connections_sql()), {'database_name': target_db})

        logger.info(f"Dropping database {target_db}")
        conn.exec_driver_sql(drop_database_sql(target_db, dialect_name))

        logger.info(f"Creating database {target_db}")
        conn.exec_driver_sql(create_database_sql(target_db, dialect_name))

    def _drop_schema_objects(self, test_params: ConnectionParameters) -> None:
        with self.provisioner.connect(test_params) as conn:
            statements = collect_drop_statements(conn)
            logger.info(f"Dropping {len(statements)} schema objects")
            for statement in statements:
                conn.execute(statement)
            conn.commit()
