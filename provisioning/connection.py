"""
======================================
Connection provisioning for test runs.
======================================

Turns a ConnectionParameters value into a live SQLAlchemy connection.

The ``driver`` parameter is a SQLAlchemy driver name such as
``postgresql+psycopg2`` or ``sqlite``; the legacy PDO/OCI driver names
(``pdo_pgsql``, ``oci8``...) are accepted as aliases. Engines are
created with NullPool: closing a connection really disconnects, which matters
when the same run later drops the database.

Key Features:
    - URL building from parameter sets (URL.create)
    - AUTOCOMMIT connections for database-level DDL
    - Optional event subscribers attached before connecting
    - Scoped acquisition with guaranteed release

Example:
    >>> from core.config import ConnectionParameters
    >>> from provisioning.connection import ConnectionProvisioner
    >>>
    >>> provisioner = ConnectionProvisioner()
    >>> with provisioner.connect(ConnectionParameters(driver='sqlite', memory=True)) as conn:
    ...     conn.exec_driver_sql("SELECT 1").scalar()
    1
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from core.config import ConfigurationError, ConnectionParameters
from provisioning.events import SubscriberRegistry, attach_subscribers
from sql.query_builder import current_database_sql

logger = logging.getLogger(__name__)

DRIVER_ALIASES: Dict[str, str] = {
    'pdo_sqlite': 'sqlite',
    'sqlite3': 'sqlite',
    'pdo_pgsql': 'postgresql+psycopg2',
    'pgsql': 'postgresql+psycopg2',
    'pdo_mysql': 'mysql+pymysql',
    'mysqli': 'mysql+mysqldb',
    'oci8': 'oracle+oracledb',
    'pdo_oci': 'oracle+oracledb',
    'sqlsrv': 'mssql+pyodbc',
    'pdo_sqlsrv': 'mssql+pyodbc',
}

# Database used by PostgreSQL connections that do not name one
POSTGRES_MAINTENANCE_DB = 'postgres'

# Backends whose URL database is not the name database_name() must report
URL_DATABASE_UNRELIABLE = frozenset({'sqlite', 'oracle'})


class DatabaseConnectionError(Exception):
    """Exception raised when a connection cannot be opened.

    Covers unknown or missing drivers, rejected credentials and unreachable
    servers. Nothing is retried.
    """
    pass


def resolve_driver_name(driver: Optional[str]) -> str:
    """Map a configured driver to a SQLAlchemy driver name.

    Raises:
        ConfigurationError: If no driver is configured
    """
    if not driver:
        raise ConfigurationError("Connection parameters do not name a driver")
    return DRIVER_ALIASES.get(driver, driver)


def build_url(params: ConnectionParameters) -> URL:
    """
    Build the SQLAlchemy URL for a parameter set.

    Args:
        params: Connection parameters

    Returns:
        SQLAlchemy URL

    Raises:
        ConfigurationError: If no driver is configured

    Example:
        >>> build_url(ConnectionParameters(driver='pdo_pgsql', user='app', host='db'))
        postgresql+psycopg2://app@db/postgres
    """
    drivername = resolve_driver_name(params.driver)
    backend = drivername.split('+', 1)[0]

    if backend == 'sqlite':
        # No path means an in-memory database
        return URL.create(drivername, database=params.path)

    host = params.host
    database = params.dbname
    query: Dict[str, str] = {}

    if params.unix_socket:
        if backend in ('mysql', 'mariadb'):
            query['unix_socket'] = params.unix_socket
        elif backend == 'postgresql':
            query['host'] = params.unix_socket
        else:
            logger.debug(f"unix_socket is not supported by {backend}, ignoring it")

    if params.server:
        if backend == 'mssql':
            host = f"{host or 'localhost'}\\{params.server}"
        elif backend == 'oracle':
            query['service_name'] = params.server
        else:
            logger.debug(f"server is not supported by {backend}, ignoring it")

    if backend == 'postgresql' and database is None:
        database = POSTGRES_MAINTENANCE_DB

    return URL.create(
        drivername=drivername,
        username=params.user,
        password=params.password,
        host=host,
        port=params.port,
        database=database,
        query=query,
    )


def database_name(connection: Connection) -> str:
    """
    Return the name of the database a connection is bound to.

    The URL's database is used when present; otherwise the backend is asked.
    SQLite always reports the attached schema name ('main'). On Oracle the URL
    names a service, so the connected schema is asked for instead.
    """
    dialect_name = connection.dialect.name
    url_database = connection.engine.url.database
    if url_database and dialect_name not in URL_DATABASE_UNRELIABLE:
        return url_database
    return connection.execute(text(current_database_sql(dialect_name))).scalar()


class ConnectionProvisioner:
    """Opens and releases connections for the test environment.

    Attributes:
        subscriber_names: Event subscribers attached when requested
        registry: Registry used to build subscribers (None for the default)
        echo: Passed to create_engine() to echo SQL

    Example:
        >>> provisioner = ConnectionProvisioner(subscriber_names=('statement_logger',))
        >>> conn = provisioner.open(params, attach_subscribers=True)
        >>> try:
        ...     conn.exec_driver_sql("SELECT 1")
        ... finally:
        ...     provisioner.release(conn)
    """

    def __init__(
        self,
        subscriber_names: Sequence[str] = (),
        registry: Optional[SubscriberRegistry] = None,
        echo: bool = False
    ):
        self.subscriber_names = tuple(subscriber_names)
        self.registry = registry
        self.echo = echo

    def create_engine(self, params: ConnectionParameters, autocommit: bool = False) -> Engine:
        """Create an engine for a parameter set without connecting.

        Raises:
            ConfigurationError: If no driver is configured
            DatabaseConnectionError: If the driver is unknown or not installed
        """
        url = build_url(params)
        options = {'poolclass': NullPool, 'echo': self.echo}
        if autocommit:
            options['isolation_level'] = 'AUTOCOMMIT'

        try:
            return create_engine(url, **options)
        except (ArgumentError, ImportError) as e:
            logger.error(f"Error loading driver '{url.drivername}': {e}")
            raise DatabaseConnectionError(f"Driver '{url.drivername}' is not available: {e}") from e

    def open(
        self,
        params: ConnectionParameters,
        autocommit: bool = False,
        attach_subscribers: bool = False
    ) -> Connection:
        """
        Open a connection.

        Args:
            params: Connection parameters
            autocommit: Open the connection in AUTOCOMMIT mode (needed for
                CREATE/DROP DATABASE)
            attach_subscribers: Register the configured event subscribers on
                the engine first

        Returns:
            Open SQLAlchemy Connection; release it with release()

        Raises:
            ConfigurationError: If no driver is configured or a subscriber
                name is unknown
            DatabaseConnectionError: If the driver rejects the parameters or
                the backend is unreachable
        """
        engine = self.create_engine(params, autocommit=autocommit)

        event_manager = None
        if attach_subscribers and self.subscriber_names:
            event_manager = _attach(engine, self.subscriber_names, self.registry)

        logger.debug(f"Connecting with {params.masked()}")
        try:
            connection = engine.connect()
        except SQLAlchemyError as e:
            engine.dispose()
            logger.error(f"Error connecting to {engine.url!r}: {e}")
            raise DatabaseConnectionError(f"Failed to connect to {engine.url!r}: {e}") from e

        if event_manager is not None:
            connection.info['event_manager'] = event_manager
        return connection

    def release(self, connection: Connection) -> None:
        """Close a connection and dispose of its engine."""
        engine = connection.engine
        try:
            connection.close()
        finally:
            engine.dispose()

    @contextmanager
    def connect(
        self,
        params: ConnectionParameters,
        autocommit: bool = False,
        attach_subscribers: bool = False
    ) -> Iterator[Connection]:
        """Context manager form of open(); the connection is always released."""
        connection = self.open(params, autocommit=autocommit, attach_subscribers=attach_subscribers)
        try:
            yield connection
        finally:
            self.release(connection)


def _attach(engine, names, registry):
    try:
        return attach_subscribers(engine, names, registry)
    except ConfigurationError:
        engine.dispose()
        raise
