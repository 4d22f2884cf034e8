"""
===================================================
Configuration management for test database access.
===================================================

Loads connection settings from environment variables (.env file) and turns
the flat key/value source into typed parameter sets.

Two key families are recognised:
    - db_*:    the scoped test account and the database the tests run against
    - tmpdb_*: an optional privileged account allowed to create/drop databases

Each family is read through an explicit field-to-key table, so every
recognised key is listed exactly once below.

Example:
    >>> from core.config import DatabaseTestConfig
    >>>
    >>> cfg = DatabaseTestConfig.from_mapping({
    ...     'db_driver': 'postgresql+psycopg2',
    ...     'db_host': 'localhost',
    ...     'db_dbname': 'dbal_tests',
    ... })
    >>> cfg.test.to_dict()
    {'driver': 'postgresql+psycopg2', 'host': 'localhost', 'dbname': 'dbal_tests'}
"""

import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


class ConfigurationError(Exception):
    """Exception raised for malformed or missing configuration.

    Also raised when a configured event subscriber name is unknown.
    """
    pass


TEST_PARAMETER_KEYS: Dict[str, str] = {
    'driver': 'db_driver',
    'user': 'db_user',
    'password': 'db_password',
    'host': 'db_host',
    'dbname': 'db_dbname',
    'port': 'db_port',
    'server': 'db_server',
    'unix_socket': 'db_unix_socket',
    'path': 'db_path',
}

PRIVILEGED_PARAMETER_KEYS: Dict[str, str] = {
    'driver': 'tmpdb_driver',
    'user': 'tmpdb_user',
    'password': 'tmpdb_password',
    'host': 'tmpdb_host',
    'dbname': 'tmpdb_dbname',
    'port': 'tmpdb_port',
    'server': 'tmpdb_server',
    'unix_socket': 'tmpdb_unix_socket',
    'path': 'tmpdb_path',
}

EVENT_SUBSCRIBERS_KEY = 'db_event_subscribers'


@dataclass(frozen=True)
class ConnectionParameters:
    """One set of connection parameters.

    Attributes:
        driver: SQLAlchemy driver name (or a legacy alias)
        user: Account name
        password: Account password
        host: Server hostname or IP address
        dbname: Database to connect to
        port: Server port number
        server: Named server instance (SQL Server) or service name (Oracle)
        unix_socket: Local socket path used instead of TCP
        memory: Embedded in-memory database flag (SQLite)
        path: Database file path (SQLite)
    """

    driver: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    host: Optional[str] = None
    dbname: Optional[str] = None
    port: Optional[int] = None
    server: Optional[str] = None
    unix_socket: Optional[str] = None
    memory: bool = False
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the parameters that are set, omitting absent keys.

        Returns:
            Dictionary holding only the populated parameters; ``memory``
            appears only when it is true
        """
        return {
            key: value
            for key, value in asdict(self).items()
            if value is not None and value is not False
        }

    def without_dbname(self) -> 'ConnectionParameters':
        """Return a copy that is not bound to any database."""
        return replace(self, dbname=None)

    def masked(self) -> Dict[str, Any]:
        """Return to_dict() with the password hidden, for display and logs."""
        params = self.to_dict()
        if 'password' in params:
            params['password'] = '***'
        return params


def _read_family(source: Mapping[str, Any], keys: Dict[str, str]) -> ConnectionParameters:
    values: Dict[str, Any] = {}
    for field_name, key in keys.items():
        value = source.get(key)
        if value is None:
            continue
        if field_name == 'port':
            value = _parse_port(key, value)
        else:
            value = str(value)
        values[field_name] = value
    return ConnectionParameters(**values)


def _parse_port(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")


def _parse_subscribers(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, str):
        raise ConfigurationError(
            f"{EVENT_SUBSCRIBERS_KEY} must be a comma-separated string, got {value!r}"
        )
    return tuple(name.strip() for name in value.split(',') if name.strip())


@dataclass(frozen=True)
class DatabaseTestConfig:
    """Typed view of the test database configuration source.

    Attributes:
        test: Parameters of the scoped test account (db_* keys)
        privileged: Parameters of the privileged account (tmpdb_* keys), or
            None when tmpdb_driver is not configured
        event_subscribers: Subscriber names from db_event_subscribers, in order
    """

    test: ConnectionParameters = field(default_factory=ConnectionParameters)
    privileged: Optional[ConnectionParameters] = None
    event_subscribers: Tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, source: Mapping[str, Any]) -> 'DatabaseTestConfig':
        """Build the configuration from a flat key/value mapping.

        Keys whose value is None count as absent.

        Args:
            source: Mapping using the db_* / tmpdb_* key names

        Returns:
            DatabaseTestConfig instance

        Raises:
            ConfigurationError: If a port is not an integer or the subscriber
                list is not a string
        """
        privileged = None
        if source.get(PRIVILEGED_PARAMETER_KEYS['driver']) is not None:
            privileged = _read_family(source, PRIVILEGED_PARAMETER_KEYS)

        return cls(
            test=_read_family(source, TEST_PARAMETER_KEYS),
            privileged=privileged,
            event_subscribers=_parse_subscribers(source.get(EVENT_SUBSCRIBERS_KEY)),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'DatabaseTestConfig':
        """Build the configuration from environment variables.

        Both ``db_driver`` and ``DB_DRIVER`` spellings are accepted; the
        lower-case spelling wins when both are set.

        Args:
            environ: Environment mapping (defaults to os.environ)

        Returns:
            DatabaseTestConfig instance
        """
        environ = os.environ if environ is None else environ
        known_keys = (
            list(TEST_PARAMETER_KEYS.values())
            + list(PRIVILEGED_PARAMETER_KEYS.values())
            + [EVENT_SUBSCRIBERS_KEY]
        )
        source: Dict[str, str] = {}
        for key in known_keys:
            value = environ.get(key, environ.get(key.upper()))
            if value is not None:
                source[key] = value
        return cls.from_mapping(source)


# Global configuration instance
config = DatabaseTestConfig.from_env()
