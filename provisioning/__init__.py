"""
=================================================
Connection provisioning for database test runs.
=================================================

The package follows a clear organization:
    - parameters.py: which parameter set a connection uses
    - connection.py: opening and releasing SQLAlchemy connections
    - events.py: named event subscribers attached to test engines
    - teardown.py: drop statements emptying a schema
    - lifecycle.py: one-time reset of the test database
    - identity.py: value generated by the last insert
    - session.py: DatabaseTestSession, the entry point for tests

Example:
    >>> from provisioning import DatabaseTestSession, last_insert_id
    >>>
    >>> session = DatabaseTestSession()
    >>> with session.connection() as conn:
    ...     conn.exec_driver_sql("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
    ...     conn.exec_driver_sql("INSERT INTO t (name) VALUES ('a')")
    ...     last_insert_id(conn)
    1
"""

__version__ = "0.1.0"
__all__ = [
    'ConnectionProvisioner', 'DatabaseConnectionError', 'build_url', 'database_name',
    'EventManager', 'EventSubscriber', 'SubscriberRegistry', 'default_registry',
    'collect_drop_statements',
    'DatabaseLifecycleManager', 'InitializationState', 'LifecycleError',
    'IdentityResolver', 'IdentityResolutionError', 'last_insert_id',
    'DatabaseTestSession',
]

from .connection import ConnectionProvisioner, DatabaseConnectionError, build_url, database_name
from .events import EventManager, EventSubscriber, SubscriberRegistry, default_registry
from .identity import IdentityResolutionError, IdentityResolver, last_insert_id
from .lifecycle import DatabaseLifecycleManager, InitializationState, LifecycleError
from .session import DatabaseTestSession
from .teardown import collect_drop_statements
