"""
=======================================
Event subscribers for test connections.
=======================================

Subscribers are named in configuration (db_event_subscribers, comma
separated) and looked up in a SubscriberRegistry, which maps each name to a
factory. Every subscriber declares the SQLAlchemy events it handles; the
EventManager registers those handlers on the engine with event.listen().

Built-in subscribers:
    sqlite_foreign_keys: Enable foreign key enforcement on SQLite connections
    oracle_session_init: Set NLS date/time/number formats on Oracle sessions
    statement_logger: Log every statement at DEBUG level before execution

Example:
    >>> from provisioning.events import EventManager, default_registry
    >>>
    >>> manager = EventManager(engine)
    >>> for name in ('sqlite_foreign_keys', 'statement_logger'):
    ...     manager.add_subscriber(default_registry.create(name))
"""

import logging
from typing import Any, Callable, Dict, Iterable, List

from sqlalchemy import event
from sqlalchemy.engine import Engine

from core.config import ConfigurationError

logger = logging.getLogger(__name__)


class EventSubscriber:
    """Base class for objects listening to engine events."""

    def subscribed_events(self) -> Dict[str, Callable[..., Any]]:
        """Return a mapping of SQLAlchemy event name to handler."""
        raise NotImplementedError


class SqliteForeignKeys(EventSubscriber):
    """Turn on PRAGMA foreign_keys for every new SQLite connection."""

    def subscribed_events(self) -> Dict[str, Callable[..., Any]]:
        return {'connect': self.on_connect}

    def on_connect(self, dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()


class OracleSessionInit(EventSubscriber):
    """Set predictable NLS formats on every new Oracle session.

    Attributes:
        variables: NLS session variables and their values
    """

    DEFAULT_VARIABLES = {
        'NLS_TIME_FORMAT': 'HH24:MI:SS',
        'NLS_DATE_FORMAT': 'YYYY-MM-DD HH24:MI:SS',
        'NLS_TIMESTAMP_FORMAT': 'YYYY-MM-DD HH24:MI:SS',
        'NLS_TIMESTAMP_TZ_FORMAT': 'YYYY-MM-DD HH24:MI:SS TZH:TZM',
        'NLS_NUMERIC_CHARACTERS': '.,',
    }

    def __init__(self, variables: Dict[str, str] = None):
        self.variables = dict(self.DEFAULT_VARIABLES)
        if variables:
            self.variables.update({key.upper(): value for key, value in variables.items()})

    def session_sql(self) -> str:
        assignments = " ".join(
            f"{name} = '{value}'" for name, value in self.variables.items()
        )
        return f"ALTER SESSION SET {assignments}"

    def subscribed_events(self) -> Dict[str, Callable[..., Any]]:
        return {'connect': self.on_connect}

    def on_connect(self, dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(self.session_sql())
        finally:
            cursor.close()


class StatementLogger(EventSubscriber):
    """Log statements at DEBUG level before they are sent to the backend."""

    def __init__(self, log: logging.Logger = None):
        self.log = log or logger

    def subscribed_events(self) -> Dict[str, Callable[..., Any]]:
        return {'before_cursor_execute': self.before_cursor_execute}

    def before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        self.log.debug(f"Executing: {statement}")


class SubscriberRegistry:
    """Maps subscriber names to the factories building them."""

    def __init__(self) -> None:
        self._factories: Dict[str, Callable[[], EventSubscriber]] = {}

    def register(self, name: str, factory: Callable[[], EventSubscriber]) -> None:
        """Register (or replace) the factory for a subscriber name."""
        if not name or not name.strip():
            raise ValueError("Subscriber name must not be empty")
        self._factories[name.strip()] = factory

    def names(self) -> List[str]:
        """Return registered names in registration order."""
        return list(self._factories)

    def create(self, name: str) -> EventSubscriber:
        """Instantiate the subscriber registered under a name.

        Raises:
            ConfigurationError: If the name is not registered or the factory
                fails
        """
        try:
            factory = self._factories[name]
        except KeyError:
            known = ', '.join(self._factories) or 'none'
            raise ConfigurationError(
                f"Unknown event subscriber '{name}' (registered: {known})"
            )
        try:
            return factory()
        except Exception as e:
            logger.error(f"Error creating event subscriber '{name}': {e}")
            raise ConfigurationError(f"Failed to create event subscriber '{name}': {e}") from e


class EventManager:
    """Registers subscribers against one engine.

    Attributes:
        engine: Engine the handlers are attached to
        subscribers: Subscribers added so far, in order
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.subscribers: List[EventSubscriber] = []

    def add_subscriber(self, subscriber: EventSubscriber) -> None:
        for event_name, handler in subscriber.subscribed_events().items():
            event.listen(self.engine, event_name, handler)
        self.subscribers.append(subscriber)
        logger.debug(f"Registered event subscriber {type(subscriber).__name__}")


def attach_subscribers(
    engine: Engine,
    names: Iterable[str],
    registry: SubscriberRegistry = None
) -> EventManager:
    """Instantiate the named subscribers and register them on an engine.

    Subscribers are created and registered in the given order. All names are
    resolved before any handler is attached, so an unknown name leaves the
    engine untouched.

    Args:
        engine: Engine to attach handlers to
        names: Subscriber names, in registration order
        registry: Registry to look names up in (defaults to default_registry)

    Returns:
        The EventManager holding the registered subscribers

    Raises:
        ConfigurationError: If a name is unknown or its factory fails
    """
    if registry is None:
        registry = default_registry
    subscribers = [registry.create(name) for name in names]

    manager = EventManager(engine)
    for subscriber in subscribers:
        manager.add_subscriber(subscriber)
    return manager


default_registry = SubscriberRegistry()
default_registry.register('sqlite_foreign_keys', SqliteForeignKeys)
default_registry.register('oracle_session_init', OracleSessionInit)
default_registry.register('statement_logger', StatementLogger)
