"""
Fake SQLAlchemy objects for provisioning tests.

- FakeResult: scalar() result of a lookup query
- FakeConnection: records execute()/exec_driver_sql() calls, exposes a dialect
- FakeProvisioner: hands out prepared FakeConnections and tracks releases
"""

from contextlib import contextmanager
from types import SimpleNamespace


class FakeResult:
    """
    Mock SQLAlchemy result object for single-value lookups.

    Example:
        >>> result = FakeResult(scalar_val=5)
        >>> assert result.scalar() == 5
    """
    def __init__(self, scalar_val=None):
        self._scalar = scalar_val

    def scalar(self):
        return self._scalar


class FakeConnection:
    """
    Simulates a SQLAlchemy Connection.

    - .dialect.name is the backend name
    - .engine.url.database is the database from the URL
    - .execute(text(..), params) returns FakeResult from exec_map (or raises
      when the mapped value is an exception)
    - .exec_driver_sql(sql) is recorded in .driver_sql
    - every statement is recorded in .executed, in order
    """
    def __init__(self, dialect_name='postgresql', database=None, exec_map=None,
                 default_scalar=1, driver_sql_side_effect=None):
        self.dialect = SimpleNamespace(name=dialect_name)
        self.engine = SimpleNamespace(url=SimpleNamespace(database=database))
        self.exec_map = exec_map or {}
        self.default_scalar = default_scalar
        self.driver_sql_side_effect = driver_sql_side_effect
        self.executed = []
        self.driver_sql = []
        self.params = []
        self.info = {}
        self.committed = False
        self.closed = False

    def execute(self, statement, params=None):
        sql_text = str(statement)
        self.executed.append(sql_text)
        self.params.append(params)
        result = self.exec_map.get(sql_text)
        if isinstance(result, Exception):
            raise result
        return result or FakeResult(scalar_val=self.default_scalar)

    def exec_driver_sql(self, sql_text):
        self.executed.append(sql_text)
        self.driver_sql.append(sql_text)
        if self.driver_sql_side_effect:
            raise self.driver_sql_side_effect

    def commit(self):
        self.committed = True

    def close(self):
        self.closed = True


class FakeProvisioner:
    """
    Mock ConnectionProvisioner handing out prepared connections in order.

    Attributes:
        opened: (params, autocommit, attach_subscribers) per open() call
        released: connections passed to release()
    """
    def __init__(self, connections=None):
        self._connections = list(connections or [])
        self.opened = []
        self.released = []

    def open(self, params, autocommit=False, attach_subscribers=False):
        self.opened.append((params, autocommit, attach_subscribers))
        if self._connections:
            return self._connections.pop(0)
        return FakeConnection()

    def release(self, connection):
        connection.close()
        self.released.append(connection)

    @contextmanager
    def connect(self, params, autocommit=False, attach_subscribers=False):
        connection = self.open(params, autocommit=autocommit, attach_subscribers=attach_subscribers)
        try:
            yield connection
        finally:
            self.release(connection)


