"""
==========================================
Pytest suite for provisioning/events.py
==========================================

Sections:
---------
1. Unit tests
2. Integration tests (listeners on a real SQLite engine)
3. Edge case tests

Available markers:
------------------
unit, integration, edge_case

How to Execute:
---------------
All tests:          python -m pytest tests/tests_provisioning/test_events.py -v
"""

import logging

from pytest import mark, raises
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from core.config import ConfigurationError
from provisioning.events import (
    EventManager,
    EventSubscriber,
    OracleSessionInit,
    SqliteForeignKeys,
    StatementLogger,
    SubscriberRegistry,
    attach_subscribers,
    default_registry,
)


class RecordingSubscriber(EventSubscriber):
    """Appends its name to a shared list on every new DBAPI connection."""

    def __init__(self, name, calls):
        self.name = name
        self.calls = calls

    def subscribed_events(self):
        return {'connect': self.on_connect}

    def on_connect(self, dbapi_connection, connection_record):
        self.calls.append(self.name)


def recording_registry(calls, *names):
    registry = SubscriberRegistry()
    for name in names:
        registry.register(name, lambda name=name: RecordingSubscriber(name, calls))
    return registry


def sqlite_engine():
    return create_engine('sqlite://', poolclass=NullPool)


# ===============
# 1. UNIT TESTS
# ===============

@mark.unit
def test_default_registry_names():
    assert default_registry.names() == [
        'sqlite_foreign_keys',
        'oracle_session_init',
        'statement_logger',
    ]


@mark.unit
def test_registry_creates_registered_subscriber():
    registry = SubscriberRegistry()
    registry.register('fk', SqliteForeignKeys)

    assert isinstance(registry.create('fk'), SqliteForeignKeys)


@mark.unit
def test_oracle_session_sql_sets_nls_formats():
    sql = OracleSessionInit().session_sql()

    assert sql.startswith('ALTER SESSION SET ')
    assert "NLS_DATE_FORMAT = 'YYYY-MM-DD HH24:MI:SS'" in sql
    assert "NLS_NUMERIC_CHARACTERS = '.,'" in sql


@mark.unit
def test_oracle_session_variables_override_defaults():
    sql = OracleSessionInit({'nls_date_format': 'DD.MM.YYYY'}).session_sql()

    assert "NLS_DATE_FORMAT = 'DD.MM.YYYY'" in sql


# ======================
# 2. INTEGRATION TESTS
# ======================

@mark.integration
def test_subscribers_registered_in_order_once_each():
    calls = []
    engine = sqlite_engine()
    registry = recording_registry(calls, 'A', 'B')

    manager = attach_subscribers(engine, ['A', 'B'], registry)
    with engine.connect():
        pass

    assert calls == ['A', 'B']
    assert [subscriber.name for subscriber in manager.subscribers] == ['A', 'B']
    engine.dispose()


@mark.integration
def test_sqlite_foreign_keys_enabled():
    engine = sqlite_engine()
    EventManager(engine).add_subscriber(SqliteForeignKeys())

    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
    engine.dispose()


@mark.integration
def test_statement_logger_logs_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger='provisioning.events')
    engine = sqlite_engine()
    EventManager(engine).add_subscriber(StatementLogger())

    with engine.connect() as conn:
        conn.exec_driver_sql("SELECT 42")

    assert any('SELECT 42' in record.getMessage() for record in caplog.records)
    engine.dispose()


# ===============
# 3. EDGE CASES
# ===============

@mark.edge_case
def test_unknown_subscriber_raises():
    with raises(ConfigurationError, match="no_such"):
        default_registry.create('no_such')


@mark.edge_case
def test_unknown_name_leaves_engine_untouched():
    calls = []
    engine = sqlite_engine()
    registry = recording_registry(calls, 'A')

    with raises(ConfigurationError):
        attach_subscribers(engine, ['A', 'missing'], registry)
    with engine.connect():
        pass

    assert calls == []
    engine.dispose()


@mark.edge_case
def test_failing_factory_raises_configuration_error():
    registry = SubscriberRegistry()

    def broken():
        raise RuntimeError("cannot build")

    registry.register('broken', broken)

    with raises(ConfigurationError, match="cannot build"):
        registry.create('broken')


@mark.edge_case
def test_empty_name_rejected():
    with raises(ValueError):
        SubscriberRegistry().register('  ', SqliteForeignKeys)
