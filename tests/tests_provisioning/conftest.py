"""
Shared fixtures for provisioning tests.

Key fixtures:
- fake_provisioner_factory: builds a FakeProvisioner around prepared connections
- sqlite_provisioner: real ConnectionProvisioner for SQLite behaviour tests
- sqlite_file_params: parameters of an empty SQLite file in tmp_path
- populated_sqlite: SQLite file holding tables, an index and a view
- cyclic_sqlite: SQLite file whose two tables reference each other
"""

import pytest

from core.config import ConnectionParameters
from provisioning.connection import ConnectionProvisioner

from fakes import FakeProvisioner


@pytest.fixture
def fake_provisioner_factory():
    """Factory building a FakeProvisioner around prepared connections."""
    def factory(*connections):
        return FakeProvisioner(connections)
    return factory


@pytest.fixture
def sqlite_provisioner():
    """Real provisioner; SQLite needs no server."""
    return ConnectionProvisioner()


@pytest.fixture
def sqlite_file_params(tmp_path):
    """Parameters of a SQLite database file that does not exist yet."""
    return ConnectionParameters(driver='sqlite', path=str(tmp_path / 'provisioning.sqlite'))


@pytest.fixture
def populated_sqlite(sqlite_provisioner, sqlite_file_params):
    """
    SQLite file holding two related tables, an index and a view.

    Returns the parameters of the file.
    """
    with sqlite_provisioner.connect(sqlite_file_params) as conn:
        conn.exec_driver_sql("CREATE TABLE parent (id INTEGER PRIMARY KEY, name TEXT)")
        conn.exec_driver_sql(
            "CREATE TABLE child (id INTEGER PRIMARY KEY, parent_id INTEGER "
            "REFERENCES parent (id), label TEXT)"
        )
        conn.exec_driver_sql("CREATE INDEX idx_child_label ON child (label)")
        conn.exec_driver_sql("CREATE VIEW child_names AS SELECT label FROM child")
        conn.exec_driver_sql("INSERT INTO parent (name) VALUES ('p')")
        conn.exec_driver_sql("INSERT INTO child (parent_id, label) VALUES (1, 'c')")
        conn.commit()
    return sqlite_file_params


@pytest.fixture
def cyclic_sqlite(sqlite_provisioner, sqlite_file_params):
    """
    SQLite file holding two tables whose foreign keys reference each other.

    Returns the parameters of the file.
    """
    with sqlite_provisioner.connect(sqlite_file_params) as conn:
        conn.exec_driver_sql("CREATE TABLE a (id INTEGER PRIMARY KEY, b_id INTEGER REFERENCES b (id))")
        conn.exec_driver_sql("CREATE TABLE b (id INTEGER PRIMARY KEY, a_id INTEGER REFERENCES a (id))")
        conn.exec_driver_sql("INSERT INTO a (id, b_id) VALUES (1, NULL)")
        conn.exec_driver_sql("INSERT INTO b (id, a_id) VALUES (1, 1)")
        conn.commit()
    return sqlite_file_params
