"""
==============================================
Pytest suite for provisioning/parameters.py
==============================================

Sections:
---------
1. Unit tests
2. Edge case tests

Available markers:
------------------
unit, edge_case

How to Execute:
---------------
All tests:          python -m pytest tests/tests_provisioning/test_parameters.py -v
"""

import pytest
from pytest import mark, raises

from core.config import ConnectionParameters, DatabaseTestConfig
from provisioning.parameters import (
    connection_parameters,
    fallback_parameters,
    has_explicit_configuration,
    resolve_privileged_parameters,
    resolve_test_parameters,
)


# ===============
# 1. UNIT TESTS
# ===============

@mark.unit
def test_explicit_configuration_depends_on_driver():
    assert has_explicit_configuration(DatabaseTestConfig.from_mapping({'db_driver': 'X'}))
    assert not has_explicit_configuration(DatabaseTestConfig.from_mapping({'db_host': 'h'}))


@mark.unit
def test_test_parameters_copy_present_keys_only():
    cfg = DatabaseTestConfig.from_mapping({
        'db_driver': 'X',
        'db_user': 'u',
        'db_dbname': 'D',
        'db_unix_socket': '/tmp/sock',
    })

    assert resolve_test_parameters(cfg).to_dict() == {
        'driver': 'X',
        'user': 'u',
        'dbname': 'D',
        'unix_socket': '/tmp/sock',
    }


@mark.unit
def test_privileged_parameters_strip_dbname():
    cfg = DatabaseTestConfig.from_mapping({'db_driver': 'X', 'db_dbname': 'D'})

    assert resolve_privileged_parameters(cfg).to_dict() == {'driver': 'X'}


@mark.unit
def test_privileged_parameters_equal_test_minus_dbname():
    cfg = DatabaseTestConfig.from_mapping({
        'db_driver': 'X',
        'db_user': 'u',
        'db_password': 'p',
        'db_host': 'h',
        'db_port': 1234,
        'db_dbname': 'D',
    })

    expected = resolve_test_parameters(cfg).to_dict()
    del expected['dbname']
    assert resolve_privileged_parameters(cfg).to_dict() == expected


@mark.unit
def test_privileged_parameters_use_tmpdb_family_verbatim():
    cfg = DatabaseTestConfig.from_mapping({
        'db_driver': 'X',
        'db_dbname': 'D',
        'tmpdb_driver': 'Y',
        'tmpdb_user': 'admin',
        'tmpdb_dbname': 'maintenance',
    })

    assert resolve_privileged_parameters(cfg).to_dict() == {
        'driver': 'Y',
        'user': 'admin',
        'dbname': 'maintenance',
    }


@mark.unit
def test_fallback_is_in_memory_sqlite():
    params = fallback_parameters(DatabaseTestConfig())

    assert params.to_dict() == {'driver': 'sqlite', 'memory': True}


@mark.unit
def test_fallback_with_path_deletes_existing_file(tmp_path):
    db_file = tmp_path / 'left_over.sqlite'
    db_file.write_bytes(b'stale')
    cfg = DatabaseTestConfig(test=ConnectionParameters(path=str(db_file)))

    params = fallback_parameters(cfg)

    assert params.to_dict() == {'driver': 'sqlite', 'memory': True, 'path': str(db_file)}
    assert not db_file.exists()


@mark.unit
def test_connection_parameters_prefers_explicit_configuration():
    cfg = DatabaseTestConfig.from_mapping({'db_driver': 'X', 'db_dbname': 'D'})

    assert connection_parameters(cfg).to_dict() == {'driver': 'X', 'dbname': 'D'}


@mark.unit
def test_connection_parameters_falls_back_without_driver():
    assert connection_parameters(DatabaseTestConfig()).driver == 'sqlite'


# ===============
# 2. EDGE CASES
# ===============

@mark.edge_case
def test_fallback_skips_when_sqlite_unavailable(monkeypatch):
    looked_up = []

    def missing_spec(name):
        looked_up.append(name)
        return None

    monkeypatch.setattr("provisioning.parameters.find_spec", missing_spec)

    with raises(pytest.skip.Exception):
        fallback_parameters(DatabaseTestConfig())
    assert looked_up == ['_sqlite3']


@mark.edge_case
def test_fallback_with_missing_file_is_fine(tmp_path):
    db_file = tmp_path / 'never_created.sqlite'
    cfg = DatabaseTestConfig(test=ConnectionParameters(path=str(db_file)))

    assert fallback_parameters(cfg).path == str(db_file)
