"""
=====================================================
Platform queries for identity and database lookups.
=====================================================

Per-dialect SQL for the two scalar lookups the provisioning layer needs, and
the naming convention of sequences backing identity columns.

Functions:
    identity_sequence_name: Sequence name behind an identity column
    uses_identity_sequences: Whether a dialect reads identities from sequences
    requires_identity_sequence: Whether a dialect needs the sequence name
    last_insert_id_sql: Query returning the last generated identity
    current_database_sql: Query returning the connected database name

Example:
    >>> from sql.query_builder import identity_sequence_name, last_insert_id_sql
    >>>
    >>> identity_sequence_name('postgresql', 'app.users', 'id')
    'app.users_id_seq'
    >>> last_insert_id_sql('postgresql', 'app.users_id_seq')
    'SELECT currval(:sequence_name)'
"""

from typing import Optional

# Oracle identifiers are limited to 30 characters before 12.2
ORACLE_MAX_IDENTIFIER_LENGTH = 30

_NATIVE_LAST_INSERT_ID = {
    'sqlite': "SELECT last_insert_rowid()",
    'mysql': "SELECT LAST_INSERT_ID()",
    'mariadb': "SELECT LAST_INSERT_ID()",
    'mssql': "SELECT @@IDENTITY",
}

_CURRENT_DATABASE = {
    'postgresql': "SELECT current_database()",
    'mysql': "SELECT DATABASE()",
    'mariadb': "SELECT DATABASE()",
    'mssql': "SELECT DB_NAME()",
    'oracle': "SELECT SYS_CONTEXT('USERENV', 'CURRENT_SCHEMA') FROM DUAL",
    'sqlite': "SELECT name FROM pragma_database_list WHERE seq = 0",
}


def uses_identity_sequences(dialect_name: str) -> bool:
    """Tell whether identities on this dialect can be read from a sequence."""
    return dialect_name in ('postgresql', 'oracle')


def requires_identity_sequence(dialect_name: str) -> bool:
    """Tell whether the dialect has no per-connection "last insert id"."""
    return dialect_name == 'oracle'


def _split_qualified(name: str):
    if '.' in name:
        schema, table = name.split('.', 1)
        return schema + '.', table
    return '', name


def identity_sequence_name(dialect_name: str, table_name: str, column_name: str) -> Optional[str]:
    """
    Return the name of the sequence generating an identity column.

    A schema-qualified table name ("schema.table") yields a schema-qualified
    sequence name.

    Args:
        dialect_name: SQLAlchemy dialect name
        table_name: Table name, optionally prefixed with its schema
        column_name: Identity column name

    Returns:
        Sequence name, or None for dialects with native autoincrement

    Example:
        >>> identity_sequence_name('oracle', 'scott.dbal2595', 'id')
        'SCOTT.DBAL2595_SEQ'
    """
    schema, table = _split_qualified(table_name)

    if dialect_name == 'postgresql':
        return f"{schema}{table}_{column_name}_seq"

    if dialect_name == 'oracle':
        suffix = '_SEQ'
        table = table.upper()[:ORACLE_MAX_IDENTIFIER_LENGTH - len(suffix)]
        return f"{schema.upper()}{table}{suffix}"

    return None


def last_insert_id_sql(dialect_name: str, sequence_name: Optional[str] = None) -> str:
    """
    Generate the query returning the identity generated by the last insert.

    On PostgreSQL the sequence is bound as ``:sequence_name``. On Oracle the
    name is inlined and must have been validated by the caller.

    Args:
        dialect_name: SQLAlchemy dialect name
        sequence_name: Sequence backing the identity column, if any

    Returns:
        Single-value SELECT statement

    Raises:
        ValueError: If the dialect is unknown, or needs a sequence and none
            was given
    """
    if dialect_name in _NATIVE_LAST_INSERT_ID:
        return _NATIVE_LAST_INSERT_ID[dialect_name]

    if dialect_name == 'postgresql':
        if sequence_name:
            return "SELECT currval(:sequence_name)"
        return "SELECT lastval()"

    if dialect_name == 'oracle':
        if not sequence_name:
            raise ValueError("Oracle needs a sequence name to read the last insert id")
        return f"SELECT {sequence_name}.CURRVAL FROM DUAL"

    raise ValueError(f"No last insert id query for dialect '{dialect_name}'")


def current_database_sql(dialect_name: str) -> str:
    """
    Generate the query returning the name of the connected database.

    Raises:
        ValueError: If the dialect is unknown
    """
    try:
        return _CURRENT_DATABASE[dialect_name]
    except KeyError:
        raise ValueError(f"No current database query for dialect '{dialect_name}'")
